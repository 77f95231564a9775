"""
Error types for the gaze engine

Frame-level data conditions (no face, no reference box, too few samples)
are not exceptions: they are reported as ``None`` results or a
``FitStatus`` and logged. Exceptions are reserved for precondition
violations that indicate a configuration or integration defect.
"""

from enum import Enum


class GazeEngineError(Exception):
    """Base class for all gaze engine errors"""


class FeatureDimensionError(GazeEngineError, ValueError):
    """Feature vector length differs from the one the session was built on"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Feature vector length mismatch: expected {expected}, got {actual}"
        )


class OutOfOrderSampleError(GazeEngineError, ValueError):
    """Gaze sample timestamp earlier than the previous sample"""

    def __init__(self, previous: float, current: float):
        self.previous = previous
        self.current = current
        super().__init__(
            f"Gaze samples must be time-ordered: {current} < {previous}"
        )


class SingularDesignMatrixError(GazeEngineError):
    """Least-squares design matrix is numerically degenerate"""


class FrameSkip(str, Enum):
    """Reasons a frame produces no feature vector"""
    NO_DETECTION = "no_detection"
    UNDEFINED_REFERENCE_SCALE = "undefined_reference_scale"
