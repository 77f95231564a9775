"""
Calibration target sequence.

A fixed walk over a 5x5 grid of normalized screen positions. Consecutive
targets are spread apart so the user sweeps the whole screen early; the
order never changes between sessions.
"""

from typing import List, Tuple
import logging


logger = logging.getLogger(__name__)


CALIBRATION_POINTS: Tuple[Tuple[float, float], ...] = (
    (0.25, 0.25), (0.50, 0.75), (1.00, 0.50), (0.75, 0.50), (0.00, 0.75),
    (0.50, 0.50), (1.00, 0.25), (0.75, 0.00), (0.25, 0.50), (0.50, 0.00),
    (0.00, 0.50), (1.00, 1.00), (0.75, 1.00), (0.25, 0.00), (1.00, 0.00),
    (0.00, 1.00), (0.25, 1.00), (0.75, 0.75), (0.50, 0.25), (0.00, 0.25),
    (1.00, 0.75), (0.75, 0.25), (0.50, 1.00), (0.25, 0.75), (0.00, 0.00),
)


class CalibrationSequencer:
    """
    Linear state machine over the calibration targets.

    States are the indices 0..N-1; ``advance`` moves forward and clamps at
    N-1, which is also the terminal (finished) state.
    """

    def __init__(self, points: Tuple[Tuple[float, float], ...] = CALIBRATION_POINTS):
        if not points:
            raise ValueError("Calibration sequence needs at least one point")
        self._points: List[Tuple[float, float]] = [(float(x), float(y)) for x, y in points]
        self._index = 0

    def __len__(self) -> int:
        return len(self._points)

    @property
    def index(self) -> int:
        return self._index

    @property
    def points(self) -> List[Tuple[float, float]]:
        return list(self._points)

    def current_normalized_point(self) -> Tuple[float, float]:
        return self._points[self._index]

    def current_point(self, viewport_width: int, viewport_height: int) -> Tuple[float, float]:
        """Current target in viewport pixel coordinates."""
        x, y = self._points[self._index]
        return x * viewport_width, y * viewport_height

    def advance(self) -> bool:
        """
        Move to the next target.

        Returns:
            True if the pointer moved, False if already at the last target
        """
        if self._index < len(self._points) - 1:
            self._index += 1
            logger.debug(f"Calibration point {self._index + 1}/{len(self._points)}")
            return True
        return False

    def is_finished(self) -> bool:
        return self._index >= len(self._points) - 1

    def reset(self):
        self._index = 0
