"""
Eye Feature Extractor

Turns one frame of face landmarks into a fixed-length feature vector for the
gaze regression. Head movement is compensated by expressing every eye
keypoint relative to the face bounding box and rescaling it by the ratio of
the current box size to the reference box captured at session start.

Feature layout (K = keypoints per eye):
    [left eye x0, y0, ..., x(K-1), y(K-1),
     right eye x0, y0, ..., x(K-1), y(K-1),
     scale_x, scale_y, box_width, box_height, origin_dx, origin_dy]
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple
import logging

import numpy as np

from eyegaze.config import FeatureConfig
from eyegaze.errors import FrameSkip


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceFrame:
    """Face bounding box captured once at session start (pixels)"""
    width: float
    height: float
    origin_x: float
    origin_y: float

    @property
    def is_defined(self) -> bool:
        return self.width > 0 and self.height > 0


def landmarks_to_array(landmarks: Any) -> np.ndarray:
    """
    Convert a landmark set into an (N, 2) array of normalized coordinates.

    Accepts an array of shape (N, >=2), or a sequence of objects exposing
    ``.x`` / ``.y`` (MediaPipe NormalizedLandmark) or of (x, y[, z]) tuples.
    """
    if landmarks is None:
        return np.empty((0, 2), dtype=float)

    if isinstance(landmarks, np.ndarray):
        if landmarks.size == 0:
            return np.empty((0, 2), dtype=float)
        return np.asarray(landmarks[:, :2], dtype=float)

    points = []
    for lm in landmarks:
        if hasattr(lm, 'x') and hasattr(lm, 'y'):
            points.append((float(lm.x), float(lm.y)))
        else:
            points.append((float(lm[0]), float(lm[1])))

    if not points:
        return np.empty((0, 2), dtype=float)
    return np.array(points, dtype=float)


def _bounding_box(pixels: np.ndarray) -> Tuple[float, float, float, float]:
    """Return (origin_x, origin_y, width, height) of a pixel point cloud."""
    min_xy = pixels.min(axis=0)
    max_xy = pixels.max(axis=0)
    return float(min_xy[0]), float(min_xy[1]), float(max_xy[0] - min_xy[0]), float(max_xy[1] - min_xy[1])


class FeatureExtractor:
    """
    Maps per-frame landmarks to a head-compensated feature vector.

    ``extract`` returns ``None`` for frames that must be skipped; the reason
    is kept in ``last_skip`` (``FrameSkip.NO_DETECTION`` or
    ``FrameSkip.UNDEFINED_REFERENCE_SCALE``).
    """

    def __init__(self, config: Optional[FeatureConfig] = None):
        self.config = config or FeatureConfig()
        self._left = np.array(self.config.left_eye_keypoints, dtype=int)
        self._right = np.array(self.config.right_eye_keypoints, dtype=int)
        self._max_index = int(max(self._left.max(), self._right.max()))
        self.last_skip: Optional[FrameSkip] = None

    @property
    def feature_dimension(self) -> int:
        return self.config.feature_dimension

    def _to_pixels(self, landmarks: Any, frame_width: int, frame_height: int) -> Optional[np.ndarray]:
        points = landmarks_to_array(landmarks)
        if points.shape[0] == 0 or points.shape[0] <= self._max_index:
            return None
        if not np.all(np.isfinite(points)):
            logger.debug("Landmark set contains non-finite coordinates")
            return None
        return points * np.array([frame_width, frame_height], dtype=float)

    def capture_reference(
        self,
        landmarks: Any,
        frame_width: int,
        frame_height: int
    ) -> Optional[ReferenceFrame]:
        """
        Capture the reference face box from a frame.

        Returns:
            ReferenceFrame, or None when the frame has no usable detection
        """
        pixels = self._to_pixels(landmarks, frame_width, frame_height)
        if pixels is None:
            logger.debug("Cannot capture reference: no landmarks")
            return None

        origin_x, origin_y, width, height = _bounding_box(pixels)
        if width <= 0 or height <= 0:
            logger.debug("Cannot capture reference: degenerate face box")
            return None

        reference = ReferenceFrame(width=width, height=height, origin_x=origin_x, origin_y=origin_y)
        logger.info(f"Reference face box captured: {width:.1f}x{height:.1f} at ({origin_x:.1f}, {origin_y:.1f})")
        return reference

    def extract(
        self,
        landmarks: Any,
        frame_width: int,
        frame_height: int,
        reference: Optional[ReferenceFrame]
    ) -> Optional[np.ndarray]:
        """
        Extract the feature vector for one frame.

        Args:
            landmarks: Ordered landmark set with stable indexing
            frame_width: Frame width in pixels
            frame_height: Frame height in pixels
            reference: Reference face box from session start

        Returns:
            Feature vector of length ``feature_dimension`` or None (frame skip)
        """
        self.last_skip = None

        pixels = self._to_pixels(landmarks, frame_width, frame_height)
        if pixels is None:
            self.last_skip = FrameSkip.NO_DETECTION
            logger.debug("Frame skipped: no face landmarks")
            return None

        if reference is None or not reference.is_defined:
            self.last_skip = FrameSkip.UNDEFINED_REFERENCE_SCALE
            logger.debug("Frame skipped: reference scale not captured")
            return None

        origin_x, origin_y, width, height = _bounding_box(pixels)
        if width <= 0 or height <= 0:
            self.last_skip = FrameSkip.NO_DETECTION
            logger.debug("Frame skipped: degenerate face box")
            return None

        origin = np.array([origin_x, origin_y])
        size = np.array([width, height])
        scale = size / np.array([reference.width, reference.height])

        left = ((pixels[self._left] - origin) / size) * scale
        right = ((pixels[self._right] - origin) / size) * scale

        head_terms = np.array([
            scale[0],
            scale[1],
            width,
            height,
            origin_x - reference.origin_x,
            origin_y - reference.origin_y,
        ])

        features = np.concatenate([left.ravel(), right.ravel(), head_terms])
        if not np.all(np.isfinite(features)):
            self.last_skip = FrameSkip.NO_DETECTION
            logger.debug("Frame skipped: non-finite feature vector")
            return None
        return features
