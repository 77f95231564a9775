"""
Typed configuration for a gaze session.

The YAML file (``config/config.yaml``) is split into sections that map onto
the dataclasses below. Missing keys keep their defaults and unknown keys are
ignored, so a partial config file is always valid.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

from eyegaze.utils.config_loader import load_config


# MediaPipe FaceMesh indices: eye contour (12), corner, iris center
LEFT_EYE_KEYPOINTS: Tuple[int, ...] = (
    33, 133, 160, 159, 158, 157, 173, 155, 154, 153, 144, 145, 246, 468,
)
RIGHT_EYE_KEYPOINTS: Tuple[int, ...] = (
    362, 263, 387, 386, 385, 384, 398, 382, 381, 380, 374, 373, 466, 473,
)


def _from_section(cls, section: Optional[Dict[str, Any]]):
    """Build a config dataclass from a YAML mapping, ignoring unknown keys."""
    if not section:
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in section.items() if k in known})


@dataclass
class FeatureConfig:
    """Landmark keypoints used to build the feature vector."""

    left_eye_keypoints: Tuple[int, ...] = LEFT_EYE_KEYPOINTS
    right_eye_keypoints: Tuple[int, ...] = RIGHT_EYE_KEYPOINTS

    def __post_init__(self):
        self.left_eye_keypoints = tuple(int(i) for i in self.left_eye_keypoints)
        self.right_eye_keypoints = tuple(int(i) for i in self.right_eye_keypoints)
        if len(self.left_eye_keypoints) != len(self.right_eye_keypoints):
            raise ValueError("Left and right eye must track the same number of keypoints")
        if not self.left_eye_keypoints:
            raise ValueError("At least one keypoint per eye is required")

    @property
    def points_per_eye(self) -> int:
        return len(self.left_eye_keypoints)

    @property
    def feature_dimension(self) -> int:
        # 2 coordinates per point per eye, plus 6 head-compensation terms
        return 4 * self.points_per_eye + 6


@dataclass
class CalibrationConfig:
    """Sample buffering and retraining policy of the regression model."""

    retrain_policy: str = "batched"        # 'batched' or 'every_sample'
    batch_size: int = 10
    staging_capacity: int = 40
    max_committed_samples: Optional[int] = None
    background_refit: bool = True
    parallel_axes: bool = True

    def __post_init__(self):
        if self.retrain_policy not in ("batched", "every_sample"):
            raise ValueError(f"Unknown retrain policy: {self.retrain_policy}")
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.staging_capacity < 1:
            raise ValueError("staging_capacity must be >= 1")
        if self.max_committed_samples is not None and self.max_committed_samples < 1:
            raise ValueError("max_committed_samples must be >= 1 or null")


@dataclass
class PredictionConfig:
    """Caching and smoothing applied on top of the raw regression output."""

    cache_enabled: bool = True
    cache_size: int = 50
    kalman_enabled: bool = True
    process_noise: float = 0.01
    measurement_noise: float = 0.1
    initial_uncertainty: float = 1.0
    moving_average_window: int = 0         # 0 disables the moving average


@dataclass
class SegmentationConfig:
    """Thresholds for fixation/saccade detection (pixels, milliseconds)."""

    fixation_radius: float = 50.0
    min_fixation_duration: float = 100.0
    saccade_distance_threshold: float = 30.0
    saccade_time_threshold: float = 100.0


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_directory: Optional[str] = None
    log_file: Optional[str] = None
    console_output: bool = True


@dataclass
class SessionConfig:
    """Complete configuration for one GazeSession."""

    features: FeatureConfig = field(default_factory=FeatureConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    performance_monitoring: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SessionConfig":
        data = data or {}
        return cls(
            features=_from_section(FeatureConfig, data.get('features')),
            calibration=_from_section(CalibrationConfig, data.get('calibration')),
            prediction=_from_section(PredictionConfig, data.get('prediction')),
            segmentation=_from_section(SegmentationConfig, data.get('segmentation')),
            logging=_from_section(LoggingConfig, data.get('logging')),
            performance_monitoring=bool(data.get('performance_monitoring', False)),
        )

    @classmethod
    def load(cls, config_path: str = 'config/config.yaml') -> "SessionConfig":
        """Load a SessionConfig from a YAML file."""
        return cls.from_dict(load_config(config_path))
