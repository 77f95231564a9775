"""
Gaze Session

Owns every per-session component and exposes the lifecycle used by the
calibration and tracking stages. The session object itself is what gets
handed from the calibration stage to the tracking stage; nothing is shared
through module-level state.

    landmarks -> FeatureExtractor -> GazePredictor -> GazeEventSegmenter
                                          ^
        CalibrationSequencer -> IncrementalRegressionModel
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple
import logging

import numpy as np

from eyegaze.calibration.regression import FitStatus, IncrementalRegressionModel
from eyegaze.calibration.sequencer import CalibrationSequencer
from eyegaze.config import SessionConfig
from eyegaze.data_acquisition.feature_extractor import FeatureExtractor, ReferenceFrame
from eyegaze.errors import FeatureDimensionError
from eyegaze.metrics.eye_metrics import AreaOfInterest, EyeMetrics, GazeEventSegmenter, GazePoint
from eyegaze.prediction.filters import MovingAverageSmoother
from eyegaze.prediction.gaze_predictor import GazePredictor


logger = logging.getLogger(__name__)


@dataclass
class PerformanceStats:
    """Timing and cache counters for one session"""
    fit_count: int
    singular_fits: int
    mean_fit_time_ms: float
    prediction_count: int
    mean_prediction_time_us: float
    cache_hits: int
    cache_misses: int
    refits_superseded: int
    cache_enabled: bool
    kalman_enabled: bool


class GazeSession:
    """
    One user's calibration + tracking session

    Usage:
        with GazeSession(SessionConfig.load()) as session:
            features = session.extract_features(landmarks, 640, 480)
            session.add_sample(features, session.current_calibration_target())
            session.advance_calibration_point()
            ...
            point = session.process_frame(landmarks, 640, 480, timestamp_ms, viewport=(1920, 1080))
            metrics = session.get_metrics()
    """

    def __init__(self, config: Optional[SessionConfig] = None):
        self.config = config or SessionConfig()

        self.extractor = FeatureExtractor(self.config.features)
        self.sequencer = CalibrationSequencer()
        self.model = IncrementalRegressionModel(
            self.config.calibration,
            performance_monitoring=self.config.performance_monitoring,
        )
        self.predictor = GazePredictor(
            self.model,
            self.config.prediction,
            performance_monitoring=self.config.performance_monitoring,
        )
        self.segmenter = GazeEventSegmenter(self.config.segmentation)

        window = self.config.prediction.moving_average_window
        self.smoother: Optional[MovingAverageSmoother] = MovingAverageSmoother(window) if window > 0 else None

        self.reference: Optional[ReferenceFrame] = None
        self._closed = False

        logger.info(
            f"Gaze session created - features: {self.extractor.feature_dimension}, "
            f"policy: {self.model.policy.value}, background refit: {self.config.calibration.background_refit}"
        )

    def __enter__(self) -> "GazeSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Begin a fresh session (full reset of every component)"""
        self.reset()
        logger.info("Gaze session started")

    def reset(self):
        """Drop reference, samples, model, filters and metrics"""
        self.reference = None
        self.sequencer.reset()
        self.model.reset()
        self.predictor.reset()
        self.segmenter.reset()
        if self.smoother is not None:
            self.smoother.reset()

    def close(self):
        """Stop background refits"""
        if not self._closed:
            self.model.close()
            self._closed = True

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------

    def capture_reference(self, landmarks: Any, frame_width: int, frame_height: int) -> Optional[ReferenceFrame]:
        """Capture the reference face box used for head compensation"""
        reference = self.extractor.capture_reference(landmarks, frame_width, frame_height)
        if reference is not None:
            self.reference = reference
        return reference

    def extract_features(self, landmarks: Any, frame_width: int, frame_height: int) -> Optional[np.ndarray]:
        """
        Feature vector for one frame, or None if the frame should be skipped.

        The first frame with a detection also becomes the reference frame.
        """
        if self.reference is None:
            self.capture_reference(landmarks, frame_width, frame_height)
        return self.extractor.extract(landmarks, frame_width, frame_height, self.reference)

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    def current_calibration_target(self) -> Tuple[float, float]:
        """Current calibration target in normalized screen coordinates"""
        return self.sequencer.current_normalized_point()

    def current_calibration_point(self, viewport_width: int, viewport_height: int) -> Tuple[float, float]:
        """Current calibration target in viewport pixels"""
        return self.sequencer.current_point(viewport_width, viewport_height)

    def add_sample(self, features: Sequence[float], target: Tuple[float, float]) -> Optional[FitStatus]:
        """Add a calibration sample for the target currently shown"""
        return self.model.add(features, target)

    def advance_calibration_point(self) -> bool:
        """
        Lock in the current target's samples and move to the next target.

        Returns:
            True while calibration targets remain
        """
        self.model.commit()
        self.sequencer.advance()
        self.model.request_refit()
        finished = self.sequencer.is_finished()
        if finished:
            logger.info(f"Calibration finished with {self.model.committed_count} samples")
        return not finished

    def is_calibration_finished(self) -> bool:
        return self.sequencer.is_finished()

    @property
    def is_calibrated(self) -> bool:
        return self.model.fitted

    def wait_for_refit(self, timeout: Optional[float] = None) -> bool:
        return self.model.wait_for_refit(timeout)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def predict(self, features: Sequence[float]) -> Optional[Tuple[float, float]]:
        """Predicted (and smoothed) gaze for a feature vector, None before fitting"""
        prediction = self.predictor.predict(features)
        if prediction is None:
            return None
        if self.smoother is not None:
            prediction = self.smoother.apply(prediction)
        return prediction

    def process_frame(
        self,
        landmarks: Any,
        frame_width: int,
        frame_height: int,
        timestamp: float,
        viewport: Optional[Tuple[int, int]] = None,
        confidence: float = 1.0
    ) -> Optional[GazePoint]:
        """
        Run one frame through extraction, prediction and segmentation.

        Args:
            landmarks: Landmark set from the face detector
            frame_width: Camera frame width (pixels)
            frame_height: Camera frame height (pixels)
            timestamp: Frame timestamp (milliseconds, strictly ordered)
            viewport: Optional (width, height) to scale normalized predictions
            confidence: Detector confidence forwarded to the gaze point

        Returns:
            The gaze point fed to the segmenter, or None (skipped frame or
            model not fitted yet)
        """
        features = self.extract_features(landmarks, frame_width, frame_height)
        if features is None:
            return None

        try:
            prediction = self.predict(features)
        except FeatureDimensionError:
            logger.error("Feature vector does not match the calibrated model")
            raise
        if prediction is None:
            return None

        x, y = prediction
        if viewport is not None:
            x, y = x * viewport[0], y * viewport[1]

        point = GazePoint(x=x, y=y, timestamp=float(timestamp), confidence=float(confidence))
        self.segmenter.process(point)
        return point

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def add_area_of_interest(self, aoi_id: str, x: float, y: float, width: float, height: float) -> AreaOfInterest:
        return self.segmenter.add_area_of_interest(aoi_id, x, y, width, height)

    def clear_areas_of_interest(self):
        self.segmenter.clear_areas_of_interest()

    def get_metrics(self) -> EyeMetrics:
        return self.segmenter.get_metrics()

    def reset_metrics(self):
        self.segmenter.reset()

    def performance_stats(self) -> PerformanceStats:
        cache = self.predictor.cache
        worker = self.model.refit_worker
        return PerformanceStats(
            fit_count=self.model.timings.fit_count,
            singular_fits=self.model.timings.singular_count,
            mean_fit_time_ms=self.model.timings.mean_fit_time * 1000.0,
            prediction_count=self.predictor.timings.prediction_count,
            mean_prediction_time_us=self.predictor.timings.mean_prediction_time * 1e6,
            cache_hits=cache.hits if cache is not None else 0,
            cache_misses=cache.misses if cache is not None else 0,
            refits_superseded=worker.superseded if worker is not None else 0,
            cache_enabled=cache is not None,
            kalman_enabled=self.predictor.kalman_filter is not None,
        )
