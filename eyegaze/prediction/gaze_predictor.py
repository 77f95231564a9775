"""
Gaze Predictor

Serves per-frame gaze predictions from the latest fitted coefficients.

- Exact-match LRU cache of raw regression output, emptied whenever the
  model publishes new coefficients
- Optional per-axis Kalman filter on top of the (cached or fresh) output
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import time
import logging

import numpy as np

from eyegaze.calibration.regression import IncrementalRegressionModel
from eyegaze.config import PredictionConfig
from eyegaze.prediction.cache import PredictionCache
from eyegaze.prediction.filters import KalmanFilter


logger = logging.getLogger(__name__)


@dataclass
class PredictionTimings:
    """Prediction counters kept when performance monitoring is enabled"""
    prediction_count: int = 0
    total_prediction_time: float = 0.0

    @property
    def mean_prediction_time(self) -> float:
        if not self.prediction_count:
            return 0.0
        return self.total_prediction_time / self.prediction_count


class GazePredictor:
    """
    Wraps IncrementalRegressionModel.predict with caching and filtering

    Caching only stores the unfiltered regression output, so turning the
    cache on or off never changes what ``predict`` returns. With the Kalman
    filter enabled a repeated feature vector hits the cache but still steps
    the filter, so the filtered output keeps converging toward the cached
    raw value.
    """

    def __init__(
        self,
        model: IncrementalRegressionModel,
        config: Optional[PredictionConfig] = None,
        performance_monitoring: bool = False
    ):
        self.model = model
        self.config = config or PredictionConfig()
        self.performance_monitoring = performance_monitoring

        self.cache: Optional[PredictionCache] = (
            PredictionCache(self.config.cache_size) if self.config.cache_enabled else None
        )
        self.kalman_filter: Optional[KalmanFilter] = (
            KalmanFilter(
                process_noise=self.config.process_noise,
                measurement_noise=self.config.measurement_noise,
                initial_uncertainty=self.config.initial_uncertainty,
            )
            if self.config.kalman_enabled else None
        )

        self._cache_version: Optional[int] = None
        self.timings = PredictionTimings()

    def _raw_prediction(self, features: np.ndarray) -> Optional[Tuple[float, float]]:
        coefficients = self.model.coefficients
        if coefficients is None:
            return None

        if self.cache is None:
            return coefficients.predict(features)

        if coefficients.version != self._cache_version:
            self.cache.clear()
            self._cache_version = coefficients.version

        key = features.tobytes()
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        raw = coefficients.predict(features)
        self.cache.put(key, raw)
        return raw

    def predict(self, features: Sequence[float]) -> Optional[Tuple[float, float]]:
        """
        Predict a gaze position for one feature vector.

        Returns:
            (x, y) in the units of the calibration targets, or None when the
            model has not been fitted yet
        """
        start = time.perf_counter() if self.performance_monitoring else 0.0

        features = np.ascontiguousarray(features, dtype=float).ravel()
        raw = self._raw_prediction(features)
        if raw is None:
            return None

        result = raw
        if self.kalman_filter is not None:
            result = self.kalman_filter.filter(raw[0], raw[1])

        if self.performance_monitoring:
            self.timings.prediction_count += 1
            self.timings.total_prediction_time += time.perf_counter() - start
            if self.timings.prediction_count % 100 == 0:
                logger.debug(f"Avg prediction time: {self.timings.mean_prediction_time * 1e6:.1f} us")

        return result

    def reset(self):
        """Clear filter state, cache and counters"""
        if self.kalman_filter is not None:
            self.kalman_filter.reset()
        if self.cache is not None:
            self.cache.clear()
            self.cache.hits = 0
            self.cache.misses = 0
        self._cache_version = None
        self.timings = PredictionTimings()
