"""
Gaze smoothing filters

- KalmanFilter: independent scalar Kalman filter per screen axis with
  identity transition and observation models
- MovingAverageSmoother: mean of the last N points
"""

from collections import deque
from typing import Deque, Tuple

import numpy as np


class KalmanFilter:
    """
    Per-axis Kalman filter for 2D gaze points.

    Each axis is a scalar random-walk model (F = H = 1), so the filter state
    is a length-2 vector and the covariance holds one variance per axis.
    The first measurement seeds the state instead of being pulled toward the
    origin.
    """

    def __init__(
        self,
        process_noise: float = 0.01,
        measurement_noise: float = 0.1,
        initial_uncertainty: float = 1.0
    ):
        """
        Args:
            process_noise: Q, lower values trust the model more
            measurement_noise: R, lower values trust the measurements more
            initial_uncertainty: P0, initial error variance
        """
        self.process_noise = float(process_noise)
        self.measurement_noise = float(measurement_noise)
        self.initial_uncertainty = float(initial_uncertainty)

        self.state = np.zeros(2)
        self.covariance = np.full(2, self.initial_uncertainty)
        self.initialized = False

    def predict(self) -> np.ndarray:
        """Time update: x = x, P = P + Q"""
        self.covariance = self.covariance + self.process_noise
        return self.state.copy()

    def update(self, measurement) -> np.ndarray:
        """Measurement update, returns the corrected state"""
        z = np.asarray(measurement, dtype=float).ravel()[:2]
        if not self.initialized:
            self.state = z.copy()
            self.initialized = True
            return self.state.copy()

        innovation = z - self.state
        gain = self.covariance / (self.covariance + self.measurement_noise)
        self.state = self.state + gain * innovation
        self.covariance = (1.0 - gain) * self.covariance
        return self.state.copy()

    def filter(self, x: float, y: float) -> Tuple[float, float]:
        """Predict + update for one measurement"""
        self.predict()
        filtered = self.update((x, y))
        return float(filtered[0]), float(filtered[1])

    def reset(self):
        self.state = np.zeros(2)
        self.covariance = np.full(2, self.initial_uncertainty)
        self.initialized = False


class MovingAverageSmoother:
    """Ring buffer of the last ``window`` points, returns their mean"""

    def __init__(self, window: int = 10):
        if window < 1:
            raise ValueError("window must be >= 1")
        self.window = window
        self._history: Deque[Tuple[float, float]] = deque(maxlen=window)

    def __len__(self) -> int:
        return len(self._history)

    def apply(self, point: Tuple[float, float]) -> Tuple[float, float]:
        self._history.append((float(point[0]), float(point[1])))
        mean = np.mean(np.array(self._history), axis=0)
        return float(mean[0]), float(mean[1])

    def reset(self):
        self._history.clear()
