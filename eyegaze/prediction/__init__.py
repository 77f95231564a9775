"""
Prediction Module

Per-frame gaze prediction with caching and smoothing.
"""

from .gaze_predictor import GazePredictor, PredictionTimings
from .filters import KalmanFilter, MovingAverageSmoother
from .cache import PredictionCache

__all__ = [
    'GazePredictor',
    'PredictionTimings',
    'KalmanFilter',
    'MovingAverageSmoother',
    'PredictionCache',
]
