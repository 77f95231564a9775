"""
eyegaze - webcam gaze calibration and gaze-event segmentation

Maps face-landmark features to screen gaze positions with an incrementally
refitted linear regression, and segments the resulting gaze stream into
fixations, saccades, dwell time and refixations.
"""

from eyegaze.config import SessionConfig
from eyegaze.session import GazeSession, PerformanceStats

__all__ = [
    'SessionConfig',
    'GazeSession',
    'PerformanceStats',
]

__version__ = '1.0.0'
