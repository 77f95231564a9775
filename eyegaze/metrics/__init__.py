"""
Metrics Module

Gaze event segmentation (fixations, saccades, dwell, refixations) and the
EyeMetrics snapshot consumed by reporting layers.
"""

from eyegaze.metrics.eye_metrics import (
    GazeEventSegmenter,
    GazePoint,
    Fixation,
    Saccade,
    AreaOfInterest,
    EyeMetrics
)

__all__ = [
    'GazeEventSegmenter',
    'GazePoint',
    'Fixation',
    'Saccade',
    'AreaOfInterest',
    'EyeMetrics'
]
