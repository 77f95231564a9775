"""
Data Acquisition Module
Converts face landmarks from an external detector into gaze features
"""

from eyegaze.data_acquisition.feature_extractor import (
    FeatureExtractor,
    ReferenceFrame,
    landmarks_to_array,
)

__all__ = [
    'FeatureExtractor',
    'ReferenceFrame',
    'landmarks_to_array',
]
