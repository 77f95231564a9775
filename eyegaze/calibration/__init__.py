"""
Calibration Module

Target sequencing and the incremental eye-feature -> screen regression.
"""

from .sequencer import CalibrationSequencer, CALIBRATION_POINTS
from .regression import (
    IncrementalRegressionModel,
    RegressionCoefficients,
    CalibrationSample,
    RetrainPolicy,
    FitStatus,
    solve_ols,
)
from .refit_worker import RefitWorker

__all__ = [
    'CalibrationSequencer',
    'CALIBRATION_POINTS',
    'IncrementalRegressionModel',
    'RegressionCoefficients',
    'CalibrationSample',
    'RetrainPolicy',
    'FitStatus',
    'solve_ols',
    'RefitWorker',
]
