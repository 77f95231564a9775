"""
Incremental multiple linear regression from eye features to screen position.

Samples collected for the calibration target currently on screen go into a
bounded staging buffer; when the sequencer moves on they are committed.
Every fit uses committed + staged samples and solves two independent
ordinary-least-squares problems (screen X and screen Y) over the same
design matrix.

Fitted coefficients are published as one immutable RegressionCoefficients
snapshot, replaced by a single reference assignment. A reader therefore
always sees a matching X/Y pair, even while a background fit is running.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional, Sequence, Tuple
import threading
import time
import logging

import numpy as np

from eyegaze.calibration.refit_worker import RefitWorker
from eyegaze.config import CalibrationConfig
from eyegaze.errors import FeatureDimensionError, SingularDesignMatrixError


logger = logging.getLogger(__name__)


class RetrainPolicy(str, Enum):
    """When ``add`` triggers a refit"""
    EVERY_SAMPLE = "every_sample"
    BATCHED = "batched"


class FitStatus(str, Enum):
    """Outcome of a fit attempt"""
    FITTED = "fitted"
    INSUFFICIENT_DATA = "insufficient_data"
    SINGULAR = "singular"
    SUPERSEDED = "superseded"


@dataclass
class CalibrationSample:
    """One (features, target) training pair"""
    features: np.ndarray
    target: Tuple[float, float]


@dataclass(frozen=True)
class RegressionCoefficients:
    """Immutable per-axis coefficients, intercept first"""
    beta_x: np.ndarray
    beta_y: np.ndarray
    n_samples: int
    version: int

    @property
    def feature_dimension(self) -> int:
        return self.beta_x.shape[0] - 1

    def predict(self, features: np.ndarray) -> Tuple[float, float]:
        features = np.asarray(features, dtype=float).ravel()
        if features.shape[0] != self.feature_dimension:
            raise FeatureDimensionError(self.feature_dimension, features.shape[0])
        x = self.beta_x[0] + float(np.dot(self.beta_x[1:], features))
        y = self.beta_y[0] + float(np.dot(self.beta_y[1:], features))
        return float(x), float(y)


def build_design_matrix(features: np.ndarray) -> np.ndarray:
    """Prepend the intercept column to an (n, k) feature matrix."""
    return np.column_stack([np.ones(features.shape[0]), features])


def solve_ols(design: np.ndarray, target: np.ndarray) -> np.ndarray:
    """
    Least-squares solve of ``design @ beta = target``.

    Structurally redundant columns (the head scale terms are proportional to
    the face box size) are tolerated: SVD returns the minimum-norm solution.
    A design whose effective rank is <= 1 carries no information beyond the
    intercept and is rejected.

    Raises:
        SingularDesignMatrixError: degenerate or non-finite system
    """
    if not (np.all(np.isfinite(design)) and np.all(np.isfinite(target))):
        raise SingularDesignMatrixError("Design matrix or targets contain non-finite values")

    try:
        beta, _, rank, _ = np.linalg.lstsq(design, target, rcond=None)
    except np.linalg.LinAlgError as e:
        raise SingularDesignMatrixError(f"Least-squares solve failed: {e}") from e

    if rank <= 1:
        raise SingularDesignMatrixError(f"Design matrix rank {rank} is degenerate")
    if not np.all(np.isfinite(beta)):
        raise SingularDesignMatrixError("Least-squares solution is not finite")

    if rank < design.shape[1]:
        logger.debug(f"Rank-deficient design ({rank}/{design.shape[1]}), using minimum-norm solution")

    return beta


@dataclass
class _FitJob:
    features: np.ndarray
    targets: np.ndarray
    epoch: int
    generation: int


@dataclass
class FitTimings:
    """Fit counters, all updated only when performance monitoring is enabled"""
    fit_count: int = 0
    singular_count: int = 0
    total_fit_time: float = 0.0
    last_fit_time: float = 0.0

    @property
    def mean_fit_time(self) -> float:
        return self.total_fit_time / self.fit_count if self.fit_count else 0.0


class IncrementalRegressionModel:
    """
    Two-axis OLS gaze regression with committed and staging sample sets

    Usage:
        model = IncrementalRegressionModel(CalibrationConfig(background_refit=False))
        model.add(features, (0.25, 0.25))
        model.commit()
        model.fit()
        x, y = model.predict(features)
    """

    def __init__(
        self,
        config: Optional[CalibrationConfig] = None,
        performance_monitoring: bool = False
    ):
        self.config = config or CalibrationConfig()
        self.policy = RetrainPolicy(self.config.retrain_policy)
        self.performance_monitoring = performance_monitoring

        self._committed: Deque[CalibrationSample] = deque(maxlen=self.config.max_committed_samples)
        self._staging: Deque[CalibrationSample] = deque(maxlen=self.config.staging_capacity)
        self._feature_dimension: Optional[int] = None
        self._samples_since_fit = 0

        self._coefficients: Optional[RegressionCoefficients] = None
        self._publish_lock = threading.Lock()
        self._epoch = 0
        self._generation = 0
        self._published_generation = -1
        self._version = 0

        self._worker: Optional[RefitWorker] = RefitWorker() if self.config.background_refit else None
        self._axis_pool: Optional[ThreadPoolExecutor] = (
            ThreadPoolExecutor(max_workers=2, thread_name_prefix="eyegaze-axis")
            if self.config.parallel_axes else None
        )

        self.timings = FitTimings()
        self.last_status: Optional[FitStatus] = None

    # ------------------------------------------------------------------
    # Sample management
    # ------------------------------------------------------------------

    @property
    def feature_dimension(self) -> Optional[int]:
        return self._feature_dimension

    @property
    def committed_count(self) -> int:
        return len(self._committed)

    @property
    def staging_count(self) -> int:
        return len(self._staging)

    @property
    def sample_count(self) -> int:
        return len(self._committed) + len(self._staging)

    @property
    def fitted(self) -> bool:
        return self._coefficients is not None

    @property
    def coefficients(self) -> Optional[RegressionCoefficients]:
        return self._coefficients

    @property
    def refit_worker(self) -> Optional[RefitWorker]:
        return self._worker

    def _check_dimension(self, features: np.ndarray):
        if self._feature_dimension is None:
            self._feature_dimension = features.shape[0]
        elif features.shape[0] != self._feature_dimension:
            raise FeatureDimensionError(self._feature_dimension, features.shape[0])

    def add(self, features: Sequence[float], target: Tuple[float, float]) -> Optional[FitStatus]:
        """
        Stage a training sample and apply the retraining policy.

        Args:
            features: Feature vector for the current frame
            target: Screen position the user is looking at

        Returns:
            Fit status if a synchronous fit ran, else None. Samples with
            non-finite values are dropped and never reach the design matrix.
        """
        features = np.array(features, dtype=float).ravel()
        self._check_dimension(features)

        target = (float(target[0]), float(target[1]))
        if not (np.all(np.isfinite(features)) and np.all(np.isfinite(target))):
            logger.warning("Dropping calibration sample with non-finite features or target")
            return None

        self._staging.append(CalibrationSample(features=features, target=target))
        self._samples_since_fit += 1

        logger.debug(f"Sample staged - staging: {len(self._staging)}, committed: {len(self._committed)}")

        if (self.policy is RetrainPolicy.EVERY_SAMPLE
                or self._samples_since_fit >= self.config.batch_size
                or len(self._staging) >= self.config.staging_capacity):
            self._samples_since_fit = 0
            return self.request_refit()
        return None

    def commit(self) -> int:
        """
        Lock in staged samples for the current calibration target.

        Returns:
            Number of samples moved to the committed set
        """
        moved = len(self._staging)
        self._committed.extend(self._staging)
        self._staging.clear()
        self._samples_since_fit = 0
        logger.debug(f"Committed {moved} samples, total committed: {len(self._committed)}")
        return moved

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------

    def _prepare_job(self) -> Optional[_FitJob]:
        samples: List[CalibrationSample] = list(self._committed) + list(self._staging)
        if not samples:
            return None
        columns = samples[0].features.shape[0] + 1
        if len(samples) <= columns:
            logger.debug(f"Not enough samples to fit: {len(samples)} rows, need > {columns}")
            return None

        self._generation += 1
        return _FitJob(
            features=np.vstack([s.features for s in samples]),
            targets=np.array([s.target for s in samples], dtype=float),
            epoch=self._epoch,
            generation=self._generation,
        )

    def _solve_axes(self, design: np.ndarray, targets: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        pool = self._axis_pool
        if pool is not None:
            future_x = pool.submit(solve_ols, design, targets[:, 0])
            future_y = pool.submit(solve_ols, design, targets[:, 1])
            return future_x.result(), future_y.result()
        return solve_ols(design, targets[:, 0]), solve_ols(design, targets[:, 1])

    def _run_job(self, job: _FitJob) -> FitStatus:
        start = time.perf_counter()
        try:
            beta_x, beta_y = self._solve_axes(build_design_matrix(job.features), job.targets)
        except SingularDesignMatrixError as e:
            logger.warning(f"Fit aborted, keeping previous coefficients: {e}")
            with self._publish_lock:
                if self.performance_monitoring:
                    self.timings.singular_count += 1
                self.last_status = FitStatus.SINGULAR
            return FitStatus.SINGULAR
        elapsed = time.perf_counter() - start

        with self._publish_lock:
            if job.epoch != self._epoch or job.generation <= self._published_generation:
                logger.debug("Dropping superseded fit result")
                return FitStatus.SUPERSEDED

            self._version += 1
            self._coefficients = RegressionCoefficients(
                beta_x=beta_x,
                beta_y=beta_y,
                n_samples=job.features.shape[0],
                version=self._version,
            )
            self._published_generation = job.generation
            self.last_status = FitStatus.FITTED

            if self.performance_monitoring:
                self.timings.fit_count += 1
                self.timings.total_fit_time += elapsed
                self.timings.last_fit_time = elapsed
                logger.debug(f"Fit took {elapsed * 1000:.2f} ms, avg {self.timings.mean_fit_time * 1000:.2f} ms")

        logger.debug(f"Model fitted on {job.features.shape[0]} samples (version {self._version})")
        return FitStatus.FITTED

    def fit(self) -> FitStatus:
        """
        Fit both axes synchronously on committed + staged samples.

        Returns:
            FITTED, INSUFFICIENT_DATA (no-op) or SINGULAR (previous fit kept)
        """
        job = self._prepare_job()
        if job is None:
            self.last_status = FitStatus.INSUFFICIENT_DATA
            return FitStatus.INSUFFICIENT_DATA
        return self._run_job(job)

    def request_refit(self) -> Optional[FitStatus]:
        """
        Schedule a fit according to the configuration.

        With background refit enabled the fit is handed to the worker thread
        and None is returned; otherwise the fit runs inline.
        """
        if self._worker is None:
            return self.fit()

        job = self._prepare_job()
        if job is None:
            self.last_status = FitStatus.INSUFFICIENT_DATA
            return FitStatus.INSUFFICIENT_DATA
        self._worker.submit(lambda: self._run_job(job))
        return None

    def wait_for_refit(self, timeout: Optional[float] = None) -> bool:
        """Block until no background fit is pending or running."""
        if self._worker is None:
            return True
        return self._worker.wait_until_idle(timeout)

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(self, features: Sequence[float]) -> Optional[Tuple[float, float]]:
        """
        Map a feature vector to a screen position.

        Returns:
            (x, y) or None if no fit has succeeded yet

        Raises:
            FeatureDimensionError: feature length differs from the fitted model
        """
        coefficients = self._coefficients
        if coefficients is None:
            return None
        return coefficients.predict(np.asarray(features, dtype=float))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self):
        """Drop all samples and coefficients; in-flight fits are discarded."""
        if self._worker is not None:
            self._worker.cancel_pending()
        with self._publish_lock:
            self._epoch += 1
            self._coefficients = None
            self._published_generation = -1
            self.timings = FitTimings()
            self.last_status = None
        self._committed.clear()
        self._staging.clear()
        self._feature_dimension = None
        self._samples_since_fit = 0
        logger.debug("Regression model reset")

    def close(self):
        """Stop background threads."""
        if self._worker is not None:
            self._worker.close()
        if self._axis_pool is not None:
            self._axis_pool.shutdown(wait=True)
            self._axis_pool = None
