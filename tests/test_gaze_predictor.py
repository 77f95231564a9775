"""
Tests for gaze prediction, caching and smoothing
"""

import numpy as np
import pytest

from eyegaze.calibration.regression import IncrementalRegressionModel, build_design_matrix
from eyegaze.config import CalibrationConfig, PredictionConfig
from eyegaze.prediction.cache import PredictionCache
from eyegaze.prediction.filters import KalmanFilter, MovingAverageSmoother
from eyegaze.prediction.gaze_predictor import GazePredictor


def fitted_model(offset: float = 0.0, n: int = 20, seed: int = 0) -> IncrementalRegressionModel:
    model = IncrementalRegressionModel(
        CalibrationConfig(background_refit=False, parallel_axes=False, batch_size=1000, staging_capacity=1000)
    )
    add_samples(model, offset, n, seed)
    model.fit()
    return model


def add_samples(model, offset: float, n: int, seed: int):
    rng = np.random.default_rng(seed)
    features = rng.uniform(0.0, 1.0, size=(n, 2))
    design = build_design_matrix(features)
    for f, row in zip(features, design):
        model.add(f, (row @ [offset, 1.0, 0.5], row @ [offset, -0.5, 2.0]))


class TestKalmanFilter:
    """Tests for the per-axis Kalman filter"""

    def test_initialization(self):
        """Test filter initializes correctly"""
        kf = KalmanFilter()
        assert kf.state is not None
        assert kf.covariance is not None
        assert kf.initialized is False

    def test_predict(self):
        """Test prediction step grows the uncertainty"""
        kf = KalmanFilter(process_noise=0.01, initial_uncertainty=1.0)
        prediction = kf.predict()
        assert prediction.shape == (2,)
        assert kf.covariance == pytest.approx([1.01, 1.01])

    def test_update(self):
        """Test update step"""
        kf = KalmanFilter()
        kf.predict()
        updated = kf.update(np.array([0.5, 0.5]))
        assert updated.shape == (2,)

    def test_first_measurement_seeds_state(self):
        """Test the first point is returned as-is"""
        kf = KalmanFilter()
        assert kf.filter(300.0, 200.0) == pytest.approx((300.0, 200.0))
        assert kf.initialized is True

    def test_step_response(self):
        """Test a jump is followed partially, then converged on"""
        kf = KalmanFilter(process_noise=0.01, measurement_noise=0.1)
        kf.filter(0.0, 0.0)
        x, y = kf.filter(10.0, -10.0)
        assert 0.0 < x < 10.0
        assert -10.0 < y < 0.0

        for _ in range(50):
            x, y = kf.filter(10.0, -10.0)
        assert x == pytest.approx(10.0, abs=1e-3)
        assert y == pytest.approx(-10.0, abs=1e-3)

    def test_reduces_noise(self):
        """Test filtered output varies less than the noisy input"""
        rng = np.random.default_rng(3)
        kf = KalmanFilter(process_noise=0.001, measurement_noise=1.0)
        raw = 100.0 + rng.normal(scale=5.0, size=(200, 2))
        filtered = np.array([kf.filter(x, y) for x, y in raw])
        assert filtered[50:].std(axis=0).max() < raw[50:].std(axis=0).min()

    def test_reset(self):
        """Test reset forgets the seeded state"""
        kf = KalmanFilter()
        kf.filter(5.0, 6.0)
        assert kf.initialized is True

        kf.reset()
        assert kf.initialized is False
        assert kf.covariance == pytest.approx([1.0, 1.0])


class TestMovingAverageSmoother:
    """Tests for the moving average smoother"""

    def test_window_mean(self):
        """Test output is the mean of the last window points"""
        smoother = MovingAverageSmoother(window=3)
        smoother.apply((0.0, 0.0))
        smoother.apply((3.0, 3.0))
        assert smoother.apply((6.0, 6.0)) == pytest.approx((3.0, 3.0))
        assert smoother.apply((9.0, 9.0)) == pytest.approx((6.0, 6.0))
        assert len(smoother) == 3

    def test_reset(self):
        smoother = MovingAverageSmoother(window=2)
        smoother.apply((1.0, 1.0))
        smoother.reset()
        assert len(smoother) == 0
        assert smoother.apply((3.0, 5.0)) == (3.0, 5.0)

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            MovingAverageSmoother(window=0)


class TestPredictionCache:
    """Tests for the LRU prediction cache"""

    def test_lru_eviction(self):
        """Test the least recently used entry is evicted"""
        cache = PredictionCache(max_size=2)
        cache.put("a", (1.0, 1.0))
        cache.put("b", (2.0, 2.0))
        cache.get("a")
        cache.put("c", (3.0, 3.0))

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert len(cache) == 2

    def test_hits_and_misses(self):
        cache = PredictionCache(max_size=4)
        assert cache.get("x") is None
        cache.put("x", (0.0, 0.0))
        assert cache.get("x") == (0.0, 0.0)
        assert cache.hits == 1
        assert cache.misses == 1


class TestGazePredictor:
    """Tests for the GazePredictor class"""

    def test_unfitted_model(self):
        """Test no prediction before the first fit"""
        model = IncrementalRegressionModel(CalibrationConfig(background_refit=False, parallel_axes=False))
        predictor = GazePredictor(model)
        assert predictor.predict([0.5, 0.5]) is None

    def test_raw_prediction_without_filter(self):
        """Test output equals the regression when smoothing is disabled"""
        model = fitted_model()
        predictor = GazePredictor(model, PredictionConfig(kalman_enabled=False))
        features = np.array([0.4, 0.6])
        assert predictor.predict(features) == pytest.approx(model.predict(features))

    def test_cache_hit_returns_same_value(self):
        """Test a repeated feature vector is served from the cache"""
        model = fitted_model()
        predictor = GazePredictor(model, PredictionConfig(kalman_enabled=False))
        features = np.array([0.4, 0.6])

        first = predictor.predict(features)
        second = predictor.predict(features.copy())
        assert first == second
        assert predictor.cache.hits == 1
        assert predictor.cache.misses == 1

    def test_cache_does_not_change_output(self):
        """Test enabling the cache leaves the filtered output unchanged"""
        model = fitted_model()
        cached = GazePredictor(model, PredictionConfig(cache_enabled=True))
        uncached = GazePredictor(model, PredictionConfig(cache_enabled=False))
        assert uncached.cache is None

        rng = np.random.default_rng(5)
        stream = [rng.uniform(size=2) for _ in range(5)]
        stream = stream + stream
        for features in stream:
            assert cached.predict(features) == pytest.approx(uncached.predict(features))

    def test_cache_invalidated_on_refit(self):
        """Test no stale prediction survives new coefficients"""
        model = fitted_model()
        predictor = GazePredictor(model, PredictionConfig(kalman_enabled=False))
        features = np.array([0.4, 0.6])
        before = predictor.predict(features)

        add_samples(model, offset=10.0, n=20, seed=1)
        model.fit()

        after = predictor.predict(features)
        assert after == pytest.approx(model.predict(features))
        assert after != pytest.approx(before)
        assert len(predictor.cache) == 1

    def test_kalman_smoothing_applied(self):
        """Test a jump in raw predictions is damped"""
        model = fitted_model()
        predictor = GazePredictor(model)
        a = np.array([0.0, 0.0])
        b = np.array([1.0, 1.0])

        assert predictor.predict(a) == pytest.approx(model.predict(a))
        x, _ = predictor.predict(b)
        raw_a, raw_b = model.predict(a)[0], model.predict(b)[0]
        assert min(raw_a, raw_b) < x < max(raw_a, raw_b)

    def test_performance_monitoring(self):
        model = fitted_model()
        predictor = GazePredictor(model, performance_monitoring=True)
        for _ in range(3):
            predictor.predict([0.2, 0.3])
        assert predictor.timings.prediction_count == 3

    def test_reset(self):
        """Test reset clears cache and filter state"""
        model = fitted_model()
        predictor = GazePredictor(model)
        predictor.predict([0.2, 0.3])
        predictor.reset()
        assert len(predictor.cache) == 0
        assert predictor.cache.hits == 0
        assert predictor.kalman_filter.initialized is False

    def test_repeated_vector_with_kalman(self):
        """Test a cache hit still steps the Kalman filter"""
        model = fitted_model()
        cached = GazePredictor(model, PredictionConfig())
        uncached = GazePredictor(model, PredictionConfig(cache_enabled=False))
        a = np.array([0.0, 0.0])
        b = np.array([1.0, 1.0])
        raw_b = model.predict(b)[0]

        outputs = []
        for features in (a, b, b):
            x, y = cached.predict(features)
            assert (x, y) == pytest.approx(uncached.predict(features))
            outputs.append(x)

        assert cached.cache.hits == 1
        assert outputs[1] != pytest.approx(outputs[2])
        assert abs(raw_b - outputs[2]) < abs(raw_b - outputs[1])
