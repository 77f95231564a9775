"""
Tests for configuration loading and logging setup
"""

import logging
from pathlib import Path

import pytest

from eyegaze.config import CalibrationConfig, LoggingConfig, SessionConfig
from eyegaze.utils import get_logger, load_config, setup_from_config, setup_logger


CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.yaml"


class TestLoadConfig:
    """Tests for the YAML loader"""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == {}

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestSessionConfig:
    """Tests for the typed session configuration"""

    def test_defaults(self):
        config = SessionConfig()
        assert config.features.feature_dimension == 62
        assert config.calibration.batch_size == 10
        assert config.calibration.staging_capacity == 40
        assert config.prediction.cache_size == 50
        assert config.segmentation.fixation_radius == 50.0
        assert config.performance_monitoring is False

    def test_shipped_config(self):
        """Test the bundled config file loads"""
        config = SessionConfig.load(str(CONFIG_PATH))
        assert config.features.feature_dimension == 62
        assert config.prediction.moving_average_window == 10
        assert config.calibration.retrain_policy == "batched"
        assert config.logging.log_directory == "logs"

    def test_partial_sections(self, tmp_path):
        """Test missing keys keep defaults and unknown keys are ignored"""
        path = tmp_path / "config.yaml"
        path.write_text(
            "segmentation:\n"
            "  fixation_radius: 25\n"
            "  unknown_key: 1\n"
            "performance_monitoring: true\n"
        )
        config = SessionConfig.load(str(path))
        assert config.segmentation.fixation_radius == 25
        assert config.segmentation.min_fixation_duration == 100.0
        assert config.calibration.batch_size == 10
        assert config.performance_monitoring is True

    def test_from_dict_none(self):
        assert SessionConfig.from_dict(None) == SessionConfig()

    def test_invalid_retrain_policy(self):
        with pytest.raises(ValueError):
            SessionConfig.from_dict({'calibration': {'retrain_policy': 'sometimes'}})

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            CalibrationConfig(batch_size=0)
        with pytest.raises(ValueError):
            CalibrationConfig(staging_capacity=0)
        with pytest.raises(ValueError):
            CalibrationConfig(max_committed_samples=0)


class TestLogger:
    """Tests for logger setup"""

    def test_console_only(self):
        logger = setup_logger(name="eyegaze.test.console", log_level="DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert get_logger("eyegaze.test.console") is logger

    def test_file_handler(self, tmp_path):
        logger = setup_logger(
            name="eyegaze.test.file",
            log_dir=str(tmp_path),
            log_file="session.log",
            console_output=False
        )
        logger.info("calibration started")
        for handler in logger.handlers:
            handler.flush()

        log_path = tmp_path / "session.log"
        assert log_path.exists()
        assert "calibration started" in log_path.read_text()

    def test_repeated_setup_replaces_handlers(self):
        setup_logger(name="eyegaze.test.repeat")
        logger = setup_logger(name="eyegaze.test.repeat")
        assert len(logger.handlers) == 1

    def test_unknown_level_defaults_to_info(self):
        logger = setup_logger(name="eyegaze.test.level", log_level="verbose", console_output=False)
        assert logger.level == logging.INFO

    def test_setup_from_config(self, tmp_path):
        """Test the package logger follows the logging section"""
        config = LoggingConfig(level="WARNING", log_directory=str(tmp_path), log_file="run.log", console_output=False)
        logger = setup_from_config(config, level_override="DEBUG")
        assert logger.name == "eyegaze"
        assert logger.level == logging.DEBUG
        assert (tmp_path / "run.log").exists()
        setup_logger(name="eyegaze", console_output=False)
