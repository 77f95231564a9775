"""
Shared utilities: logging setup and YAML configuration loading
"""

from eyegaze.utils.config_loader import load_config
from eyegaze.utils.logger import setup_logger, setup_from_config, get_logger

__all__ = [
    'load_config',
    'setup_logger',
    'setup_from_config',
    'get_logger',
]
