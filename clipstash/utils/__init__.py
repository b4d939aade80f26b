"""Utility modules"""

from .config_manager import ConfigManager
from .paths import get_data_dir

__all__ = ['ConfigManager', 'get_data_dir']
