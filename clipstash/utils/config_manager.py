"""Configuration management module"""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from loguru import logger

from .paths import get_data_dir

DEFAULTS_PATH = Path(__file__).parent.parent / 'config' / 'default_settings.yaml'

BACKENDS = ('qt', 'pyperclip', 'memory')


class ConfigManager:
    """Manages application configuration"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_path: Path to configuration file
        """
        if config_path is None:
            config_path = str(get_data_dir() / 'settings.yaml')

        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self._load_defaults()
        self._load_config()

    def _load_defaults(self):
        """Load default configuration"""
        try:
            if DEFAULTS_PATH.exists():
                with open(DEFAULTS_PATH, 'r', encoding='utf-8') as f:
                    self.config = yaml.safe_load(f) or {}
                logger.debug("Loaded default configuration")
            else:
                logger.warning(f"Default config not found: {DEFAULTS_PATH}")
                self._create_default_config()

        except Exception as e:
            logger.error(f"Failed to load defaults: {e}")
            self._create_default_config()

    def _create_default_config(self):
        """Create default configuration in memory"""
        self.config = {
            'clipboard': {
                'backend': 'qt',
                'check_interval': 500,
                'copied_signal_seconds': 1.0
            },
            'history': {
                'max_history_length': 50,
                'auto_delete_days': 0,
                'auto_delete_count': 0
            },
            'storage': {
                'database_path': None
            },
            'cleanup': {
                'enabled': True,
                'cleanup_interval': 3600,
                'vacuum': True
            },
            'logging': {
                'level': 'INFO',
                'file_logging': True,
                'retention': '7 days'
            }
        }

    def _load_config(self):
        """Load user configuration"""
        try:
            if os.path.exists(self.config_path):
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    user_config = yaml.safe_load(f) or {}

                self._merge_config(self.config, user_config)
                logger.info(f"Loaded user configuration from {self.config_path}")

        except Exception as e:
            logger.error(f"Failed to load user config: {e}")

    def _merge_config(self, base: Dict, updates: Dict):
        """
        Recursively merge configuration dictionaries

        Args:
            base: Base configuration
            updates: Updates to apply
        """
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def save(self) -> bool:
        """Save current configuration to file"""
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.config_path)), exist_ok=True)

            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self.config, f, default_flow_style=False)

            logger.info(f"Configuration saved to {self.config_path}")
            return True

        except Exception as e:
            logger.error(f"Failed to save configuration: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            key: Configuration key (dot notation supported)
            default: Default value if not found

        Returns:
            Configuration value
        """
        value = self.config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """
        Set configuration value

        Args:
            key: Configuration key (dot notation supported)
            value: Value to set
        """
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        logger.debug(f"Set config: {key} = {value}")

    def get_all(self) -> Dict[str, Any]:
        """Get entire configuration"""
        return copy.deepcopy(self.config)

    def reset(self):
        """Reset to default configuration"""
        self._load_defaults()
        logger.info("Configuration reset to defaults")

    def validate(self) -> bool:
        """
        Validate configuration

        Returns:
            True if valid
        """
        required = [
            'clipboard.backend',
            'clipboard.check_interval',
            'history.max_history_length',
        ]

        for key in required:
            if self.get(key) is None:
                logger.error(f"Missing required config: {key}")
                return False

        if self.get('clipboard.backend') not in BACKENDS:
            logger.error(f"Unknown clipboard backend: {self.get('clipboard.backend')}")
            return False

        checks = [
            ('clipboard.check_interval', 100, "Check interval too small (min 100ms)"),
            ('history.max_history_length', 10, "History length too small (min 10)"),
            ('history.auto_delete_days', 0, "Auto delete days cannot be negative"),
            ('history.auto_delete_count', 0, "Auto delete count cannot be negative"),
        ]
        for key, minimum, message in checks:
            value = self.get(key, minimum)
            if not isinstance(value, (int, float)) or value < minimum:
                logger.error(message)
                return False

        return True
