"""Configuration management for SMB backup."""

import copy
import os
import yaml
from typing import Dict, Any, Optional
from .config_validator import ConfigValidator


class ConfigManager:
    """Loads, validates and fills in defaults for the backup configuration."""

    DEFAULT_CONFIG_LOCATIONS = [
        "config.yaml",
        "config.yml",
        os.path.expanduser("~/.smb-backup/config.yaml"),
        os.path.expanduser("~/.smb-backup/config.yml"),
        "/etc/smb-backup/config.yaml",
        "/etc/smb-backup/config.yml"
    ]

    DEFAULTS = {
        'credentials_file': '~/.backup/smbcredentials',
        'mount_root': '/tmp',
        'folder_format': '%Y_%m_%d - %H_%M',
        'use_sudo': True,
        'strict': False,
        'mount_options': {
            'iocharset': 'utf8'
        },
        'logging': {
            'level': 'INFO',
            'file': '~/.backup/backup.log'
        },
        'notifications': {
            'desktop': True
        }
    }

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional path to config file. If not provided,
                        will search in default locations.
        """
        self.config_path = config_path
        self.config_data: Dict[str, Any] = {}
        self.validator = ConfigValidator()

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from file.

        Returns:
            Dictionary containing configuration data.

        Raises:
            FileNotFoundError: If config file cannot be found.
            ValueError: If config file is invalid.
        """
        config_file = self._find_config_file()

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                self.config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {config_file}: {e}")
        except OSError as e:
            raise ValueError(f"Error reading config file {config_file}: {e}")

        self.validator.validate(self.config_data)
        self._set_defaults()

        return self.config_data

    def load_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate an in-memory configuration and merge defaults."""
        self.config_data = copy.deepcopy(data)
        self.validator.validate(self.config_data)
        self._set_defaults()
        return self.config_data

    def _find_config_file(self) -> str:
        """Find configuration file in default locations.

        Returns:
            Path to configuration file.

        Raises:
            FileNotFoundError: If no config file is found.
        """
        if self.config_path:
            if os.path.exists(self.config_path):
                return self.config_path
            else:
                raise FileNotFoundError(f"Config file not found: {self.config_path}")

        for location in self.DEFAULT_CONFIG_LOCATIONS:
            if os.path.exists(location):
                return location

        raise FileNotFoundError(
            f"Configuration file not found in any of these locations:\n" +
            "\n".join(f"  - {loc}" for loc in self.DEFAULT_CONFIG_LOCATIONS) +
            "\n\nPlease copy config.example.yaml to config.yaml and customize it."
        )

    def _set_defaults(self):
        """Merge default values for optional parameters (one level deep)."""
        for key, default in self.DEFAULTS.items():
            if key not in self.config_data or self.config_data[key] is None:
                self.config_data[key] = copy.deepcopy(default)
            elif isinstance(default, dict) and isinstance(self.config_data[key], dict):
                for sub_key, value in default.items():
                    self.config_data[key].setdefault(sub_key, value)

