"""Configuration utilities for Financial GPS."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class Config:
    """Application configuration manager."""

    DEFAULT_CONFIG = {
        'max_simulation_months': 600,
        'default_strategy': 'avalanche',
        'export_directory': '.',
        'log_level': 'WARNING',
        'currency_format': '"$"#,##0.00',
    }

    def __init__(self, config_path: Optional[Path] = None):
        if config_path is None:
            config_path = Path(__file__).parent.parent.parent / "config.json"
        self.config_path = Path(config_path)
        self._config = self.DEFAULT_CONFIG.copy()
        self._load()

    def _load(self):
        """Load configuration from file, keeping defaults for anything missing."""
        if not self.config_path.exists():
            return
        try:
            with open(self.config_path, 'r') as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read config %s, using defaults: %s", self.config_path, e)
            return
        if not isinstance(loaded, dict):
            logger.warning("Config %s is not a JSON object, using defaults", self.config_path)
            return
        self._config.update(loaded)

    def save(self):
        """Save configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            logger.error("Could not save config %s: %s", self.config_path, e)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set a configuration value."""
        self._config[key] = value

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()
