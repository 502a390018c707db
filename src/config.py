"""
Configuration module for the crash round engine
Centralizes game constants, limits and logging settings with validation
"""

import json
import logging
import math
import os
import threading
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Union


class ConfigError(Exception):
    """Configuration validation error"""
    pass


def _safe_int_env(name: str, default: int, min_val: int = None, max_val: int = None) -> int:
    """
    Safely parse integer environment variable with bounds.
    Falls back to default on invalid values.
    """
    logger_local = logging.getLogger(__name__)
    try:
        value = int(os.getenv(name, str(default)))
        if min_val is not None:
            value = max(min_val, value)
        if max_val is not None:
            value = min(max_val, value)
        return value
    except (ValueError, TypeError):
        logger_local.warning(f"Invalid {name}, using default {default}")
        return default


def _safe_float_env(name: str, default: float, min_val: float = None, max_val: float = None) -> float:
    """Float counterpart of _safe_int_env (rejects NaN/Infinity)."""
    logger_local = logging.getLogger(__name__)
    try:
        value = float(os.getenv(name, str(default)))
        if not math.isfinite(value):
            raise ValueError(value)
        if min_val is not None:
            value = max(min_val, value)
        if max_val is not None:
            value = min(max_val, value)
        return value
    except (ValueError, TypeError):
        logger_local.warning(f"Invalid {name}, using default {default}")
        return default


class Config:
    """
    Configuration management with:
    - Environment variable overrides
    - Safe defaults
    - Validation
    - JSON load/save for custom settings
    """

    # ========== Financial Settings ==========
    # Currency is held in integer units (e.g. cents); bets are whole units.
    FINANCIAL = {
        'initial_balance': 10000,
    }

    # ========== Game Rules ==========
    GAME_RULES = {
        'house_edge': _safe_float_env('CRASH_HOUSE_EDGE', 0.01, 0.0, 0.99),
        'growth_rate': 0.00006,  # per millisecond
        'max_multiplier': 100.0,
        'min_auto_cashout': Decimal('1.01'),
        'tick_interval_ms': _safe_int_env('CRASH_TICK_INTERVAL_MS', 100, 10, 1000),
        'countdown_ms': _safe_int_env('CRASH_COUNTDOWN_MS', 3000, 0, 60000),
        'cooldown_ms': _safe_int_env('CRASH_COOLDOWN_MS', 3000, 0, 60000),
    }

    # ========== Memory Management ==========
    MEMORY = {
        'history_size': _safe_int_env('CRASH_HISTORY_SIZE', 15, 1, 1000),
        'max_transaction_log': 1000,
    }

    # ========== Logging Settings ==========
    LOGGING = {
        'level': os.getenv('LOG_LEVEL', 'INFO'),
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'date_format': '%Y-%m-%d %H:%M:%S',
        'log_dir': os.getenv('CRASH_LOG_DIR', str(Path.home() / '.crash_engine' / 'logs')),
        'max_bytes': 5 * 1024 * 1024,
        'backup_count': 3,
        'json_logs': False,
    }

    _SECTIONS = ('financial', 'game_rules', 'memory', 'logging')

    def __init__(self, config_file: Optional[str] = None, validate: bool = True):
        """
        Initialize configuration with optional validation

        Args:
            config_file: Optional path to JSON config file
            validate: Whether to validate configuration on init
        """
        self._lock = threading.RLock()
        self.config_file = config_file
        self._custom_settings: Dict[str, Dict[str, Any]] = {}

        if config_file:
            self.load_from_file(config_file)

        if validate:
            self.validate()

    def validate(self):
        """
        Validate all configuration values

        Raises:
            ConfigError: If configuration is invalid
        """
        errors = []

        if self.get('financial', 'initial_balance') < 0:
            errors.append("initial_balance cannot be negative")

        house_edge = self.get('game_rules', 'house_edge')
        if not 0 <= house_edge < 1:
            errors.append("house_edge must be in [0, 1)")
        if self.get('game_rules', 'growth_rate') <= 0:
            errors.append("growth_rate must be positive")
        if self.get('game_rules', 'max_multiplier') <= 1:
            errors.append("max_multiplier must be greater than 1")
        if self.get('game_rules', 'min_auto_cashout') <= 1:
            errors.append("min_auto_cashout must be greater than 1")
        if self.get('game_rules', 'tick_interval_ms') <= 0:
            errors.append("tick_interval_ms must be positive")
        for key in ('countdown_ms', 'cooldown_ms'):
            if self.get('game_rules', key) < 0:
                errors.append(f"{key} cannot be negative")

        if self.get('memory', 'history_size') < 1:
            errors.append("history_size must be at least 1")

        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if str(self.get('logging', 'level')).upper() not in valid_levels:
            errors.append(f"Invalid log level: {self.get('logging', 'level')}")

        if errors:
            raise ConfigError("Configuration validation failed:\n" + "\n".join(errors))

    def load_from_file(self, filepath: Union[str, Path]):
        """
        Load custom settings from a JSON file

        Unknown sections are kept but ignored by get().
        """
        filepath = Path(filepath)
        logger_local = logging.getLogger(__name__)

        if not filepath.exists():
            logger_local.warning(f"Config file not found: {filepath}")
            return

        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file: {e}") from e
        except OSError as e:
            raise ConfigError(f"Error loading config file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a JSON object")

        with self._lock:
            for section, values in data.items():
                if isinstance(values, dict):
                    self._custom_settings[section.lower()] = self._deserialize_dict(values)

        logger_local.info(f"Loaded configuration from {filepath}")

    def save_to_file(self, filepath: Union[str, Path]):
        """Save the effective configuration to a JSON file"""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w') as f:
            json.dump(self.to_dict(serialize=True), f, indent=2)

        logging.getLogger(__name__).info(f"Saved configuration to {filepath}")

    def _serialize_dict(self, d: dict) -> dict:
        result = {}
        for key, value in d.items():
            if isinstance(value, Decimal):
                result[key] = {'__decimal__': str(value)}
            else:
                result[key] = value
        return result

    def _deserialize_dict(self, d: dict) -> dict:
        result = {}
        for key, value in d.items():
            if isinstance(value, dict) and '__decimal__' in value:
                result[key] = Decimal(value['__decimal__'])
            else:
                result[key] = value
        return result

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value, custom settings first

        Args:
            section: Configuration section name
            key: Configuration key
            default: Default value if not found
        """
        with self._lock:
            custom = self._custom_settings.get(section.lower(), {})
            if key in custom:
                return custom[key]

            section_dict = getattr(self, section.upper(), None)
            if isinstance(section_dict, dict):
                return section_dict.get(key, default)

        return default

    def set(self, section: str, key: str, value: Any):
        """Set a custom configuration value"""
        with self._lock:
            self._custom_settings.setdefault(section.lower(), {})[key] = value

    def reset(self):
        """Drop all custom settings"""
        with self._lock:
            self._custom_settings.clear()

    def section(self, name: str) -> Dict[str, Any]:
        """Effective values for one section (defaults merged with custom settings)"""
        base = getattr(self, name.upper(), None)
        if not isinstance(base, dict):
            raise KeyError(f"Unknown config section: {name}")
        with self._lock:
            merged = dict(base)
            merged.update(self._custom_settings.get(name.lower(), {}))
        return merged

    def to_dict(self, serialize: bool = False) -> dict:
        """Export effective configuration as dictionary"""
        result = {}
        for name in self._SECTIONS:
            values = self.section(name)
            result[name] = self._serialize_dict(values) if serialize else values
        return result


# Global configuration instance.
#
# Keep this import side-effect free: validation and logging setup happen in
# an explicit startup path (see `src/main.py`).
config = Config(validate=False)
