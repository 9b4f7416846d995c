"""GeoFuse Core Configuration - Simple Configuration Management"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, Any, Optional, List

import yaml

from .constants import (
    PRIORITY_EDGE, PRIORITY_MAXMIND, PRIORITY_IPINFO,
    DEFAULT_PROVIDER_TIMEOUT, DEFAULT_THREAT_TIMEOUT,
    MAXMIND_DEFAULT_URL, IPINFO_DEFAULT_URL, DEFAULT_RISK_THRESHOLDS,
    DEFAULT_LOG_LEVEL,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variables holding provider credentials
ENV_OVERRIDES = {
    'GEOFUSE_MAXMIND_ACCOUNT_ID': 'maxmind_account_id',
    'GEOFUSE_MAXMIND_LICENSE_KEY': 'maxmind_license_key',
    'GEOFUSE_IPINFO_TOKEN': 'ipinfo_token',
}


def _default_priorities() -> Dict[str, int]:
    return {'edge': PRIORITY_EDGE, 'maxmind': PRIORITY_MAXMIND, 'ipinfo': PRIORITY_IPINFO}


def _default_providers() -> Dict[str, bool]:
    return {'edge': True, 'maxmind': True, 'ipinfo': True}


def _default_detection() -> Dict[str, bool]:
    return {
        'vpn': True,
        'proxy': True,
        'tor': True,
        'bot': True,
        'reputation': True,
        'malicious': True,
    }


def _default_risk_weights() -> Dict[str, float]:
    # Signals without an entry fall back to their own risk score
    return {'bot': 15, 'malicious': 60}


# ===============================================================================
# CONFIGURATION DATA CLASS
# ===============================================================================

@dataclass
class GeoFuseConfig:
    """Main configuration settings"""

    # Provider settings
    providers: Dict[str, bool] = field(default_factory=_default_providers)
    provider_priorities: Dict[str, int] = field(default_factory=_default_priorities)
    provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT

    # MaxMind GeoIP2 web service
    maxmind_url: str = MAXMIND_DEFAULT_URL
    maxmind_account_id: Optional[str] = None
    maxmind_license_key: Optional[str] = None

    # IPInfo
    ipinfo_url: str = IPINFO_DEFAULT_URL
    ipinfo_token: Optional[str] = None

    # Threat detection settings
    # Attach a threat assessment to every lookup, not only with --threat
    enable_threat_check: bool = False
    threat_timeout: float = DEFAULT_THREAT_TIMEOUT
    threat_detection: Dict[str, bool] = field(default_factory=_default_detection)
    risk_weights: Dict[str, float] = field(default_factory=_default_risk_weights)
    risk_thresholds: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RISK_THRESHOLDS))

    # Logging settings
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None


# ===============================================================================
# CONFIGURATION MANAGER
# ===============================================================================

class ConfigManager:
    """Simple and efficient configuration manager"""

    def __init__(self, config_path: Optional[str] = None, cli_overrides: Optional[Dict[str, Any]] = None,
                 use_environment: bool = True):
        self.config_path = config_path
        self.config = GeoFuseConfig()
        self.cli_overrides = cli_overrides or {}
        self.use_environment = use_environment
        self._load_config()

    def _load_config(self):
        """Load configuration from file, environment and CLI overrides"""
        if self.config_path:
            if not os.path.exists(self.config_path):
                raise ConfigurationError("Configuration file not found", config_file=self.config_path)
            self._apply(self._read_file(self.config_path))

        if self.use_environment:
            self._apply_environment()

        # CLI overrides have the highest priority
        self._apply(self.cli_overrides)

    def _read_file(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.endswith('.json'):
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config: {e}", config_file=path) from e

        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping", config_file=path)
        logger.debug(f"Loaded configuration from {path}")
        return data

    def _apply(self, data: Dict[str, Any]):
        for key, value in data.items():
            if value is None:
                continue
            if not hasattr(self.config, key):
                logger.warning(f"Ignoring unknown configuration key: {key}")
                continue
            current = getattr(self.config, key)
            if isinstance(current, dict) and isinstance(value, dict):
                # Partial tables merge into the defaults
                merged = dict(current)
                merged.update(value)
                setattr(self.config, key, merged)
            else:
                setattr(self.config, key, value)

    def _apply_environment(self):
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                setattr(self.config, key, value)

    def save_config(self, path: Optional[str] = None):
        """Save current configuration to file"""
        target = path or self.config_path
        if not target:
            raise ConfigurationError("No configuration path to save to")

        config_data = asdict(self.config)
        try:
            Path(target).parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'w', encoding='utf-8') as f:
                if target.endswith('.json'):
                    json.dump(config_data, f, indent=2)
                else:
                    yaml.safe_dump(config_data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(f"Failed to save config: {e}", config_file=target) from e

        logger.info(f"Configuration saved to: {target}")
        return target

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value"""
        return getattr(self.config, key, default)

    def set(self, key: str, value: Any):
        """Set configuration value"""
        if not hasattr(self.config, key):
            raise ConfigurationError(f"Unknown configuration key: {key}", config_key=key)
        setattr(self.config, key, value)

    def update(self, **kwargs):
        """Update multiple configuration values"""
        for key, value in kwargs.items():
            self.set(key, value)

    def validate(self) -> List[str]:
        """Validate configuration settings"""
        errors = []

        if self.config.provider_timeout <= 0:
            errors.append("provider_timeout must be positive")
        if self.config.threat_timeout <= 0:
            errors.append("threat_timeout must be positive")

        for name, priority in self.config.provider_priorities.items():
            if not isinstance(priority, (int, float)) or priority <= 0:
                errors.append(f"provider priority for {name} must be a positive number")

        unknown = set(self.config.providers) - set(_default_providers())
        if unknown:
            errors.append(f"unknown providers: {sorted(unknown)}")

        unknown = set(self.config.threat_detection) - set(_default_detection())
        if unknown:
            errors.append(f"unknown threat checks: {sorted(unknown)}")

        for name, weight in self.config.risk_weights.items():
            if not isinstance(weight, (int, float)) or weight < 0:
                errors.append(f"risk weight for {name} cannot be negative")

        thresholds = self.config.risk_thresholds
        if set(thresholds) != set(DEFAULT_RISK_THRESHOLDS):
            errors.append(f"risk_thresholds must define exactly: {sorted(DEFAULT_RISK_THRESHOLDS)}")
        elif not (0 <= thresholds['low'] <= thresholds['medium'] <= thresholds['high']):
            errors.append("risk_thresholds must satisfy 0 <= low <= medium <= high")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.config.log_level not in valid_log_levels:
            errors.append(f"log_level must be one of: {valid_log_levels}")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return asdict(self.config)

    def __repr__(self) -> str:
        return f"ConfigManager(config_path='{self.config_path}')"


# ===============================================================================
# CONFIGURATION UTILITIES
# ===============================================================================

def load_config(config_path: Optional[str] = None) -> ConfigManager:
    """Load configuration manager"""
    return ConfigManager(config_path)


def create_config_from_dict(data: Dict[str, Any]) -> GeoFuseConfig:
    """Create GeoFuseConfig from dictionary"""
    manager = ConfigManager(use_environment=False)
    manager._apply(data)
    return manager.config


def create_cli_overrides(verbose=None, quiet=None, timeout=None, log_file=None) -> Dict[str, Any]:
    """Create CLI overrides dictionary from common parameters"""
    overrides = {}

    if verbose:
        overrides['log_level'] = 'DEBUG'
    elif quiet:
        overrides['log_level'] = 'WARNING'

    if timeout is not None:
        overrides['provider_timeout'] = timeout
        overrides['threat_timeout'] = timeout

    if log_file is not None:
        overrides['log_file'] = log_file

    return overrides
