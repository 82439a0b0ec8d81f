"""
Harness Configuration.

============================================================
CONFIGURABLE PARAMETERS
============================================================

- Endpoint addresses and ports
- Reserved test addresses covered by external reject rules
- Probe / upstream timeouts
- Cooldown between scenarios

Configuration can be loaded from:
- Default values
- Environment variables (HARNESS_*)
- YAML config file

============================================================
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


# =============================================================
# DEFAULTS
# =============================================================

# TEST-NET-1 address; the external setup step rejects it with host-unreach
HOST_UNREACHABLE_IP = "192.0.2.5"

# Class E reserved address with no route
NET_UNREACHABLE_IP = "240.0.0.1"

PROXY_PORT = 8080
TARGET_PORT = 8081
STALE_PORT = 65333
PROBE_PORT = 12345


# =============================================================
# MAIN CONFIGURATION
# =============================================================


@dataclass
class HarnessConfig:
    """Main configuration for the harness."""

    # Simulated endpoints
    proxy_host: str = "127.0.0.1"
    proxy_port: int = PROXY_PORT
    target_host: str = "127.0.0.1"
    target_port: int = TARGET_PORT
    stale_port: int = STALE_PORT

    # Raw-socket probes
    probe_port: int = PROBE_PORT
    host_unreachable_ip: str = HOST_UNREACHABLE_IP
    net_unreachable_ip: str = NET_UNREACHABLE_IP

    # Timing (seconds)
    probe_timeout: float = 5.0
    upstream_timeout: float = 4.0   # Kept below probe_timeout
    response_delay: float = 0.1
    reset_delay: float = 1.0
    cooldown_seconds: float = 1.0

    def validate(self) -> List[str]:
        """Return a list of validation errors."""
        errors = []

        for name in ("proxy_port", "target_port", "stale_port", "probe_port"):
            port = getattr(self, name)
            if not 0 <= port <= 65535:
                errors.append(f"{name} must be 0-65535, got {port}")

        if self.proxy_port and self.proxy_port == self.target_port:
            errors.append("proxy_port and target_port must differ")

        if self.probe_timeout <= 0:
            errors.append("probe_timeout must be positive")
        if self.upstream_timeout <= 0:
            errors.append("upstream_timeout must be positive")
        elif self.upstream_timeout >= self.probe_timeout:
            errors.append("upstream_timeout must be shorter than probe_timeout")

        for name in ("response_delay", "reset_delay", "cooldown_seconds"):
            if getattr(self, name) < 0:
                errors.append(f"{name} must not be negative")

        return errors

    def ensure_valid(self) -> "HarnessConfig":
        """Raise ConfigurationError if the configuration is invalid."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(
                "Invalid harness configuration",
                context={"errors": errors},
            )
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HarnessConfig":
        """Build from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        config = cls()
        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            current = getattr(config, key)
            try:
                setattr(config, key, type(current)(value))
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid value for {key}: {value!r}",
                    original_error=e,
                )
        return config

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """
        Load configuration from environment variables.

        Every field maps to HARNESS_<FIELD>, e.g.:
        - HARNESS_PROXY_PORT
        - HARNESS_TARGET_PORT
        - HARNESS_PROBE_TIMEOUT
        - HARNESS_COOLDOWN_SECONDS
        """
        config = cls()

        for f in fields(cls):
            raw = os.getenv(f"HARNESS_{f.name.upper()}")
            if raw is None or raw == "":
                continue
            current = getattr(config, f.name)
            try:
                setattr(config, f.name, type(current)(raw))
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for HARNESS_{f.name.upper()}: {raw}",
                    original_error=e,
                )

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "HarnessConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load YAML config from {path}",
                original_error=e,
            )

        if not isinstance(data, dict):
            raise ConfigurationError(f"YAML config {path} must be a mapping")

        return cls.from_dict(data.get("harness", data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


# =============================================================
# GLOBAL CONFIG
# =============================================================


_default_config: Optional[HarnessConfig] = None


def get_config() -> HarnessConfig:
    """Get the global harness configuration."""
    global _default_config
    if _default_config is None:
        _default_config = HarnessConfig.from_env()
    return _default_config


def set_config(config: HarnessConfig) -> None:
    """Set the global harness configuration."""
    global _default_config
    _default_config = config
