"""
Sukusuku - Configuration Management
Handles ~/.sukusuku/config.yaml with defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from .crypto import KeyRing
from .errors import ConfigError

LOGGER = logging.getLogger(__name__)


# ============================================================
# PATHS
# ============================================================

def get_sukusuku_dir() -> Path:
    """Get the Sukusuku data directory."""
    sukusuku_dir = Path.home() / ".sukusuku"
    sukusuku_dir.mkdir(exist_ok=True)
    return sukusuku_dir


def get_config_path() -> Path:
    """Get path to config file."""
    return get_sukusuku_dir() / "config.yaml"


DEFAULT_HARDWARE_API = "http://raspberry-pi:8080/api"

# Environment overrides
HARDWARE_API_ENV = "SUKUSUKU_HARDWARE_API"
ENCRYPTION_KEY_ENV = "SUKUSUKU_ENCRYPTION_KEY"
ENV_KEY_ID = "env"


# ============================================================
# CONFIG DATACLASS
# ============================================================

@dataclass
class SukusukuConfig:
    """Configuration settings for Sukusuku."""

    # Base URL of the robot's control API
    hardware_api_url: str = DEFAULT_HARDWARE_API

    # Per-command timeout for actuator calls (seconds)
    actuator_timeout_seconds: float = 2.0

    # SQLite file; None means ~/.sukusuku/telemetry.db
    db_path: Optional[str] = None

    # key id -> base64 AES-256 key. Old keys stay for reading.
    encryption_keys: Dict[str, str] = field(default_factory=dict)

    # Key used for new records
    active_key_id: Optional[str] = None

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def effective_hardware_api_url(self) -> str:
        return os.getenv(HARDWARE_API_ENV) or self.hardware_api_url

    def keyring(self) -> KeyRing:
        """
        Resolve the encryption keys.

        SUKUSUKU_ENCRYPTION_KEY, when set, is added under id 'env' and becomes
        the active key; configured keys remain available for older records.
        """
        encoded = dict(self.encryption_keys)
        active = self.active_key_id

        env_key = os.getenv(ENCRYPTION_KEY_ENV)
        if env_key:
            encoded[ENV_KEY_ID] = env_key
            active = ENV_KEY_ID

        if not encoded:
            raise ConfigError(
                f"No encryption key configured. Run 'sukusuku keygen' and add it to "
                f"{get_config_path()} or set {ENCRYPTION_KEY_ENV}."
            )
        return KeyRing.from_encoded(encoded, active)


# ============================================================
# CONFIG LOADING
# ============================================================

def load_config(path: Optional[Path] = None) -> SukusukuConfig:
    """
    Load configuration from ~/.sukusuku/config.yaml (or path).
    Falls back to defaults if the file doesn't exist or can't be parsed.
    """
    config_path = Path(path) if path else get_config_path()

    if not config_path.exists():
        return SukusukuConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("config root must be a mapping")

        return SukusukuConfig(
            hardware_api_url=data.get('hardware_api_url', DEFAULT_HARDWARE_API),
            actuator_timeout_seconds=float(data.get('actuator_timeout_seconds', 2.0)),
            db_path=data.get('db_path'),
            encryption_keys={str(k): str(v) for k, v in (data.get('encryption_keys') or {}).items()},
            active_key_id=data.get('active_key_id'),
            log_level=data.get('log_level', 'INFO'),
            log_json=bool(data.get('log_json', False)),
        )
    except (OSError, yaml.YAMLError, ValueError, TypeError, AttributeError) as e:
        LOGGER.warning("Error loading config %s: %s. Using default configuration.", config_path, e)
        return SukusukuConfig()


def save_config(config: SukusukuConfig, path: Optional[Path] = None) -> None:
    """Save configuration to ~/.sukusuku/config.yaml (or path)."""
    config_path = Path(path) if path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        'hardware_api_url': config.hardware_api_url,
        'actuator_timeout_seconds': config.actuator_timeout_seconds,
        'log_level': config.log_level,
        'log_json': config.log_json,
    }

    # Only save optional fields if they exist
    if config.db_path:
        data['db_path'] = config.db_path
    if config.encryption_keys:
        data['encryption_keys'] = dict(config.encryption_keys)
    if config.active_key_id:
        data['active_key_id'] = config.active_key_id

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, default_flow_style=False)


def get_example_config() -> str:
    """Return an example config.yaml content."""
    return """# Sukusuku Configuration
# Location: ~/.sukusuku/config.yaml

# Robot control API (Raspberry Pi)
hardware_api_url: http://raspberry-pi:8080/api

# Timeout per actuator command (seconds)
actuator_timeout_seconds: 2.0

# Telemetry database (default: ~/.sukusuku/telemetry.db)
# db_path: /var/lib/sukusuku/telemetry.db

# Encryption keys (base64, 32 bytes). Generate with: sukusuku keygen
# Keep old keys after rotation so existing history stays readable.
# encryption_keys:
#   k1: <base64 key>
#   k2: <base64 key>
# active_key_id: k2

log_level: INFO
log_json: false
"""


def create_default_config(path: Optional[Path] = None) -> Path:
    """Create a default config file if it doesn't exist."""
    config_path = Path(path) if path else get_config_path()
    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write(get_example_config())
        LOGGER.info("Created default config at %s", config_path)
    return config_path
