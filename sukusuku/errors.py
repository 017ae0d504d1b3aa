"""
Sukusuku - Error Types
Every failure in the core is scoped to one operation; nothing here is fatal
to the process.
"""

from typing import Optional


class SukusukuError(Exception):
    """Base class for all errors raised by the companion core."""


class InvalidInput(SukusukuError, ValueError):
    """Malformed or undersized sample, empty vector, non-numeric reading."""


class UpstreamUnavailable(SukusukuError, RuntimeError):
    """An actuator endpoint could not be reached or timed out."""


class StorageFailure(SukusukuError, RuntimeError):
    """The durable store failed to append or read."""


class DecryptionFailure(SukusukuError, ValueError):
    """A stored entry could not be decrypted or deserialized."""

    def __init__(self, message: str, entry_id: Optional[int] = None):
        super().__init__(message)
        self.entry_id = entry_id


class ConfigError(SukusukuError, RuntimeError):
    """Raised when configuration (usually key material) is unusable."""
