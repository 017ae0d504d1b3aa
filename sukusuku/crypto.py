"""
Sukusuku - Record Encryption
AES-256-GCM with a fresh nonce per record.

Blob format (ASCII):
    v1.<key_id>.<b64 nonce>.<b64 ciphertext+tag>

The record's storage path is bound as associated data, so a blob copied to
another user or channel will not decrypt.
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import ConfigError, DecryptionFailure

BLOB_VERSION = "v1"
NONCE_BYTES = 12
KEY_BYTES = 32


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def generate_key() -> str:
    """Return a new random key, base64-encoded for config files."""
    return base64.b64encode(AESGCM.generate_key(bit_length=KEY_BYTES * 8)).decode("ascii")


def canonical_json(record: Any) -> bytes:
    return json.dumps(record, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class KeyRing:
    """
    Named keys plus the id of the key used for new records.

    Older keys stay in the ring after rotation so existing records remain
    readable.
    """
    keys: Mapping[str, bytes]
    active_key_id: str

    def __post_init__(self):
        if not self.keys:
            raise ConfigError("Key ring is empty")
        if self.active_key_id not in self.keys:
            raise ConfigError(f"Active key '{self.active_key_id}' is not in the key ring")
        for key_id, key in self.keys.items():
            if "." in key_id or not key_id:
                raise ConfigError(f"Invalid key id: {key_id!r}")
            if len(key) != KEY_BYTES:
                raise ConfigError(f"Key '{key_id}' must be {KEY_BYTES} bytes, got {len(key)}")

    @classmethod
    def from_encoded(cls, encoded: Mapping[str, str], active_key_id: Optional[str] = None) -> "KeyRing":
        """Build a ring from base64 strings, as stored in config.yaml."""
        keys: Dict[str, bytes] = {}
        for key_id, text in encoded.items():
            try:
                keys[key_id] = base64.b64decode(text, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise ConfigError(f"Key '{key_id}' is not valid base64") from exc
        if active_key_id is None and len(keys) == 1:
            active_key_id = next(iter(keys))
        if active_key_id is None:
            raise ConfigError("active_key_id is required when several keys are configured")
        return cls(keys=keys, active_key_id=active_key_id)

    def rotate(self, key_id: str, key: bytes) -> "KeyRing":
        """Return a new ring where key_id is added and becomes active."""
        keys = dict(self.keys)
        keys[key_id] = key
        return KeyRing(keys=keys, active_key_id=key_id)


class RecordCipher:
    """Encrypts JSON-serializable records into text blobs and back."""

    def __init__(self, keyring: KeyRing):
        self.keyring = keyring

    def encrypt(self, record: Any, associated_data: str = "") -> str:
        key_id = self.keyring.active_key_id
        nonce = os.urandom(NONCE_BYTES)
        ciphertext = AESGCM(self.keyring.keys[key_id]).encrypt(
            nonce, canonical_json(record), associated_data.encode("utf-8")
        )
        return ".".join((BLOB_VERSION, key_id, _b64encode(nonce), _b64encode(ciphertext)))

    def decrypt(self, blob: Any, associated_data: str = "", entry_id: Optional[int] = None) -> Any:
        """
        Decrypt and deserialize a blob.

        Raises:
            DecryptionFailure: malformed blob, unknown key, failed
                authentication, or a payload that is not JSON.
        """
        if not isinstance(blob, str):
            raise DecryptionFailure(f"Blob must be text, got {type(blob).__name__}", entry_id)

        parts = blob.split(".")
        if len(parts) != 4 or parts[0] != BLOB_VERSION:
            raise DecryptionFailure("Unrecognized blob format", entry_id)
        _, key_id, nonce_text, ciphertext_text = parts

        key = self.keyring.keys.get(key_id)
        if key is None:
            raise DecryptionFailure(f"Unknown key id '{key_id}'", entry_id)

        try:
            nonce = _b64decode(nonce_text)
            ciphertext = _b64decode(ciphertext_text)
            plaintext = AESGCM(key).decrypt(nonce, ciphertext, associated_data.encode("utf-8"))
            return json.loads(plaintext.decode("utf-8"))
        except InvalidTag as exc:
            raise DecryptionFailure("Authentication failed", entry_id) from exc
        except (binascii.Error, ValueError) as exc:
            # ValueError also covers bad nonce length, UnicodeDecodeError and JSONDecodeError
            raise DecryptionFailure(f"Malformed entry: {exc}", entry_id) from exc
