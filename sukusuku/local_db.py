"""
Sukusuku - Local Telemetry Store
Encrypted, append-only history per user and channel, in SQLite
(~/.sukusuku/telemetry.db).

PRIVACY: Only encrypted blobs are written. The database never sees a
plaintext reading.
"""

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

from .crypto import RecordCipher
from .errors import DecryptionFailure, InvalidInput, StorageFailure

LOGGER = logging.getLogger(__name__)

CHANNELS = ("gestures", "emotions", "health", "tasks", "community-events")
CONSENT_CHANNEL = "consent"


def get_db_path() -> Path:
    """Get the path to the local database."""
    sukusuku_dir = Path.home() / ".sukusuku"
    sukusuku_dir.mkdir(exist_ok=True)
    return sukusuku_dir / "telemetry.db"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# PERSISTENCE BACKEND
# ============================================================

class TelemetryBackend(Protocol):
    """Durable storage the TelemetryStore writes through."""

    def append(self, path: str, blob: str) -> int: ...

    def set(self, path: str, value: str) -> None: ...

    def get(self, path: str) -> Optional[str]: ...

    def list_entries(self, path: str) -> List[Tuple[int, str]]: ...


class SQLiteBackend:
    """
    SQLite implementation of the backend.

    Entries get an AUTOINCREMENT id, which is monotonic across the whole
    database. There is no statement that updates or deletes an entry.
    """

    def __init__(self, db_path: Optional[Path] = None, timeout: float = 10.0):
        self.db_path = Path(db_path) if db_path else get_db_path()
        self.timeout = timeout
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        if not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS telemetry_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    path TEXT NOT NULL,
                    blob TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_entries_path
                ON telemetry_entries(path, id)
            """)

            # Single current value per path (consent)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS telemetry_values (
                    path TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        except sqlite3.Error as exc:
            raise StorageFailure(f"Cannot open {self.db_path}: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageFailure(str(exc)) from exc
        finally:
            conn.close()

    def append(self, path: str, blob: str) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO telemetry_entries (path, blob, created_at) VALUES (?, ?, ?)",
                (path, blob, _utc_now()),
            )
            conn.commit()
            return cursor.lastrowid

    def set(self, path: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO telemetry_values (path, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(path) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """, (path, value, _utc_now()))
            conn.commit()

    def get(self, path: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM telemetry_values WHERE path = ?", (path,)
            ).fetchone()
            return row[0] if row else None

    def list_entries(self, path: str) -> List[Tuple[int, str]]:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT id, blob FROM telemetry_entries WHERE path = ? ORDER BY id",
                (path,),
            )
            return [(row[0], row[1]) for row in cursor.fetchall()]


# ============================================================
# TELEMETRY STORE
# ============================================================

@dataclass
class ReadResult:
    """Decoded records in write order, plus how many entries were skipped."""
    records: List[Any] = field(default_factory=list)
    skipped: int = 0
    failures: List[DecryptionFailure] = field(default_factory=list, repr=False)


def channel_path(user_id: str, channel: str) -> str:
    if not isinstance(user_id, str) or not user_id or "/" in user_id:
        raise InvalidInput(f"Invalid user id: {user_id!r}")
    if channel not in CHANNELS and channel != CONSENT_CHANNEL:
        raise InvalidInput(f"Unknown channel: {channel!r}")
    return f"users/{user_id}/{channel}"


class TelemetryStore:
    """
    Per-user, per-channel encrypted log.

    write() appends, write_consent() overwrites, read() decrypts everything it
    can and counts what it cannot.
    """

    def __init__(self, backend: TelemetryBackend, cipher: RecordCipher):
        self.backend = backend
        self.cipher = cipher

    def write(self, user_id: str, channel: str, record: Any) -> int:
        """
        Encrypt and append a record.

        Returns:
            The store-assigned entry id.

        Raises:
            StorageFailure: if the append did not happen. The record was not
                persisted.
        """
        if channel == CONSENT_CHANNEL:
            raise InvalidInput("Consent is overwritten, use write_consent()")
        path = channel_path(user_id, channel)
        blob = self.cipher.encrypt(record, associated_data=path)
        entry_id = self.backend.append(path, blob)
        LOGGER.debug(
            "Appended entry %s to %s", entry_id, path,
            extra={"user_id": user_id, "channel": channel, "entry_id": entry_id},
        )
        return entry_id

    def write_consent(self, user_id: str, value: Any) -> None:
        path = channel_path(user_id, CONSENT_CHANNEL)
        self.backend.set(path, self.cipher.encrypt(value, associated_data=path))

    def read_consent(self, user_id: str) -> Optional[Any]:
        """Current consent value, or None if never given."""
        path = channel_path(user_id, CONSENT_CHANNEL)
        blob = self.backend.get(path)
        if blob is None:
            return None
        return self.cipher.decrypt(blob, associated_data=path)

    def read(self, user_id: str, channel: str) -> ReadResult:
        """
        Fetch and decrypt every entry of a channel.

        An entry that fails to decrypt or deserialize is skipped and counted.
        A failure to list the entries at all raises StorageFailure.
        """
        if channel == CONSENT_CHANNEL:
            raise InvalidInput("Consent is a single value, use read_consent()")
        path = channel_path(user_id, channel)
        result = ReadResult()

        for entry_id, blob in self.backend.list_entries(path):
            try:
                result.records.append(
                    self.cipher.decrypt(blob, associated_data=path, entry_id=entry_id)
                )
            except DecryptionFailure as exc:
                result.skipped += 1
                result.failures.append(exc)
                LOGGER.warning(
                    "Skipping entry %s in %s: %s", entry_id, path, exc,
                    extra={"user_id": user_id, "channel": channel, "entry_id": entry_id},
                )

        return result

    def summary(self, user_id: str) -> Dict[str, int]:
        """Entry count per channel (no decryption)."""
        return {
            channel: len(self.backend.list_entries(channel_path(user_id, channel)))
            for channel in CHANNELS
        }
