from __future__ import annotations

import pathlib
import threading
from typing import Iterable, List

import pytest

from sukusuku.actuator import ActuatorCommand, ActuatorDispatcher, DispatchOutcome
from sukusuku.crypto import KeyRing, RecordCipher
from sukusuku.errors import UpstreamUnavailable
from sukusuku.local_db import SQLiteBackend, TelemetryStore
from sukusuku.pipeline import CompanionPipeline

MARKERS = ("analyzer", "actuator", "storage", "allocator", "pipeline", "config", "cli", "logs")


class FakeTransport:
    """Records every command; raises for actions listed in fail_actions."""

    def __init__(self, fail_actions: Iterable[str] = ()) -> None:
        self.sent: List[ActuatorCommand] = []
        self.fail_actions = set(fail_actions)
        self._lock = threading.Lock()

    def send(self, command: ActuatorCommand) -> DispatchOutcome:
        with self._lock:
            self.sent.append(command)
        if command.action in self.fail_actions:
            raise UpstreamUnavailable(f"{command.action}: device offline")
        return DispatchOutcome(command=command, delivered=True, status_code=200)

    @property
    def actions(self) -> List[str]:
        return [command.action for command in self.sent]


@pytest.fixture()
def keyring() -> KeyRing:
    return KeyRing(keys={"k1": bytes(range(32))}, active_key_id="k1")


@pytest.fixture()
def cipher(keyring: KeyRing) -> RecordCipher:
    return RecordCipher(keyring)


@pytest.fixture()
def test_db_path(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "telemetry.db"


@pytest.fixture()
def backend(test_db_path: pathlib.Path) -> SQLiteBackend:
    return SQLiteBackend(test_db_path)


@pytest.fixture()
def store(backend: SQLiteBackend, cipher: RecordCipher) -> TelemetryStore:
    return TelemetryStore(backend, cipher)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def dispatcher(transport: FakeTransport) -> ActuatorDispatcher:
    return ActuatorDispatcher(transport)


@pytest.fixture()
def pipeline(store: TelemetryStore, dispatcher: ActuatorDispatcher) -> CompanionPipeline:
    return CompanionPipeline(store, dispatcher, clock=lambda: "2026-01-01T00:00:00+00:00")


def pytest_configure(config: pytest.Config) -> None:
    for marker in MARKERS:
        config.addinivalue_line("markers", f"{marker}: {marker} tests")
