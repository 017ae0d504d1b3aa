"""
Sukusuku - Actuator Dispatcher
Turns a classified event into physical feedback on the companion robot.

The robot exposes a small HTTP API (Raspberry Pi). Calls are fire-and-forget:
a dead or slow device is logged, never raised to the caller.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

import requests

from .errors import UpstreamUnavailable

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 2.0


@dataclass(frozen=True)
class ActuatorCommand:
    """A single hardware action."""
    action: str
    endpoint: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DispatchOutcome:
    command: ActuatorCommand
    delivered: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


# Action name -> endpoint + payload understood by the device
COMMANDS: Dict[str, ActuatorCommand] = {
    "dance": ActuatorCommand("dance", "/motor/dance", {"duration": 1}),
    "led": ActuatorCommand("led", "/led", {"state": "on", "duration": 0.5}),
    "vibrate": ActuatorCommand("vibrate", "/vibrate", {"duration": 0.5}),
    "sound": ActuatorCommand("sound", "/sound", {"file": "correct.wav"}),
    "move": ActuatorCommand("move", "/motor/move", {"direction": "forward", "duration": 1}),
    "alert": ActuatorCommand("alert", "/alert", {"duration": 2}),
}

# Event kind (gesture or health status value) -> actions to perform.
# Gesture "abnormal" and health "abnormal" share the alert.
POLICY: Dict[str, Tuple[str, ...]] = {
    "wave": ("dance",),
    "clap": ("led", "sound", "vibrate"),
    "pointing": ("move",),
    "abnormal": ("alert",),
    "none": (),
}


def commands_for(kind: Union[str, Enum]) -> List[ActuatorCommand]:
    """Look up the commands for an event kind. Unknown kinds map to nothing."""
    key = kind.value if isinstance(kind, Enum) else str(kind)
    return [COMMANDS[action] for action in POLICY.get(key, ())]


class ActuatorTransport(Protocol):
    """Anything that can deliver a command to the device."""

    def send(self, command: ActuatorCommand) -> DispatchOutcome:
        """Deliver one command; raise UpstreamUnavailable if unreachable."""
        ...


class HttpActuatorTransport:
    """
    POSTs commands as JSON to {base_url}{endpoint}.

    The response body is ignored. A non-2xx status is reported as undelivered
    but does not raise.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, command: ActuatorCommand) -> str:
        return f"{self.base_url}{command.endpoint}"

    def send(self, command: ActuatorCommand) -> DispatchOutcome:
        url = self.url_for(command)
        try:
            response = self.session.post(
                url,
                json=command.payload,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        except requests.RequestException as exc:
            raise UpstreamUnavailable(f"{command.action}: {url} unreachable ({exc})") from exc

        if not response.ok:
            return DispatchOutcome(
                command=command,
                delivered=False,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}",
            )
        return DispatchOutcome(command=command, delivered=True, status_code=response.status_code)

    def close(self) -> None:
        self.session.close()


class ActuatorDispatcher:
    """
    Maps events to commands and sends them.

    Every command for an event is attempted, concurrently. Failures are
    logged to this module's logger and returned as outcomes; dispatch() never
    raises for a device problem.
    """

    def __init__(self, transport: ActuatorTransport, max_workers: int = 3):
        self.transport = transport
        self.max_workers = max_workers

    def dispatch(self, kind: Union[str, Enum]) -> List[DispatchOutcome]:
        """
        Send every command the policy lists for kind.

        Returns:
            One DispatchOutcome per command, in policy order.
        """
        commands = commands_for(kind)
        if not commands:
            return []
        if len(commands) == 1:
            return [self._send(commands[0])]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(commands))) as pool:
            return list(pool.map(self._send, commands))

    def _send(self, command: ActuatorCommand) -> DispatchOutcome:
        try:
            outcome = self.transport.send(command)
        except UpstreamUnavailable as exc:
            LOGGER.warning("Actuator %s failed: %s", command.action, exc, extra={"action": command.action})
            return DispatchOutcome(command=command, delivered=False, error=str(exc))
        except Exception as exc:
            # Third-party transports may raise anything
            LOGGER.exception("Actuator %s transport error", command.action, extra={"action": command.action})
            return DispatchOutcome(command=command, delivered=False, error=f"{type(exc).__name__}: {exc}")

        if not outcome.delivered:
            LOGGER.warning("Actuator %s rejected: %s", command.action, outcome.error, extra={"action": command.action})
        else:
            LOGGER.debug("Actuator %s delivered (%s)", command.action, outcome.status_code)
        return outcome
