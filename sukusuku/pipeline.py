"""
Sukusuku - Companion Pipeline
Coordinates classification, actuation and encrypted storage for one
submitted sample, temperature reading or task batch.

Each call is an independent run. The only state carried between runs is the
per-user baseline frame, held in a BaselineStore and updated under that
user's lock.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from .actuator import ActuatorDispatcher, DispatchOutcome
from .allocator import Allocator, Assignment, RandomAllocator
from .analyzer import (
    ClassificationResult,
    EmotionEstimator,
    EmotionReading,
    FrameDiffClassifier,
    HealthReading,
    HealthStatus,
    TemperatureMonitor,
    utc_now,
)
from .errors import InvalidInput
from .local_db import ReadResult, TelemetryStore, channel_path

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class BaselineStore:
    """
    Last frame seen per user.

    update() runs a read-modify-write under a per-user lock, so two frames
    from the same user never race; different users never contend.
    """

    def __init__(self):
        self._baselines: Dict[str, List[float]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.Lock()
            return lock

    def get(self, user_id: str) -> Optional[List[float]]:
        with self._lock_for(user_id):
            baseline = self._baselines.get(user_id)
            return list(baseline) if baseline is not None else None

    def put(self, user_id: str, baseline: Sequence[float]) -> None:
        with self._lock_for(user_id):
            self._baselines[user_id] = list(baseline)

    def update(
        self,
        user_id: str,
        step: Callable[[Optional[List[float]]], Tuple[T, Sequence[float]]],
    ) -> T:
        """
        Apply step(baseline) -> (result, new_baseline) atomically for user_id.
        If step raises, the stored baseline is left as it was.
        """
        with self._lock_for(user_id):
            result, new_baseline = step(self._baselines.get(user_id))
            self._baselines[user_id] = list(new_baseline)
            return result


@dataclass
class FrameRun:
    gesture: ClassificationResult
    emotion: EmotionReading
    gesture_entry_id: int
    emotion_entry_id: int
    dispatched: List[DispatchOutcome] = field(default_factory=list)


@dataclass
class HealthRun:
    reading: HealthReading
    entry_id: int
    dispatched: List[DispatchOutcome] = field(default_factory=list)


class CompanionPipeline:
    """
    Main entry point for the web/session layer.

    Actuator commands are sent in the background while the telemetry writes
    happen, without any baseline lock held. A device failure never fails a
    run; a storage failure is raised after the commands have gone out.
    """

    def __init__(
        self,
        store: TelemetryStore,
        dispatcher: ActuatorDispatcher,
        allocator: Optional[Allocator] = None,
        baselines: Optional[BaselineStore] = None,
        clock: Callable[[], str] = utc_now,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.allocator = allocator or RandomAllocator()
        self.baselines = baselines or BaselineStore()
        self.clock = clock

        self.classifier = FrameDiffClassifier()
        self.thermometer = TemperatureMonitor()
        self.emotions = EmotionEstimator()

    def _persist_while_dispatching(
        self, kind: Any, persist: Callable[[], T]
    ) -> Tuple[T, List[DispatchOutcome]]:
        with ThreadPoolExecutor(max_workers=1) as pool:
            pending = pool.submit(self.dispatcher.dispatch, kind)
            persisted = persist()
            return persisted, pending.result()

    # =========================================================
    # RUNS
    # =========================================================

    def process_frame(self, user_id: str, sample: Sequence[float]) -> FrameRun:
        """
        Classify a camera sample, react to it and record it.

        The user's baseline is replaced by this sample. An invalid sample
        raises InvalidInput and leaves the baseline untouched.
        """
        channel_path(user_id, "gestures")
        timestamp = self.clock()

        gesture = self.baselines.update(
            user_id, lambda baseline: self.classifier.advance(sample, baseline)
        )
        emotion = self.emotions.estimate_sample(sample, timestamp)

        def persist() -> Tuple[int, int]:
            gesture_record = gesture.to_record()
            gesture_record["time"] = timestamp
            return (
                self.store.write(user_id, "gestures", gesture_record),
                self.store.write(user_id, "emotions", emotion.to_record()),
            )

        (gesture_id, emotion_id), outcomes = self._persist_while_dispatching(gesture.kind, persist)
        LOGGER.info(
            "Frame for %s: gesture=%s motion=%.2f emotion=%s",
            user_id, gesture.kind.value, gesture.motion, emotion.status.value,
            extra={"user_id": user_id, "channel": "gestures", "entry_id": gesture_id},
        )
        return FrameRun(
            gesture=gesture,
            emotion=emotion,
            gesture_entry_id=gesture_id,
            emotion_entry_id=emotion_id,
            dispatched=outcomes,
        )

    def process_temperature(self, user_id: str, temperature: float) -> HealthRun:
        """Check a temperature reading, alert on fever, record it."""
        channel_path(user_id, "health")
        reading = self.thermometer.check(temperature, self.clock())

        kind = reading.status if reading.status is HealthStatus.ABNORMAL else "none"
        entry_id, outcomes = self._persist_while_dispatching(
            kind, lambda: self.store.write(user_id, "health", reading.to_record())
        )
        LOGGER.info(
            "Temperature for %s: %.1f (%s)", user_id, reading.temperature, reading.status.value,
            extra={"user_id": user_id, "channel": "health", "entry_id": entry_id},
        )
        return HealthRun(reading=reading, entry_id=entry_id, dispatched=outcomes)

    def process_tasks(self, user_id: str, tasks: Sequence[str]) -> List[Assignment]:
        """Assign tasks to the two parents and record each assignment in order."""
        channel_path(user_id, "tasks")
        if isinstance(tasks, str) or any(not isinstance(t, str) or not t for t in tasks):
            raise InvalidInput("tasks must be a list of non-empty names")

        assignments = self.allocator.assign(list(tasks))
        for assignment in assignments:
            self.store.write(user_id, "tasks", assignment.to_record())
        return assignments

    def record_community_event(self, user_id: str, name: str, time: str) -> int:
        if not name or not time:
            raise InvalidInput("Event name and time are required")
        return self.store.write(user_id, "community-events", {"event": name, "time": time})

    def record_consent(self, user_id: str, agreed: bool = True) -> Dict[str, Any]:
        consent = {"agreed": bool(agreed), "time": self.clock()}
        self.store.write_consent(user_id, consent)
        return consent

    def history(self, user_id: str, channel: str) -> ReadResult:
        return self.store.read(user_id, channel)
