"""
Sukusuku
🔒 Encrypted history. Fail-open actuation.

Companion robot core for child-care support: gesture, emotion and
temperature classification, robot feedback, and per-user encrypted history.
"""

__version__ = "1.0.0"
__author__ = "Sukusuku"
__license__ = "MIT"

from .analyzer import (
    FrameDiffClassifier,
    TemperatureMonitor,
    EmotionEstimator,
    ClassificationResult,
    HealthReading,
    EmotionReading,
    GestureKind,
    HealthStatus,
    EmotionStatus,
    mean_brightness,
)
from .actuator import ActuatorDispatcher, ActuatorCommand, DispatchOutcome, HttpActuatorTransport
from .allocator import Allocator, RandomAllocator, Assignment, Party
from .crypto import KeyRing, RecordCipher
from .local_db import TelemetryStore, SQLiteBackend, ReadResult
from .pipeline import CompanionPipeline, BaselineStore
from .config import SukusukuConfig, load_config
from .errors import (
    SukusukuError,
    InvalidInput,
    UpstreamUnavailable,
    StorageFailure,
    DecryptionFailure,
    ConfigError,
)

__all__ = [
    # Analyzer
    "FrameDiffClassifier",
    "TemperatureMonitor",
    "EmotionEstimator",
    "ClassificationResult",
    "HealthReading",
    "EmotionReading",
    "GestureKind",
    "HealthStatus",
    "EmotionStatus",
    "mean_brightness",

    # Actuation
    "ActuatorDispatcher",
    "ActuatorCommand",
    "DispatchOutcome",
    "HttpActuatorTransport",

    # Tasks
    "Allocator",
    "RandomAllocator",
    "Assignment",
    "Party",

    # Storage
    "KeyRing",
    "RecordCipher",
    "TelemetryStore",
    "SQLiteBackend",
    "ReadResult",

    # Pipeline
    "CompanionPipeline",
    "BaselineStore",

    # Config
    "SukusukuConfig",
    "load_config",

    # Errors
    "SukusukuError",
    "InvalidInput",
    "UpstreamUnavailable",
    "StorageFailure",
    "DecryptionFailure",
    "ConfigError",
]
