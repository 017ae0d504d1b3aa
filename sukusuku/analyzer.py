"""
Sukusuku - Signal Analyzer
Turns pre-extracted camera/thermal samples into discrete events.

Three classifiers live here, all pure:
- FrameDiffClassifier: brightness-difference gesture detection
- TemperatureMonitor: fever check
- EmotionEstimator: smile/neutral from mean brightness

The analysis window is the first 1000 values of a sample. Camera frames from
the device are larger (a 320x240 baseline buffer holds 76800 values), but only
the window is compared.
"""

import math
import numbers
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidInput


WINDOW_SIZE = 1000
REGION_SIZE = 250

# Quadrants in window order; together they cover [0, WINDOW_SIZE) exactly.
REGIONS: Tuple[Tuple[str, int, int], ...] = (
    ("left_top", 0, 250),
    ("right_top", 250, 500),
    ("left_bottom", 500, 750),
    ("right_bottom", 750, 1000),
)


class GestureKind(Enum):
    """Detected gesture."""
    NONE = "none"
    WAVE = "wave"
    CLAP = "clap"
    POINTING = "pointing"
    ABNORMAL = "abnormal"


class HealthStatus(Enum):
    NORMAL = "normal"
    ABNORMAL = "abnormal"


class EmotionStatus(Enum):
    SMILE = "smile"
    NEUTRAL = "neutral"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ClassificationResult:
    """Result of comparing one frame against its baseline."""
    kind: GestureKind
    motion: float
    regions: Mapping[str, float]

    @property
    def peak_region(self) -> float:
        return max(self.regions.values())

    def to_record(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "motion": self.motion,
            "regions": dict(self.regions),
        }


@dataclass(frozen=True)
class HealthReading:
    temperature: float
    status: HealthStatus
    timestamp: str = field(default_factory=utc_now)

    def to_record(self) -> Dict[str, Any]:
        return {
            "temp": self.temperature,
            "status": self.status.value,
            "time": self.timestamp,
        }


@dataclass(frozen=True)
class EmotionReading:
    brightness: float
    status: EmotionStatus
    timestamp: str = field(default_factory=utc_now)

    def to_record(self) -> Dict[str, Any]:
        return {
            "brightness": self.brightness,
            "status": self.status.value,
            "time": self.timestamp,
        }


# ============================================================
# INPUT VALIDATION
# ============================================================

def _require_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInput(f"{name} must be a number, got {type(value).__name__}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidInput(f"{name} must be finite, got {value}")
    return value


def coerce_sample(values: Any, name: str = "sample", min_length: int = 1) -> List[float]:
    """
    Validate a numeric sample vector and return it as a list of floats.

    Raises:
        InvalidInput: if the vector is not a sequence of finite numbers or
            is shorter than min_length.
    """
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise InvalidInput(f"{name} must be a sequence of numbers")
    if len(values) < min_length:
        raise InvalidInput(
            f"{name} has {len(values)} values, at least {min_length} required"
        )
    return [_require_number(v, f"{name}[{i}]") for i, v in enumerate(values)]


def mean_brightness(sample: Sequence[float]) -> float:
    """Arithmetic mean of a sample; the input to EmotionEstimator."""
    values = coerce_sample(sample, min_length=1)
    return sum(values) / len(values)


def zero_baseline() -> List[float]:
    return [0.0] * WINDOW_SIZE


# ============================================================
# GESTURES
# ============================================================

class FrameDiffClassifier:
    """
    Classifies a gesture from the difference between two frames.

    Decision rules are first-match-wins, in this order:
        motion > abnormal                      -> ABNORMAL
        motion > clap                          -> CLAP
        motion > wave and a left region leads  -> WAVE
        motion > pointing and a peak region    -> POINTING
        otherwise                              -> NONE

    All comparisons are strict.
    """

    THRESHOLDS = {
        "abnormal": 500,
        "clap": 200,
        "wave": 50,
        "pointing": 30,
        "pointing_region": 50,
    }

    def classify(
        self,
        sample: Sequence[float],
        baseline: Optional[Sequence[float]] = None,
    ) -> ClassificationResult:
        """
        Compare the analysis window of sample against baseline.

        Args:
            sample: Current frame, at least WINDOW_SIZE values
            baseline: Previous frame, defaults to all zeros

        Returns:
            ClassificationResult with kind, mean motion and per-region motion
        """
        current = coerce_sample(sample, min_length=WINDOW_SIZE)
        previous = (
            zero_baseline() if baseline is None
            else coerce_sample(baseline, name="baseline", min_length=WINDOW_SIZE)
        )

        diffs = [abs(current[i] - previous[i]) for i in range(WINDOW_SIZE)]
        region_sums = {name: sum(diffs[start:end]) for name, start, end in REGIONS}

        motion = sum(region_sums.values()) / WINDOW_SIZE
        regions = MappingProxyType(
            {name: total / REGION_SIZE for name, total in region_sums.items()}
        )

        return ClassificationResult(
            kind=self._determine_kind(motion, regions),
            motion=motion,
            regions=regions,
        )

    def advance(
        self,
        sample: Sequence[float],
        baseline: Optional[Sequence[float]] = None,
    ) -> Tuple[ClassificationResult, List[float]]:
        """Classify and return the baseline to use for the next frame."""
        result = self.classify(sample, baseline)
        return result, [float(v) for v in sample]

    def _determine_kind(self, motion: float, regions: Mapping[str, float]) -> GestureKind:
        t = self.THRESHOLDS

        if motion > t["abnormal"]:
            return GestureKind.ABNORMAL

        if motion > t["clap"]:
            return GestureKind.CLAP

        left_leads = (
            regions["left_top"] > regions["right_top"]
            or regions["left_bottom"] > regions["right_bottom"]
        )
        if motion > t["wave"] and left_leads:
            return GestureKind.WAVE

        if motion > t["pointing"] and max(regions.values()) > t["pointing_region"]:
            return GestureKind.POINTING

        return GestureKind.NONE


# ============================================================
# HEALTH AND AFFECT
# ============================================================

class TemperatureMonitor:
    """Fever check on a single body temperature reading (Celsius)."""

    FEVER_THRESHOLD = 38.0

    def check(self, temperature: float, timestamp: Optional[str] = None) -> HealthReading:
        value = _require_number(temperature, "temperature")
        status = HealthStatus.ABNORMAL if value > self.FEVER_THRESHOLD else HealthStatus.NORMAL
        return HealthReading(temperature=value, status=status, timestamp=timestamp or utc_now())


class EmotionEstimator:
    """Bright frames read as a smile."""

    SMILE_THRESHOLD = 150

    def estimate(self, brightness: float, timestamp: Optional[str] = None) -> EmotionReading:
        value = _require_number(brightness, "brightness")
        status = EmotionStatus.SMILE if value > self.SMILE_THRESHOLD else EmotionStatus.NEUTRAL
        return EmotionReading(brightness=value, status=status, timestamp=timestamp or utc_now())

    def estimate_sample(self, sample: Sequence[float], timestamp: Optional[str] = None) -> EmotionReading:
        return self.estimate(mean_brightness(sample), timestamp)
