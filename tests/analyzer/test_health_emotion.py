from __future__ import annotations

import math

import pytest

from sukusuku.analyzer import (
    EmotionEstimator,
    EmotionStatus,
    HealthStatus,
    TemperatureMonitor,
    mean_brightness,
)
from sukusuku.errors import InvalidInput

pytestmark = pytest.mark.analyzer


@pytest.mark.parametrize(
    ("temperature", "expected"),
    [(36.5, HealthStatus.NORMAL), (38.0, HealthStatus.NORMAL), (38.01, HealthStatus.ABNORMAL), (40, HealthStatus.ABNORMAL)],
)
def test_temperature_threshold(temperature: float, expected: HealthStatus) -> None:
    assert TemperatureMonitor().check(temperature).status is expected


@pytest.mark.parametrize("temperature", ["38.5", None, math.nan, math.inf, True])
def test_temperature_rejects_non_numeric(temperature) -> None:
    with pytest.raises(InvalidInput):
        TemperatureMonitor().check(temperature)


def test_health_record_uses_given_timestamp() -> None:
    reading = TemperatureMonitor().check(38.4, timestamp="2026-01-01T09:00:00+00:00")

    assert reading.to_record() == {
        "temp": 38.4,
        "status": "abnormal",
        "time": "2026-01-01T09:00:00+00:00",
    }


def test_emotion_threshold() -> None:
    estimator = EmotionEstimator()

    assert estimator.estimate(151).status is EmotionStatus.SMILE
    assert estimator.estimate(150).status is EmotionStatus.NEUTRAL
    assert estimator.estimate(150.0001).status is EmotionStatus.SMILE


def test_emotion_from_sample_uses_mean() -> None:
    reading = EmotionEstimator().estimate_sample([100.0, 200.0, 260.0])

    assert reading.brightness == pytest.approx(186.6666667)
    assert reading.status is EmotionStatus.SMILE


def test_mean_brightness_empty_raises() -> None:
    with pytest.raises(InvalidInput):
        mean_brightness([])


def test_emotion_rejects_nan() -> None:
    with pytest.raises(InvalidInput):
        EmotionEstimator().estimate(math.nan)
