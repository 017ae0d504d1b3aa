from __future__ import annotations

import math
import random
from typing import Dict, List, Optional

import pytest

from sukusuku.analyzer import REGIONS, WINDOW_SIZE, FrameDiffClassifier, GestureKind
from sukusuku.errors import InvalidInput

pytestmark = pytest.mark.analyzer


def _frame(fill: float = 0.0, regions: Optional[Dict[str, float]] = None, size: int = WINDOW_SIZE) -> List[float]:
    frame = [fill] * size
    for name, start, end in REGIONS:
        if regions and name in regions:
            frame[start:end] = [regions[name]] * (end - start)
    return frame


@pytest.fixture()
def classifier() -> FrameDiffClassifier:
    return FrameDiffClassifier()


def test_identical_frames_are_none(classifier: FrameDiffClassifier) -> None:
    frame = _frame(120.0)
    result = classifier.classify(frame, frame)

    assert result.kind is GestureKind.NONE
    assert result.motion == 0.0
    assert all(value == 0.0 for value in result.regions.values())


def test_classification_is_deterministic(classifier: FrameDiffClassifier) -> None:
    rng = random.Random(3)
    sample = [rng.uniform(0, 255) for _ in range(WINDOW_SIZE)]
    baseline = [rng.uniform(0, 255) for _ in range(WINDOW_SIZE)]

    assert classifier.classify(sample, baseline) == classifier.classify(sample, baseline)


def test_left_top_motion_is_wave_even_though_pointing_matches(classifier: FrameDiffClassifier) -> None:
    baseline = _frame(10.0)
    sample = _frame(10.0, {"left_top": 310.0})

    result = classifier.classify(sample, baseline)

    assert result.motion == pytest.approx(75.0)
    assert result.regions["left_top"] == pytest.approx(300.0)
    assert result.regions["right_top"] == 0.0
    assert result.regions["left_bottom"] == 0.0
    assert result.regions["right_bottom"] == 0.0
    assert result.peak_region == pytest.approx(300.0)
    assert result.kind is GestureKind.WAVE


def test_regions_partition_the_window(classifier: FrameDiffClassifier) -> None:
    rng = random.Random(11)
    sample = [rng.uniform(-500, 500) for _ in range(WINDOW_SIZE + 200)]
    baseline = [rng.uniform(-500, 500) for _ in range(WINDOW_SIZE + 200)]

    result = classifier.classify(sample, baseline)
    total = sum(abs(sample[i] - baseline[i]) for i in range(WINDOW_SIZE))

    assert sum(value * 250 for value in result.regions.values()) == pytest.approx(total)
    assert result.motion * WINDOW_SIZE == pytest.approx(total)
    assert list(result.regions) == ["left_top", "right_top", "left_bottom", "right_bottom"]


def test_default_baseline_is_zero(classifier: FrameDiffClassifier) -> None:
    assert classifier.classify(_frame(600.0)) == classifier.classify(_frame(600.0), _frame(0.0))


@pytest.mark.parametrize(
    ("sample", "expected"),
    [
        (_frame(500.0), GestureKind.CLAP),
        (_frame(500.0001), GestureKind.ABNORMAL),
        (_frame(200.0), GestureKind.POINTING),
        (_frame(200.0001), GestureKind.CLAP),
        (_frame(0.0, {"left_top": 200.0}), GestureKind.POINTING),
        (_frame(0.0, {"left_top": 200.004}), GestureKind.WAVE),
        (_frame(0.0, {"right_top": 120.0}), GestureKind.NONE),
        (_frame(0.0, {"right_top": 120.4}), GestureKind.POINTING),
        (_frame(50.0), GestureKind.NONE),
        (_frame(50.0, {"right_top": 50.01}), GestureKind.POINTING),
    ],
    ids=[
        "motion-500", "motion-above-500",
        "motion-200", "motion-above-200",
        "motion-50-left-lead", "motion-above-50-left-lead",
        "motion-30", "motion-above-30",
        "peak-region-50", "peak-region-above-50",
    ],
)
def test_thresholds_are_strict(classifier: FrameDiffClassifier, sample: List[float], expected: GestureKind) -> None:
    assert classifier.classify(sample).kind is expected


def test_large_baseline_only_window_compared(classifier: FrameDiffClassifier) -> None:
    baseline = [0.0] * 76800
    sample = _frame(0.0) + [999.0] * 500

    result = classifier.classify(sample, baseline)

    assert result.kind is GestureKind.NONE
    assert result.motion == 0.0


def test_advance_returns_sample_as_next_baseline(classifier: FrameDiffClassifier) -> None:
    sample = _frame(0.0, {"left_top": 300})
    result, baseline = classifier.advance(sample)

    assert result.kind is GestureKind.WAVE
    assert baseline == [float(v) for v in sample]
    assert classifier.classify(sample, baseline).kind is GestureKind.NONE


@pytest.mark.parametrize(
    "sample",
    [[], [1.0] * (WINDOW_SIZE - 1), "x" * WINDOW_SIZE, None, _frame(0.0)[:-1] + ["bright"]],
    ids=["empty", "short", "string", "none", "non-numeric"],
)
def test_invalid_samples_raise(classifier: FrameDiffClassifier, sample) -> None:
    with pytest.raises(InvalidInput):
        classifier.classify(sample)


def test_non_finite_values_raise(classifier: FrameDiffClassifier) -> None:
    sample = _frame(0.0)
    sample[10] = math.nan

    with pytest.raises(InvalidInput, match=r"sample\[10\]"):
        classifier.classify(sample)


def test_short_baseline_raises(classifier: FrameDiffClassifier) -> None:
    with pytest.raises(InvalidInput, match="baseline"):
        classifier.classify(_frame(0.0), [0.0] * 10)


def test_result_record_shape(classifier: FrameDiffClassifier) -> None:
    record = classifier.classify(_frame(600.0)).to_record()

    assert record["type"] == "abnormal"
    assert record["motion"] == pytest.approx(600.0)
    assert set(record["regions"]) == {"left_top", "right_top", "left_bottom", "right_bottom"}
