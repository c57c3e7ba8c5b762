import pytest

from gesture_detector.gestures import GestureLabel
from gesture_detector.stability_gate import StabilityGate

V = GestureLabel.VICTORY
N = GestureLabel.NONE
F = GestureLabel.FIST


def feed(gate, labels):
    """Feed labels and return the index of every emission."""
    emitted = []
    for i, label in enumerate(labels):
        if gate.process(label, is_positive=label.is_positive) is not None:
            emitted.append(i)
    return emitted


@pytest.mark.parametrize("required", [0, -1])
def test_required_count_below_one_fails_fast(required):
    with pytest.raises(ValueError):
        StabilityGate(required_count=required)


def test_stable_victory_confirms_once_on_fifth_frame():
    confirmed = []
    gate = StabilityGate(required_count=5, on_stable=confirmed.append)

    assert feed(gate, [V] * 5) == [4]
    assert confirmed == [V]

    # A sixth identical frame does not re-emit
    assert feed(gate, [V]) == []
    assert confirmed == [V]
    assert gate.has_fired


@pytest.mark.parametrize("n", range(1, 13))
def test_identical_run_emits_once_when_threshold_reached(n):
    gate = StabilityGate(required_count=5)
    emitted = feed(gate, [F] * n)
    assert emitted == ([4] if n >= 5 else [])


def test_flicker_to_none_restarts_the_run():
    gate = StabilityGate(required_count=5)
    emitted = feed(gate, [V, N, V, V, V, V, V])
    # Run restarts at index 2, so the fifth consecutive Victory is index 6
    assert emitted == [6]


def test_none_resets_counter_immediately():
    gate = StabilityGate(required_count=5)
    feed(gate, [V, V, V])
    assert gate.current_count == 3

    gate.process(N, is_positive=False)
    assert gate.current_count == 0
    assert gate.current_label is None
    assert not gate.has_fired


def test_alternating_labels_never_emit():
    gate = StabilityGate(required_count=2)
    assert feed(gate, [V, F] * 20) == []


def test_label_change_starts_new_run_and_clears_fired_flag():
    gate = StabilityGate(required_count=3)
    assert feed(gate, [V, V, V, F, F, F]) == [2, 5]


def test_same_label_fires_again_only_after_reset():
    gate = StabilityGate(required_count=3)
    assert feed(gate, [V] * 6) == [2]

    gate.reset()
    assert feed(gate, [V] * 3) == [2]


def test_reset_is_idempotent():
    gate = StabilityGate(required_count=3)
    gate.reset()
    gate.reset()
    assert gate.current_count == 0
    assert gate.progress == 0.0


def test_progress_is_monotonic_and_reaches_one_at_threshold():
    gate = StabilityGate(required_count=4)
    assert gate.progress == 0.0

    seen = []
    for _ in range(4):
        gate.process(V, is_positive=True)
        seen.append(gate.progress)

    assert seen == [0.25, 0.5, 0.75, 1.0]

    # Clamped past the threshold
    gate.process(V, is_positive=True)
    assert gate.progress == 1.0

    gate.reset()
    assert gate.progress == 0.0


def test_required_count_of_one_confirms_every_new_run():
    gate = StabilityGate(required_count=1)
    assert feed(gate, [V, V, F, N, F]) == [0, 2, 4]


def test_generic_over_plain_strings():
    confirmed = []
    gate = StabilityGate(required_count=2, on_stable=confirmed.append)
    for value in ["a", "a", "b", "b", "b"]:
        gate.process(value, is_positive=bool(value))
    assert confirmed == ["a", "b"]


def test_stats_track_frames_and_confirmations():
    gate = StabilityGate(required_count=2)
    feed(gate, [V, V, N, F, F])
    stats = gate.get_stats()
    assert stats["total_frames"] == 5
    assert stats["positive_frames"] == 4
    assert stats["confirmations"] == 2
