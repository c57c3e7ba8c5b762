from types import SimpleNamespace

import pytest

from gesture_detector.gestures import GestureLabel
from gesture_detector.hand_classifier import (
    INDEX_PIP,
    INDEX_TIP,
    MIDDLE_PIP,
    MIDDLE_TIP,
    PINKY_PIP,
    PINKY_TIP,
    RING_PIP,
    RING_TIP,
    THUMB_IP,
    THUMB_TIP,
    classify_hand_results,
    classify_landmarks,
    finger_states,
    thumb_direction,
)

FINGERS = {
    "index": (INDEX_TIP, INDEX_PIP, 0.40),
    "middle": (MIDDLE_TIP, MIDDLE_PIP, 0.47),
    "ring": (RING_TIP, RING_PIP, 0.53),
    "pinky": (PINKY_TIP, PINKY_PIP, 0.60),
}


def make_hand(extended=(), thumb=None, tip_x=None):
    """
    Build 21 synthetic landmarks for an upright right hand.

    Wrist at the bottom, knuckle line at y=0.6. Extended fingertips sit
    above their PIP joint, curled ones below it.
    """
    points = [[0.5, 0.9] for _ in range(21)]
    points[5] = [0.40, 0.6]
    points[9] = [0.47, 0.6]
    points[13] = [0.53, 0.6]
    points[17] = [0.60, 0.6]

    for name, (tip, pip, x) in FINGERS.items():
        points[pip] = [x, 0.5]
        tx = (tip_x or {}).get(name, x)
        points[tip] = [tx, 0.35] if name in extended else [x, 0.62]

    # Thumb tucked across the palm by default
    points[THUMB_IP] = [0.45, 0.60]
    points[THUMB_TIP] = [0.48, 0.62]
    if thumb == "up":
        points[THUMB_IP] = [0.35, 0.45]
        points[THUMB_TIP] = [0.35, 0.35]
    elif thumb == "down":
        points[THUMB_IP] = [0.35, 0.80]
        points[THUMB_TIP] = [0.35, 0.90]

    return [SimpleNamespace(x=x, y=y, z=0.0) for x, y in points]


def hand_results(landmarks, score=0.8):
    return SimpleNamespace(
        multi_hand_landmarks=[SimpleNamespace(landmark=landmarks)],
        multi_handedness=[SimpleNamespace(classification=[SimpleNamespace(score=score)])],
    )


VICTORY_SPREAD = {"index": 0.35, "middle": 0.55}


@pytest.mark.parametrize(
    "hand, expected",
    [
        (make_hand(extended=("index", "middle"), tip_x=VICTORY_SPREAD), GestureLabel.VICTORY),
        (make_hand(thumb="up"), GestureLabel.THUMBS_UP),
        (make_hand(thumb="down"), GestureLabel.THUMBS_DOWN),
        (make_hand(extended=("index", "middle", "ring", "pinky")), GestureLabel.OPEN_PALM),
        (make_hand(), GestureLabel.FIST),
    ],
)
def test_gesture_poses(hand, expected):
    assert classify_landmarks(hand).label is expected


def test_pointing_finger_is_not_a_gesture():
    assert classify_landmarks(make_hand(extended=("index",))).label is GestureLabel.NONE


def test_victory_needs_spread_fingers():
    closed = make_hand(extended=("index", "middle"), tip_x={"index": 0.46, "middle": 0.48})
    assert classify_landmarks(closed).label is GestureLabel.NONE


def test_finger_states_follow_tip_above_pip():
    states = finger_states(make_hand(extended=("index", "pinky")))
    assert states == {"index": True, "middle": False, "ring": False, "pinky": True}


def test_thumb_direction():
    assert thumb_direction(make_hand(thumb="up")) == "up"
    assert thumb_direction(make_hand(thumb="down")) == "down"
    assert thumb_direction(make_hand()) is None


def test_hand_score_becomes_confidence():
    result = classify_hand_results(hand_results(make_hand(thumb="up"), score=0.8))
    assert result.label is GestureLabel.THUMBS_UP
    assert result.confidence == pytest.approx(0.8)


@pytest.mark.parametrize(
    "results",
    [None, SimpleNamespace(multi_hand_landmarks=None), SimpleNamespace(multi_hand_landmarks=[])],
)
def test_no_hand_yields_none(results):
    result = classify_hand_results(results)
    assert result.label is GestureLabel.NONE
    assert result.confidence == 0.0
