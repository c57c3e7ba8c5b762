"""
Hand Gesture Classifier - Landmark heuristics for the closed gesture set.

Maps MediaPipe's 21 normalized hand landmarks to a ClassificationResult.
MediaPipe image coordinates have their origin at the top-left, so y grows
downward and "above" means a smaller y.

The thresholds below are tuning values, not ground truth.
"""

from typing import Any, Dict, Optional

import numpy as np

from .gestures import ClassificationResult, GestureLabel

# ============================================================================
# MediaPipe Landmark Indices
# ============================================================================

WRIST = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

# (tip, pip) per finger
FINGER_JOINTS = {
    "index": (INDEX_TIP, INDEX_PIP),
    "middle": (MIDDLE_TIP, MIDDLE_PIP),
    "ring": (RING_TIP, RING_PIP),
    "pinky": (PINKY_TIP, PINKY_PIP),
}

# Index/middle tip spread for Victory, relative to hand size
VICTORY_SPREAD_RATIO = 0.25

# Vertical thumb offset from the knuckle line, relative to hand size
THUMB_VERTICAL_RATIO = 0.3


# ============================================================================
# Geometry Helpers
# ============================================================================

def _v(lm, i: int) -> np.ndarray:
    """Get 2D vector from landmark."""
    p = lm[i]
    return np.array([p.x, p.y], dtype=np.float32)


def _dist(lm, a: int, b: int) -> float:
    return float(np.linalg.norm(_v(lm, a) - _v(lm, b)))


def _hand_size_ref(lm) -> float:
    """Get reference hand size for normalization."""
    return max(_dist(lm, WRIST, MIDDLE_MCP), 1e-3)


def _knuckle_line_y(lm) -> float:
    """Mean y of the four finger MCP joints."""
    return float(np.mean([lm[i].y for i in (INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP)]))


def finger_states(lm) -> Dict[str, bool]:
    """Extended flag per finger: tip above its PIP joint."""
    return {
        name: bool(lm[tip].y < lm[pip].y)
        for name, (tip, pip) in FINGER_JOINTS.items()
    }


def thumb_direction(lm) -> Optional[str]:
    """
    Return "up" or "down" when the thumb points clearly away from the
    knuckle line, None otherwise.
    """
    ref = _hand_size_ref(lm)
    tip_y = lm[THUMB_TIP].y
    ip_y = lm[THUMB_IP].y
    offset = (_knuckle_line_y(lm) - tip_y) / ref

    if tip_y < ip_y and offset > THUMB_VERTICAL_RATIO:
        return "up"
    if tip_y > ip_y and offset < -THUMB_VERTICAL_RATIO:
        return "down"
    return None


# ============================================================================
# Classification
# ============================================================================

def classify_landmarks(lm, hand_score: float = 1.0) -> ClassificationResult:
    """
    Classify one hand.

    Args:
        lm: Sequence of 21 landmarks with x/y attributes (normalized)
        hand_score: Detector confidence for this hand, in [0, 1]

    Returns:
        ClassificationResult with NONE when no known pose matches.
    """
    score = float(np.clip(hand_score, 0.0, 1.0))
    ext = finger_states(lm)
    thumb = thumb_direction(lm)
    curled = not any(ext.values())

    if ext["index"] and ext["middle"] and not ext["ring"] and not ext["pinky"]:
        spread = _dist(lm, INDEX_TIP, MIDDLE_TIP) / _hand_size_ref(lm)
        if spread > VICTORY_SPREAD_RATIO:
            return ClassificationResult(GestureLabel.VICTORY, score, f"spread={spread:.2f}")
    elif curled and thumb == "up":
        return ClassificationResult(GestureLabel.THUMBS_UP, score, "thumb=up")
    elif curled and thumb == "down":
        return ClassificationResult(GestureLabel.THUMBS_DOWN, score, "thumb=down")
    elif all(ext.values()):
        return ClassificationResult(GestureLabel.OPEN_PALM, score, "fingers=4")
    elif curled:
        return ClassificationResult(GestureLabel.FIST, score, "fingers=0")

    return ClassificationResult(GestureLabel.NONE, score, f"fingers={sum(ext.values())}")


def classify_hand_results(results: Any) -> ClassificationResult:
    """
    Classify the first hand of a MediaPipe Hands result.

    Returns a NONE result with zero confidence when no hand is detected.
    """
    if results is None or not getattr(results, "multi_hand_landmarks", None):
        return ClassificationResult.none("No hand detected")

    hand_score = 1.0
    handedness = getattr(results, "multi_handedness", None)
    if handedness:
        hand_score = handedness[0].classification[0].score

    return classify_landmarks(results.multi_hand_landmarks[0].landmark, hand_score)
