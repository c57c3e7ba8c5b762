"""
Gesture data model shared by the classifier, the gate and the wire codec.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GestureLabel(Enum):
    """Closed set of recognized hand poses. Values are the wire names."""
    NONE = "none"
    VICTORY = "victory"
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"
    OPEN_PALM = "open_palm"
    FIST = "fist"

    @property
    def is_positive(self) -> bool:
        """True for every label except the NONE sentinel."""
        return self is not GestureLabel.NONE

    @property
    def emoji(self) -> str:
        return _EMOJI[self]

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def from_name(cls, name: str) -> Optional["GestureLabel"]:
        """Look up a label by wire name, None if unknown."""
        try:
            return cls(name)
        except ValueError:
            return None


_EMOJI = {
    GestureLabel.NONE: "",
    GestureLabel.VICTORY: "✌️",
    GestureLabel.THUMBS_UP: "👍",
    GestureLabel.THUMBS_DOWN: "👎",
    GestureLabel.OPEN_PALM: "✋",
    GestureLabel.FIST: "✊",
}


@dataclass(frozen=True)
class ClassificationResult:
    """
    One per-frame classifier output.

    Attributes:
        label: Detected gesture (NONE when no hand or no known pose)
        confidence: Classifier confidence in [0, 1]
        debug_info: Free-form text for logging
    """
    label: GestureLabel
    confidence: float
    debug_info: str = ""

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence={self.confidence} is outside [0, 1]")

    @classmethod
    def none(cls, debug_info: str = "") -> "ClassificationResult":
        """Result for a frame with no detected gesture."""
        return cls(label=GestureLabel.NONE, confidence=0.0, debug_info=debug_info)
