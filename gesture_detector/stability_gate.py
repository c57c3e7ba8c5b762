"""
Stability Gate - Debounces a per-frame classification stream.

A raw classifier flickers between labels from one frame to the next. The
gate only confirms a label once it has been seen on `required_count`
consecutive frames, and confirms it exactly once per uninterrupted run.
"""

import logging
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StabilityGate(Generic[T]):
    """
    Run-length debounce state machine for any equality-comparable value.

    Tracks:
    - The label of the current run and its length
    - Whether the current run has already been confirmed

    A non-positive frame (no gesture) ends the run. A different label
    starts a new run of length 1. Frames must be fed by a single sequential
    caller in arrival order.
    """

    def __init__(
        self,
        required_count: int = 5,
        on_stable: Optional[Callable[[T], None]] = None,
    ):
        """
        Initialize StabilityGate.

        Args:
            required_count: Consecutive identical positive frames needed
                before a label is confirmed. Must be >= 1.
            on_stable: Callback invoked once with the confirmed label.

        Raises:
            ValueError: If required_count is less than 1.
        """
        if required_count < 1:
            raise ValueError(f"required_count must be >= 1, got {required_count}")

        self.required_count = required_count
        self.on_stable = on_stable

        # Run state
        self._current_count: int = 0
        self._current_label: Optional[T] = None
        self._has_fired: bool = False

        # Statistics
        self._total_frames: int = 0
        self._positive_frames: int = 0
        self._confirmations: int = 0

    @property
    def current_count(self) -> int:
        return self._current_count

    @property
    def current_label(self) -> Optional[T]:
        return self._current_label

    @property
    def has_fired(self) -> bool:
        return self._has_fired

    @property
    def progress(self) -> float:
        """Fraction of the required run seen so far, clamped to [0, 1]."""
        return min(1.0, self._current_count / self.required_count)

    def process(self, label: T, is_positive: bool) -> Optional[T]:
        """
        Feed one classified frame.

        Args:
            label: The frame's label
            is_positive: Whether the label counts as a detection

        Returns:
            The label if this frame confirmed it, otherwise None.
        """
        self._total_frames += 1

        if not is_positive:
            self.reset()
            return None

        self._positive_frames += 1

        if self._current_label is not None and label == self._current_label:
            self._current_count += 1
        else:
            self._current_count = 1
            self._current_label = label
            self._has_fired = False

        if self._current_count >= self.required_count and not self._has_fired:
            self._has_fired = True
            self._confirmations += 1
            logger.debug(f"Stable value confirmed after {self._current_count} frames: {label}")
            if self.on_stable:
                self.on_stable(label)
            return label

        return None

    def reset(self) -> None:
        """Clear the current run and re-arm the gate."""
        self._current_count = 0
        self._current_label = None
        self._has_fired = False

    def get_stats(self) -> dict:
        """Get gate statistics."""
        return {
            "total_frames": self._total_frames,
            "positive_frames": self._positive_frames,
            "confirmations": self._confirmations,
            "current_count": self._current_count,
            "progress": self.progress,
        }
