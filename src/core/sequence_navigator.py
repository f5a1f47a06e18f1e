"""
Sequence Navigator

This module owns the ordered list of image identifiers for the open series and
the current index within it. Pure index arithmetic, no I/O.

Manual navigation clamps at the ends of the sequence, while the cine step
wraps back to the first image.

Inputs:
    - Image identifier lists from the data source
    - Navigation requests (next/prev, jump, cine step)

Outputs:
    - Current index changes
    - Navigation signals

Requirements:
    - PySide6 for signals
    - core.viewer_errors for OutOfRange
"""

from typing import Iterable, Literal, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from core.viewer_errors import OutOfRange


Direction = Literal["next", "prev"]


class SequenceNavigator(QObject):
    """
    Handles navigation through an ordered image sequence.

    Features:
    - Clamped next/previous navigation
    - Validated jumps to an absolute index
    - Wrapping cine step used by the playback engine
    """

    # Signals
    sequence_changed = Signal(int)  # Emitted with the new sequence length
    index_changed = Signal(int)  # Emitted when the current index changes

    def __init__(self):
        """Initialize the navigator with an empty sequence."""
        super().__init__()
        self._image_ids: Tuple[str, ...] = ()
        self._current_index: Optional[int] = None

    @property
    def image_ids(self) -> Tuple[str, ...]:
        """The loaded image identifiers, in display order."""
        return self._image_ids

    @property
    def length(self) -> int:
        return len(self._image_ids)

    @property
    def current_index(self) -> Optional[int]:
        """Current index, or None when the sequence is empty."""
        return self._current_index

    @property
    def current_image_id(self) -> Optional[str]:
        if self._current_index is None:
            return None
        return self._image_ids[self._current_index]

    def image_id_at(self, index: int) -> str:
        """
        Get the identifier at an index.

        Args:
            index: Index into the sequence

        Returns:
            Image identifier

        Raises:
            OutOfRange: If index is outside the sequence
        """
        if not 0 <= index < len(self._image_ids):
            raise OutOfRange(index, len(self._image_ids))
        return self._image_ids[index]

    def set_sequence(self, image_ids: Iterable[str]) -> None:
        """
        Replace the sequence wholesale and reset the index.

        Args:
            image_ids: Ordered image identifiers; may be empty
        """
        self._image_ids = tuple(image_ids)
        self._current_index = 0 if self._image_ids else None
        self.sequence_changed.emit(len(self._image_ids))
        if self._current_index is not None:
            self.index_changed.emit(self._current_index)

    def advance(self, direction: Direction) -> bool:
        """
        Move one image forwards or backwards, clamping at the ends.

        Args:
            direction: "next" or "prev"

        Returns:
            True if the index changed, False if already at the boundary
        """
        if direction not in ("next", "prev"):
            raise ValueError(f"Unknown navigation direction: {direction!r}")
        if self._current_index is None:
            return False

        if direction == "next":
            if self._current_index >= len(self._image_ids) - 1:
                return False
            self._set_index(self._current_index + 1)
        else:
            if self._current_index <= 0:
                return False
            self._set_index(self._current_index - 1)
        return True

    def jump_to(self, index: int) -> bool:
        """
        Jump to an absolute index.

        Args:
            index: Target index

        Returns:
            True if the index changed, False if it was already current

        Raises:
            OutOfRange: If index is outside [0, length-1]
        """
        if not 0 <= index < len(self._image_ids):
            raise OutOfRange(index, len(self._image_ids))
        if index == self._current_index:
            return False
        self._set_index(index)
        return True

    def first(self) -> bool:
        """Navigate to the first image."""
        if not self._image_ids:
            return False
        return self.jump_to(0)

    def last(self) -> bool:
        """Navigate to the last image."""
        if not self._image_ids:
            return False
        return self.jump_to(len(self._image_ids) - 1)

    def cine_step(self) -> int:
        """
        Advance for cine playback, wrapping from the last index to 0.

        Returns:
            The new current index

        Raises:
            OutOfRange: If the sequence is empty
        """
        if self._current_index is None:
            raise OutOfRange(0, 0)
        self._set_index((self._current_index + 1) % len(self._image_ids))
        return self._current_index

    def _set_index(self, index: int) -> None:
        self._current_index = index
        self.index_changed.emit(index)
