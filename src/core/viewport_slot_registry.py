"""
Viewport Slot Registry

This module tracks the grid of viewport slots (1x1, 1x2, 2x1, 2x2, or any
rows x cols) and which of them are bound to a rendering surface.

Every other component reaches slots only through for_each_bound(), which
isolates per-slot failures so one unresponsive surface cannot block the
others.

Inputs:
    - Layout changes (rows x cols or "RxC" layout strings)
    - Surface bind/unbind requests

Outputs:
    - Slot lifecycle transitions (unbound -> bound -> disposed)
    - Layout and lifecycle signals
    - SlotUnresponsive reports for failed per-slot operations

Requirements:
    - PySide6 for signals
    - core.viewer_errors for OutOfRange and SlotUnresponsive
"""

from typing import Any, Callable, List, Literal, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from core.viewer_errors import OutOfRange, SlotUnresponsive
from utils.debug_log import debug_log


SlotState = Literal["unbound", "bound", "disposed"]


def parse_layout_mode(layout_mode: str) -> Tuple[int, int]:
    """
    Parse a layout string such as "1x2" into (rows, cols).

    Args:
        layout_mode: "RxC" with positive integers

    Returns:
        Tuple of (rows, cols)

    Raises:
        ValueError: If the string is malformed or a dimension is < 1
    """
    parts = layout_mode.strip().lower().split("x")
    if len(parts) != 2:
        raise ValueError(f"Invalid layout mode: {layout_mode!r}")
    try:
        rows, cols = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"Invalid layout mode: {layout_mode!r}") from None
    if rows < 1 or cols < 1:
        raise ValueError(f"Invalid layout mode: {layout_mode!r}")
    return rows, cols


class ViewportSlot:
    """One grid cell and the surface bound to it, if any."""

    def __init__(self, index: int):
        self.index = index
        self.state: SlotState = "unbound"
        self.surface: Any = None

    @property
    def is_bound(self) -> bool:
        return self.state == "bound"

    def __repr__(self) -> str:
        return f"ViewportSlot(index={self.index}, state={self.state!r})"


class ViewportSlotRegistry(QObject):
    """
    Owns the viewport slots of the current layout.

    Features:
    - Resize to any rows x cols grid, disposing surplus slots
    - Typed bind/unbind lifecycle transitions
    - Failure-isolating enumeration of bound slots
    """

    # Signals
    layout_changed = Signal(int, int)  # rows, cols
    slot_bound = Signal(int)
    slot_unbound = Signal(int)
    slot_disposed = Signal(int)

    def __init__(
        self,
        attach_surface: Optional[Callable[[Any], None]] = None,
        release_surface: Optional[Callable[[Any], None]] = None,
        report_failure: Optional[Callable[[SlotUnresponsive], None]] = None,
    ):
        """
        Initialize an empty registry (no slots until resize()).

        Args:
            attach_surface: Called with a surface when it is bound (e.g. backend.enable)
            release_surface: Called with a surface when it is detached (e.g. backend.disable)
            report_failure: Receives a SlotUnresponsive for each failed per-slot operation
        """
        super().__init__()
        self._attach_surface = attach_surface
        self._release_surface = release_surface
        self._report_failure = report_failure
        self._slots: List[ViewportSlot] = []
        self._rows = 0
        self._cols = 0

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def layout_mode(self) -> str:
        return f"{self._rows}x{self._cols}"

    @property
    def slot_count(self) -> int:
        return len(self._slots)

    def resize(self, rows: int, cols: int) -> None:
        """
        Recompute the grid as rows x cols slots.

        Shrinking disposes the surplus slots, releasing any bound surface.
        Growing appends unbound slots.

        Args:
            rows: Number of grid rows (>= 1)
            cols: Number of grid columns (>= 1)
        """
        if rows < 1 or cols < 1:
            raise ValueError(f"Layout must be at least 1x1, got {rows}x{cols}")

        count = rows * cols
        while len(self._slots) > count:
            slot = self._slots.pop()
            self._dispose_slot(slot)
        while len(self._slots) < count:
            self._slots.append(ViewportSlot(len(self._slots)))

        self._rows = rows
        self._cols = cols
        self.layout_changed.emit(rows, cols)

    def set_layout(self, layout_mode: str) -> None:
        """Resize from a layout string such as "2x2"."""
        rows, cols = parse_layout_mode(layout_mode)
        self.resize(rows, cols)

    def get_slot(self, index: int) -> ViewportSlot:
        """
        Get a slot by index.

        Raises:
            OutOfRange: If there is no such slot in the current layout
        """
        if not 0 <= index < len(self._slots):
            raise OutOfRange(index, len(self._slots), what="slot")
        return self._slots[index]

    def bind(self, index: int, surface: Any) -> ViewportSlot:
        """
        Bind a rendering surface to an unbound slot.

        Args:
            index: Slot index
            surface: Opaque surface handle

        Returns:
            The bound slot

        Raises:
            OutOfRange: If index is not a slot of the current layout
            ValueError: If the slot is already bound or surface is None
        """
        slot = self.get_slot(index)
        if surface is None:
            raise ValueError("Cannot bind a None surface")
        if slot.is_bound:
            raise ValueError(f"Slot {index} is already bound; unbind it first")

        if self._attach_surface is not None:
            self._attach_surface(surface)
        slot.surface = surface
        slot.state = "bound"
        self.slot_bound.emit(index)
        return slot

    def unbind(self, index: int) -> bool:
        """
        Detach the surface from a slot.

        Returns:
            True if the slot was bound, False otherwise
        """
        slot = self.get_slot(index)
        if not slot.is_bound:
            return False
        self._release(slot)
        slot.state = "unbound"
        self.slot_unbound.emit(index)
        return True

    def dispose_all(self) -> None:
        """Dispose every slot (page teardown); the registry ends up empty."""
        while self._slots:
            self._dispose_slot(self._slots.pop())
        self._rows = 0
        self._cols = 0

    def for_each_bound(self, fn: Callable[[ViewportSlot], None]) -> List[SlotUnresponsive]:
        """
        Apply fn to every bound slot, in slot order.

        A failure on one slot is reported for that slot only and iteration
        continues over the rest.

        Args:
            fn: Callable receiving a bound ViewportSlot

        Returns:
            List of SlotUnresponsive errors, empty if every slot succeeded
        """
        failures: List[SlotUnresponsive] = []
        for slot in [s for s in self._slots if s.is_bound]:
            failure = self.run_on(slot, fn)
            if failure is not None:
                failures.append(failure)
        return failures

    def run_on(self, slot: ViewportSlot, fn: Callable[[ViewportSlot], None]) -> Optional[SlotUnresponsive]:
        """
        Apply fn to a single slot, reporting a failure the same way as for_each_bound.

        Returns:
            The SlotUnresponsive error, or None if fn succeeded
        """
        try:
            fn(slot)
        except Exception as e:
            failure = SlotUnresponsive(slot.index, e)
            debug_log("viewport_slot_registry.py:run_on", "slot failed", {"slot": slot.index, "error": str(e)})
            if self._report_failure is not None:
                self._report_failure(failure)
            return failure
        return None

    def bound_slots(self) -> List[ViewportSlot]:
        return [slot for slot in self._slots if slot.is_bound]

    def bound_count(self) -> int:
        return sum(1 for slot in self._slots if slot.is_bound)

    def slot_for_surface(self, surface: Any) -> Optional[ViewportSlot]:
        """Find the bound slot holding a surface, or None."""
        for slot in self._slots:
            if slot.is_bound and slot.surface is surface:
                return slot
        return None

    def reference_slot(self) -> Optional[ViewportSlot]:
        """Slot 0 if it is bound; it is the slot that drives cine playback."""
        if self._slots and self._slots[0].is_bound:
            return self._slots[0]
        return None

    def first_bound_slot(self) -> Optional[ViewportSlot]:
        """Lowest-index bound slot; the reference slot whenever slot 0 is bound."""
        for slot in self._slots:
            if slot.is_bound:
                return slot
        return None

    def _dispose_slot(self, slot: ViewportSlot) -> None:
        if slot.is_bound:
            self._release(slot)
        slot.state = "disposed"
        self.slot_disposed.emit(slot.index)

    def _release(self, slot: ViewportSlot) -> None:
        surface = slot.surface
        slot.surface = None
        if self._release_surface is None or surface is None:
            return
        try:
            self._release_surface(surface)
        except Exception as e:
            # The slot is detached regardless; only the release itself failed
            failure = SlotUnresponsive(slot.index, e)
            if self._report_failure is not None:
                self._report_failure(failure)
