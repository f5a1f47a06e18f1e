"""
Transform Broadcaster

This module holds the single TransformState shared by all bound viewport
slots and pushes every change to each of them.

Inputs:
    - Mutator functions (TransformState -> TransformState)
    - Transforms reported by a slot after interactive changes

Outputs:
    - set_transform/update_image calls on every bound slot
    - transform_changed signal

Requirements:
    - PySide6 for signals
    - core.transform_state for the value type
    - core.viewport_slot_registry for slot enumeration
"""

from typing import List, Optional

from PySide6.QtCore import QObject, Signal

from core.rendering_backend import RenderingBackend
from core.transform_state import Mutator, TransformState
from core.viewer_errors import SlotUnresponsive
from core.viewport_slot_registry import ViewportSlot, ViewportSlotRegistry


class TransformBroadcaster(QObject):
    """
    Applies transform mutations once and fans them out to every bound slot.

    The stored state is updated exactly once per apply(), before any slot is
    touched, so a slot that redraws late still reads the latest value.
    """

    # Signals
    transform_changed = Signal(object)  # TransformState

    def __init__(
        self,
        registry: ViewportSlotRegistry,
        backend: RenderingBackend,
        initial_state: Optional[TransformState] = None,
    ):
        """
        Initialize the broadcaster.

        Args:
            registry: Slot registry used to enumerate bound slots
            backend: Rendering collaborator receiving the transforms
            initial_state: Starting transform (defaults to TransformState())
        """
        super().__init__()
        self.registry = registry
        self.backend = backend
        self._state = initial_state if initial_state is not None else TransformState()
        self.last_failures: List[SlotUnresponsive] = []

    @property
    def state(self) -> TransformState:
        return self._state

    def apply(self, mutator: Mutator) -> TransformState:
        """
        Compute the new state once and push it to every bound slot.

        Args:
            mutator: Function from the current state to the new state

        Returns:
            The new shared TransformState
        """
        new_state = mutator(self._state)
        if not isinstance(new_state, TransformState):
            raise TypeError(f"Transform mutator returned {type(new_state).__name__}, expected TransformState")

        self._state = new_state
        self.last_failures = self.registry.for_each_bound(self._push_to_slot)
        self.transform_changed.emit(new_state)
        return new_state

    def adopt(self, reported: TransformState) -> bool:
        """
        Take over a transform reported by one slot and broadcast it.

        Used after interactive tools (pan, zoom, window-level drags) changed
        a single surface. Equal values are ignored.

        Returns:
            True if the shared state changed
        """
        if reported == self._state:
            return False
        self.apply(lambda _state: reported)
        return True

    def sync_slot(self, slot: ViewportSlot) -> None:
        """Push the current state to one slot, e.g. right after it was bound."""
        self._push_to_slot(slot)

    def _push_to_slot(self, slot: ViewportSlot) -> None:
        self.backend.set_transform(slot.surface, self._state)
        self.backend.update_image(slot.surface)
