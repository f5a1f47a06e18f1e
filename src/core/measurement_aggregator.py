"""
Measurement Aggregator

This module collects the annotation records produced by the rendering
collaborator's measurement tools, grouped by tool kind, and republishes a
consistent snapshot whenever annotations change.

Every change notification triggers a full resync rather than an incremental
patch.

Inputs:
    - Annotation created/modified/removed notifications
    - Clear requests

Outputs:
    - Snapshot mapping tool kind -> tuple of measurement records
    - measurements_changed signal

Requirements:
    - PySide6 for signals
    - core.viewport_slot_registry for slot enumeration
"""

from typing import Any, Dict, Iterable, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from core.rendering_backend import RenderingBackend
from core.tool_activation_machine import ANNOTATION_TOOL_NAMES
from core.viewport_slot_registry import ViewportSlot, ViewportSlotRegistry


MeasurementSnapshot = Dict[str, Tuple[Any, ...]]


class MeasurementAggregator(QObject):
    """
    Aggregates measurement state shown in the viewer; clear() acts on every bound slot.

    Kinds with no annotations are omitted from the snapshot, so an empty
    viewer publishes {}.
    """

    # Signals
    measurements_changed = Signal(object)  # MeasurementSnapshot

    def __init__(
        self,
        registry: ViewportSlotRegistry,
        backend: RenderingBackend,
        tool_kinds: Optional[Iterable[str]] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            registry: Slot registry used to enumerate bound slots
            backend: Rendering collaborator holding the annotation state
            tool_kinds: Annotation-capable tool kinds (defaults to ANNOTATION_TOOL_NAMES)
        """
        super().__init__()
        self.registry = registry
        self.backend = backend
        self.tool_kinds: Tuple[str, ...] = tuple(tool_kinds if tool_kinds is not None else ANNOTATION_TOOL_NAMES)
        self._snapshot: MeasurementSnapshot = {}

    @property
    def snapshot(self) -> MeasurementSnapshot:
        """Copy of the last published snapshot."""
        return dict(self._snapshot)

    def count(self) -> int:
        """Total number of measurements in the snapshot."""
        return sum(len(items) for items in self._snapshot.values())

    def measurements_for(self, tool_kind: str) -> Tuple[Any, ...]:
        return self._snapshot.get(tool_kind, ())

    def refresh(self) -> MeasurementSnapshot:
        """
        Re-read every known tool kind from the measurement slot and publish.

        Every bound slot shows the same image, so annotations are read from
        one slot only: the reference slot (slot 0), or the lowest bound slot
        when slot 0 is empty. If that read fails the previous snapshot is
        kept and nothing is published.

        Returns:
            The current snapshot
        """
        slot = self.registry.first_bound_slot()
        if slot is None:
            self._publish({})
            return {}

        collected: Dict[str, Tuple[Any, ...]] = {}

        def read_slot(slot: ViewportSlot) -> None:
            for kind in self.tool_kinds:
                items = tuple(self.backend.get_annotations(slot.surface, kind) or ())
                if items:
                    collected[kind] = items

        if self.registry.run_on(slot, read_slot) is not None:
            return self.snapshot
        self._publish(collected)
        return dict(collected)

    def on_annotation_created(self, *args: Any) -> None:
        self.refresh()

    def on_annotation_modified(self, *args: Any) -> None:
        self.refresh()

    def on_annotation_removed(self, *args: Any) -> None:
        self.refresh()

    def clear(self) -> None:
        """Remove every known annotation kind from every bound slot and publish {}."""

        def clear_slot(slot: ViewportSlot) -> None:
            for kind in self.tool_kinds:
                self.backend.clear_annotations(slot.surface, kind)
            self.backend.update_image(slot.surface)

        self.registry.for_each_bound(clear_slot)
        self._publish({})

    def _publish(self, snapshot: MeasurementSnapshot) -> None:
        self._snapshot = snapshot
        self.measurements_changed.emit(dict(snapshot))
