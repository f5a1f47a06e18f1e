"""
Tool Activation Machine

This module manages which interactive tool is active. Exactly one tool is
active on every bound slot; every other tool is passive (visible but not
interactive).

Inputs:
    - Tool activation requests by name

Outputs:
    - set_tool_passive/set_tool_active calls on every bound slot
    - tool_changed signal

Requirements:
    - PySide6 for signals
    - core.viewport_slot_registry for slot enumeration
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from core.rendering_backend import RenderingBackend
from core.viewer_errors import SlotUnresponsive, UnknownTool
from core.viewport_slot_registry import ViewportSlot, ViewportSlotRegistry


TOOL_NAMES: Tuple[str, ...] = (
    "pan",
    "zoom",
    "window-level",
    "length",
    "angle",
    "cobb-angle",
    "rectangle-roi",
    "elliptical-roi",
    "freehand-roi",
    "probe",
    "text-marker",
    "arrow-annotate",
    "bidirectional",
    "magnify",
)

# Tools whose interactions produce measurement records
ANNOTATION_TOOL_NAMES: Tuple[str, ...] = (
    "length",
    "angle",
    "cobb-angle",
    "rectangle-roi",
    "elliptical-roi",
    "freehand-roi",
    "arrow-annotate",
    "bidirectional",
    "probe",
    "text-marker",
)

_TOOL_ALIASES = {
    "wwwc": "window-level",
    "window-width-center": "window-level",
    "wl": "window-level",
}

DEFAULT_TOOL = "pan"
DEFAULT_TOOL_OPTIONS: Dict[str, Any] = {"mouseButtonMask": 1}


def normalize_tool_name(name: str) -> str:
    """
    Normalize a tool name to its canonical kebab-case form.

    Accepts "RectangleRoi", "rectangle_roi", "Rectangle ROI" and the legacy
    "Wwwc" alias. The result may still be an unknown name.
    """
    text = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", name.strip())
    text = re.sub(r"[\s_]+", "-", text).lower()
    return _TOOL_ALIASES.get(text, text)


def resolve_tool_name(tool: str) -> str:
    """
    Return the canonical name of a registered tool.

    Raises:
        UnknownTool: If the name does not match a registered tool
    """
    if not isinstance(tool, str):
        raise UnknownTool(repr(tool))
    name = normalize_tool_name(tool)
    if name not in TOOL_NAMES:
        raise UnknownTool(tool)
    return name


class ToolActivationMachine(QObject):
    """
    Single-active-tool state machine shared by all slots.

    States are the tool names plus None. The machine is agnostic about what
    a tool does; it only guarantees exclusivity and fan-out.
    """

    # Signals
    tool_changed = Signal(str)

    def __init__(
        self,
        registry: ViewportSlotRegistry,
        backend: RenderingBackend,
        initial_tool: Optional[str] = DEFAULT_TOOL,
        tool_options: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the machine.

        Args:
            registry: Slot registry used to enumerate bound slots
            backend: Rendering collaborator receiving tool states
            initial_tool: Starting tool (applied to slots as they are bound)
            tool_options: Options passed when activating a tool
        """
        super().__init__()
        self.registry = registry
        self.backend = backend
        self.tool_options = dict(tool_options or DEFAULT_TOOL_OPTIONS)
        self._current: Optional[str] = None
        if initial_tool is not None:
            self._current = resolve_tool_name(initial_tool)
        self.last_failures: List[SlotUnresponsive] = []

    @property
    def current_tool(self) -> Optional[str]:
        return self._current

    def activate(self, tool: str) -> str:
        """
        Make tool the single active tool on every bound slot.

        Validation happens before any slot is touched, so an unknown tool
        leaves the previous tool active.

        Args:
            tool: Tool name

        Returns:
            Canonical name of the now-active tool

        Raises:
            UnknownTool: If tool is not registered
        """
        name = resolve_tool_name(tool)

        failures = self.registry.for_each_bound(lambda slot: self._set_others_passive(slot, name))
        failures += self.registry.for_each_bound(lambda slot: self._set_active(slot, name))
        self.last_failures = failures

        previous = self._current
        self._current = name
        if previous != name:
            self.tool_changed.emit(name)
        return name

    def sync_slot(self, slot: ViewportSlot) -> None:
        """Apply the current tool state to one slot, e.g. right after it was bound."""
        self._set_others_passive(slot, self._current)
        if self._current is not None:
            self._set_active(slot, self._current)

    def _set_others_passive(self, slot: ViewportSlot, active: Optional[str]) -> None:
        for tool in TOOL_NAMES:
            if tool != active:
                self.backend.set_tool_passive(slot.surface, tool)

    def _set_active(self, slot: ViewportSlot, tool: str) -> None:
        self.backend.set_tool_active(slot.surface, tool, dict(self.tool_options))
