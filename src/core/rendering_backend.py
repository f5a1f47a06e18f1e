"""
Rendering Backend Interface

This module defines the boundary between the orchestration core and the
rendering collaborator that decodes pixels and draws them on surfaces.

The core never draws; it only tells the backend which image to show where,
which transform and tool state to apply, and asks it for annotation state.

Inputs:
    - Surface handles (opaque to the core)
    - Image identifiers

Outputs:
    - Futures resolving to decoded images
    - Render-completed and annotation change notifications (RenderingEvents)

Requirements:
    - PySide6 for notification signals
    - concurrent.futures for asynchronous image loads
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Any, Dict, Sequence

from PySide6.QtCore import QObject, Signal

from core.transform_state import TransformState


class RenderingEvents(QObject):
    """
    Notifications emitted by the rendering collaborator.

    Surfaces are passed as opaque objects; annotation signals also carry the
    tool kind that changed.
    """

    image_rendered = Signal(object)  # surface
    annotation_created = Signal(object, str)  # surface, tool kind
    annotation_modified = Signal(object, str)  # surface, tool kind
    annotation_removed = Signal(object, str)  # surface, tool kind


class RenderingBackend(ABC):
    """
    Abstract rendering collaborator.

    Futures returned from load_image must be resolved on the GUI thread so
    their done-callbacks run inside the single-threaded event loop.
    """

    def __init__(self):
        self.events = RenderingEvents()

    @abstractmethod
    def enable(self, surface: Any) -> None:
        """Prepare a surface for rendering."""
        pass

    @abstractmethod
    def disable(self, surface: Any) -> None:
        """Detach a surface and release its rendering resources."""
        pass

    @abstractmethod
    def load_image(self, image_id: str) -> Future:
        """Start loading an image; the future resolves to a backend image object."""
        pass

    @abstractmethod
    def display_image(self, surface: Any, image: Any) -> None:
        """Show a loaded image on a surface."""
        pass

    @abstractmethod
    def get_transform(self, surface: Any) -> TransformState:
        """Read the transform currently applied on a surface."""
        pass

    @abstractmethod
    def set_transform(self, surface: Any, state: TransformState) -> None:
        """Apply a transform to a surface."""
        pass

    @abstractmethod
    def update_image(self, surface: Any) -> None:
        """Request a redraw of a surface (fire-and-forget)."""
        pass

    @abstractmethod
    def set_tool_active(self, surface: Any, tool: str, options: Dict[str, Any]) -> None:
        """Make a tool interactive on a surface."""
        pass

    @abstractmethod
    def set_tool_passive(self, surface: Any, tool: str) -> None:
        """Make a tool visible but non-interactive on a surface."""
        pass

    @abstractmethod
    def get_annotations(self, surface: Any, tool_kind: str) -> Sequence[Any]:
        """Return the annotation records of one tool kind on a surface."""
        pass

    @abstractmethod
    def clear_annotations(self, surface: Any, tool_kind: str) -> None:
        """Remove every annotation of one tool kind from a surface."""
        pass
