"""
Viewer Errors

This module defines the recoverable error taxonomy of the viewport
orchestration core.

Inputs:
    - Failure details from navigation, tool activation, image loading and
      per-slot broadcast operations

Outputs:
    - Exception instances carrying a short machine-readable ``kind``

Requirements:
    - Standard library only
"""

from typing import Optional


class ViewerError(Exception):
    """
    Base class for every recoverable viewer error.

    None of these are fatal to the orchestration core; they are caught at the
    component boundary and reported through the notice channel.
    """

    kind = "viewer_error"

    def __init__(self, message: str, slot_index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.slot_index = slot_index


class OutOfRange(ViewerError, IndexError):
    """Navigation or slot index outside of the valid bounds."""

    kind = "out_of_range"

    def __init__(self, index: int, length: int, what: str = "image"):
        if length > 0:
            message = f"{what.capitalize()} index {index} is outside [0, {length - 1}]"
        else:
            message = f"{what.capitalize()} index {index} requested but there are no {what}s"
        super().__init__(message)
        self.index = index
        self.length = length


class UnknownTool(ViewerError, ValueError):
    """Activation requested for a tool name that is not registered."""

    kind = "unknown_tool"

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name!r}")
        self.tool_name = tool_name


class LoadFailure(ViewerError):
    """An image load failed; the previously displayed frame is kept."""

    kind = "load_failure"

    def __init__(self, image_id: str, index: Optional[int], cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to load image {image_id!r} (index {index}){detail}")
        self.image_id = image_id
        self.index = index
        self.cause = cause


class SlotUnresponsive(ViewerError):
    """One bound slot failed to apply an operation; the others are unaffected."""

    kind = "slot_unresponsive"

    def __init__(self, slot_index: int, cause: BaseException):
        super().__init__(f"Viewport slot {slot_index} failed: {cause}", slot_index=slot_index)
        self.cause = cause


class CineAlreadyRunning(ViewerError):
    """Redundant play request. Benign; reported at info severity only."""

    kind = "cine_already_running"

    def __init__(self):
        super().__init__("Cine playback is already running")


class CineNotRunning(ViewerError):
    """Redundant stop request. Benign; reported at info severity only."""

    kind = "cine_not_running"

    def __init__(self):
        super().__init__("Cine playback is not running")


class RenderingLost(ViewerError):
    """The last bound slot went away while cine was playing."""

    kind = "rendering_lost"

    def __init__(self):
        super().__init__("No bound viewport remains; cine playback stopped")


class SourceFailure(ViewerError):
    """The data source could not supply a series."""

    kind = "source_failure"

    def __init__(self, series_id: str, cause: BaseException):
        super().__init__(f"Could not open series {series_id!r}: {cause}")
        self.series_id = series_id
        self.cause = cause
