"""
Transform State

This module defines the shared per-viewport visual transform (zoom, pan,
rotation, flips, intensity window, inversion) as an immutable value, and the
mutator functions every transform operation is expressed with.

A mutator is any callable TransformState -> TransformState; the broadcaster
applies it once and pushes the result to every bound slot.

Inputs:
    - Zoom/pan/rotate/flip/window-level/invert requests

Outputs:
    - New TransformState values

Requirements:
    - Standard library only (dataclasses)
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, Literal, Optional, Tuple


RotateDirection = Literal["cw", "ccw"]


@dataclass(frozen=True)
class TransformState:
    """
    Visual transform shared by all bound viewport slots.

    window_width/window_center of None mean "use the image's own VOI".
    """

    scale: float = 1.0
    pan: Tuple[float, float] = (0.0, 0.0)
    rotation: int = 0
    hflip: bool = False
    vflip: bool = False
    window_width: Optional[float] = None
    window_center: Optional[float] = None
    inverted: bool = False

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"Scale must be positive, got {self.scale}")
        if int(self.rotation) != self.rotation or int(self.rotation) % 90 != 0:
            raise ValueError(f"Rotation must be a multiple of 90 degrees, got {self.rotation}")
        if self.window_width is not None and self.window_width < 1:
            raise ValueError(f"Window width must be at least 1, got {self.window_width}")
        # Normalize representation so equal transforms compare equal
        object.__setattr__(self, "rotation", int(self.rotation) % 360)
        object.__setattr__(self, "pan", (float(self.pan[0]), float(self.pan[1])))
        object.__setattr__(self, "scale", float(self.scale))

    def merge(self, **changes: Any) -> "TransformState":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict snapshot for the UI layer."""
        data = asdict(self)
        data["pan"] = list(self.pan)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransformState":
        """Build a state from a to_dict() snapshot, ignoring unknown keys."""
        fields = {key: data[key] for key in cls.__dataclass_fields__ if key in data}
        if "pan" in fields:
            fields["pan"] = tuple(fields["pan"])
        return cls(**fields)


Mutator = Callable[[TransformState], TransformState]


def zoom_by(factor: float) -> Mutator:
    """Multiply the current scale by factor."""
    if factor <= 0:
        raise ValueError(f"Zoom factor must be positive, got {factor}")
    return lambda state: state.merge(scale=state.scale * factor)


def set_scale(scale: float) -> Mutator:
    """Set an absolute scale (1.0 = fit)."""
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")
    return lambda state: state.merge(scale=scale)


def rotate(direction: RotateDirection) -> Mutator:
    """Rotate 90 degrees clockwise ("cw") or counter-clockwise ("ccw")."""
    if direction not in ("cw", "ccw"):
        raise ValueError(f"Unknown rotation direction: {direction!r}")
    step = 90 if direction == "cw" else -90
    return lambda state: state.merge(rotation=state.rotation + step)


def flip_horizontal() -> Mutator:
    return lambda state: state.merge(hflip=not state.hflip)


def flip_vertical() -> Mutator:
    return lambda state: state.merge(vflip=not state.vflip)


def toggle_invert() -> Mutator:
    return lambda state: state.merge(inverted=not state.inverted)


def set_window_level(window_width: float, window_center: float) -> Mutator:
    """
    Set the intensity window.

    Args:
        window_width: Window width; values below 1 are clamped to 1
        window_center: Window center (level)
    """
    width = max(1.0, float(window_width))
    center = float(window_center)
    return lambda state: state.merge(window_width=width, window_center=center)


def pan_by(dx: float, dy: float) -> Mutator:
    """Translate the pan offset."""
    return lambda state: state.merge(pan=(state.pan[0] + dx, state.pan[1] + dy))


def reset_to(default: TransformState) -> Mutator:
    """Replace the current state with a default one."""
    return lambda state: default
