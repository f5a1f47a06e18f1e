"""
Measurement Formatting

This module turns measurement records from the aggregated snapshot into the
short text lines shown in the measurement panel.

Inputs:
    - Tool kind and measurement record (mapping or object with attributes)
    - Measurement snapshots from MeasurementAggregator

Outputs:
    - Display strings such as "12.34 mm" or "Area: 5.00 mm²"

Requirements:
    - Standard library only
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Tuple


_DISPLAY_NAMES: Dict[str, str] = {
    "pan": "Pan",
    "zoom": "Zoom",
    "window-level": "Window/Level",
    "length": "Length",
    "angle": "Angle",
    "cobb-angle": "Cobb Angle",
    "rectangle-roi": "Rectangle ROI",
    "elliptical-roi": "Elliptical ROI",
    "freehand-roi": "Freehand ROI",
    "probe": "Probe",
    "text-marker": "Text Marker",
    "arrow-annotate": "Arrow Annotation",
    "bidirectional": "Bidirectional",
    "magnify": "Magnify",
}


def tool_display_name(tool_kind: str) -> str:
    """Human readable name for a tool kind."""
    return _DISPLAY_NAMES.get(tool_kind, tool_kind.replace("-", " ").title())


def _value(measurement: Any, key: str) -> Any:
    """Read a field from a mapping record, an object record, or its cachedStats."""
    if isinstance(measurement, Mapping):
        if key in measurement:
            return measurement[key]
        stats = measurement.get("cachedStats")
    else:
        if hasattr(measurement, key):
            return getattr(measurement, key)
        stats = getattr(measurement, "cachedStats", None)
    if isinstance(stats, Mapping):
        return stats.get(key)
    return None


def _number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _fixed(measurement: Any, key: str) -> Optional[str]:
    number = _number(_value(measurement, key))
    if number is None:
        return None
    return f"{number:.2f}"


def format_measurement(tool_kind: str, measurement: Any) -> str:
    """
    Format one measurement record for display.

    Args:
        tool_kind: Annotation tool kind (e.g. "length", "rectangle-roi")
        measurement: Record produced by the rendering collaborator

    Returns:
        Display string, or "" when the record lacks the needed values
    """
    if tool_kind == "length":
        length = _fixed(measurement, "length")
        return f"{length} mm" if length is not None else ""

    if tool_kind in ("angle", "cobb-angle"):
        key = "rAngle" if _value(measurement, "angle") is None else "angle"
        angle = _fixed(measurement, key)
        return f"{angle}°" if angle is not None else ""

    if tool_kind in ("rectangle-roi", "elliptical-roi", "freehand-roi"):
        area = _fixed(measurement, "area")
        return f"Area: {area} mm²" if area is not None else ""

    if tool_kind == "probe":
        hu = _value(measurement, "huValue")
        return f"HU: {hu}" if hu is not None else ""

    if tool_kind in ("text-marker", "arrow-annotate"):
        return str(_value(measurement, "text") or "")

    if tool_kind == "bidirectional":
        short = _fixed(measurement, "shortestDiameter")
        long = _fixed(measurement, "longestDiameter")
        if short is None or long is None:
            return ""
        return f"L1: {short} mm, L2: {long} mm"

    return ""


def summarize_measurements(snapshot: Mapping) -> List[Tuple[str, List[str]]]:
    """
    Build panel sections from a measurement snapshot.

    Args:
        snapshot: Mapping tool kind -> sequence of measurement records

    Returns:
        List of (display name, formatted lines) in snapshot order
    """
    sections = []
    for tool_kind, measurements in snapshot.items():
        records: Sequence[Any] = measurements or ()
        lines = [format_measurement(tool_kind, m) for m in records]
        sections.append((tool_display_name(tool_kind), lines))
    return sections
