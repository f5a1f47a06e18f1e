"""
Viewport Overlay Text

This module builds the corner text drawn over the viewport: patient and study
details, image position, and the current zoom and window/level.

Inputs:
    - StudyMetadata
    - Current TransformState
    - Current image index and sequence length

Outputs:
    - Dictionary of corner name -> list of text lines

Requirements:
    - core.series_source for StudyMetadata
    - core.transform_state for TransformState
"""

from typing import Any, Dict, List, Optional

from core.series_source import StudyMetadata
from core.transform_state import TransformState


CORNERS = ("upper_left", "upper_right", "lower_left", "lower_right")


def build_overlay_text(
    metadata: StudyMetadata,
    transform: Optional[TransformState],
    current_index: Optional[int],
    total_images: int,
) -> Dict[str, List[str]]:
    """
    Build overlay text for one viewport.

    Args:
        metadata: Study/series metadata
        transform: Shared transform, or None before anything was displayed
        current_index: Zero-based index of the displayed image, or None
        total_images: Length of the sequence

    Returns:
        Dictionary with keys from CORNERS, each a list of lines
    """
    upper_left = [metadata.patient_name, f"ID: {metadata.patient_id}", f"Date: {metadata.study_date}"]

    upper_right = [metadata.modality]
    if metadata.series_number:
        upper_right.append(f"Series: {metadata.series_number}")
    position = 0 if current_index is None else current_index + 1
    upper_right.append(f"Image: {position} / {total_images}")

    lower_left: List[str] = []
    if transform is not None:
        lower_left.append(f"Zoom: {transform.scale * 100:.0f}%")
        if transform.window_width is not None and transform.window_center is not None:
            lower_left.append(f"WW: {transform.window_width:.0f}")
            lower_left.append(f"WL: {transform.window_center:.0f}")
        if transform.rotation:
            lower_left.append(f"Rotation: {transform.rotation}°")
        if transform.inverted:
            lower_left.append("Inverted")

    return {
        "upper_left": upper_left,
        "upper_right": upper_right,
        "lower_left": lower_left,
        "lower_right": [],
    }


def overlay_from_snapshot(snapshot: Dict[str, Any]) -> Dict[str, List[str]]:
    """Build overlay text from ViewportOrchestrator.snapshot()."""
    return build_overlay_text(
        snapshot.get("metadata") or StudyMetadata(),
        TransformState.from_dict(snapshot["transform"]) if snapshot.get("transform") else None,
        snapshot.get("index"),
        snapshot.get("length", 0),
    )
