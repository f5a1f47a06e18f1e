"""
Series Source

This module defines the data source boundary that supplies the ordered image
identifiers of a series plus descriptive study/series metadata, and a
pydicom-based implementation reading a local folder.

Metadata is used for display only, never for orchestration decisions.

Inputs:
    - Series identifiers
    - Folder paths containing DICOM files (any extension)

Outputs:
    - Ordered image identifier lists (file paths)
    - StudyMetadata for overlays
    - Frame rate hints from DICOM timing tags

Requirements:
    - pydicom library for DICOM header reading
    - numpy for frame time averaging
"""

import os
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pydicom
from pydicom.dataset import Dataset
from pydicom.errors import InvalidDicomError


@dataclass(frozen=True)
class StudyMetadata:
    """Descriptive study/series information shown in viewport overlays."""

    patient_name: str = "Anonymous"
    patient_id: str = ""
    study_date: str = ""
    modality: str = ""
    series_number: str = ""
    series_description: str = ""
    study_description: str = ""

    @classmethod
    def from_dataset(cls, dataset: Dataset) -> "StudyMetadata":
        """Build metadata from a pydicom dataset, tolerating missing tags."""
        patient_name = str(_get_tag_value(dataset, "PatientName", "") or "").strip()
        return cls(
            patient_name=patient_name or "Anonymous",
            patient_id=str(_get_tag_value(dataset, "PatientID", "") or ""),
            study_date=str(_get_tag_value(dataset, "StudyDate", "") or ""),
            modality=str(_get_tag_value(dataset, "Modality", "") or ""),
            series_number=str(_get_tag_value(dataset, "SeriesNumber", "") or ""),
            series_description=str(_get_tag_value(dataset, "SeriesDescription", "") or ""),
            study_description=str(_get_tag_value(dataset, "StudyDescription", "") or ""),
        )


class SeriesSource(ABC):
    """Abstract provider of image sequences and their metadata."""

    @abstractmethod
    def get_image_ids(self, series_id: str) -> List[str]:
        """Return the ordered image identifiers of a series."""
        pass

    @abstractmethod
    def get_metadata(self, series_id: str) -> StudyMetadata:
        """Return display metadata for a series."""
        pass

    def get_frame_rate(self, series_id: str) -> Optional[float]:
        """Return a preferred cine frame rate for a series, if known."""
        return None


def _get_tag_value(dataset: Dataset, tag_name: str, default: Any = None) -> Any:
    try:
        value = getattr(dataset, tag_name, default)
    except Exception:
        return default
    return default if value is None else value


def get_frame_rate_from_dicom(dataset: Dataset) -> Optional[float]:
    """
    Extract frame rate (FPS) from a DICOM dataset.

    Checks tags in priority order:
    1. RecommendedDisplayFrameRate (0008,2144) - direct FPS value
    2. CineRate (0018,0040) - FPS
    3. FrameTime (0018,1063) - ms per frame
    4. FrameTimeVector (0018,1065) - ms per frame, averaged

    Args:
        dataset: pydicom Dataset

    Returns:
        Frame rate in FPS, or None if no usable timing information
    """
    for tag_name in ("RecommendedDisplayFrameRate", "CineRate"):
        rate = _get_tag_value(dataset, tag_name)
        if rate:
            try:
                fps = float(rate)
                if fps > 0:
                    return fps
            except (ValueError, TypeError):
                pass

    frame_time = _get_tag_value(dataset, "FrameTime")
    if frame_time:
        try:
            frame_time_ms = float(frame_time)
            if frame_time_ms > 0:
                return 1000.0 / frame_time_ms
        except (ValueError, TypeError):
            pass

    frame_times = _get_tag_value(dataset, "FrameTimeVector")
    if frame_times:
        try:
            values = np.asarray(frame_times, dtype=float)
            # The first entry of the vector is conventionally 0
            values = values[values > 0]
            if values.size > 0:
                return 1000.0 / float(np.mean(values))
        except (ValueError, TypeError):
            pass

    return None


def _slice_sort_key(dataset: Dataset) -> Tuple[float, str]:
    """Sort by InstanceNumber, then SliceLocation, then ImagePositionPatient z."""
    primary = float("inf")
    for tag_name in ("InstanceNumber", "SliceLocation"):
        value = _get_tag_value(dataset, tag_name)
        if value is not None and value != "":
            try:
                primary = float(value)
                break
            except (ValueError, TypeError):
                pass
    if primary == float("inf"):
        position = _get_tag_value(dataset, "ImagePositionPatient")
        if position is not None and len(position) >= 3:
            try:
                primary = float(position[2])
            except (ValueError, TypeError, IndexError):
                pass
    return primary, str(_get_tag_value(dataset, "SOPInstanceUID", ""))


class DicomFolderSeriesSource(SeriesSource):
    """
    Series source backed by a folder of DICOM files.

    Features:
    - Recursive, extension-agnostic scan
    - Header-only reads (pixel data is the renderer's job)
    - Series keyed by SeriesInstanceUID, slices sorted by instance order
    """

    def __init__(self, folder: Union[str, Path]):
        """
        Initialize and scan a folder.

        Args:
            folder: Directory to scan recursively
        """
        self.folder = Path(folder)
        self.failed_files: List[Tuple[str, str]] = []  # (path, error_message)
        self._series: Dict[str, List[Tuple[Dataset, str]]] = {}
        self.scan()

    def scan(self) -> None:
        """(Re)scan the folder and rebuild the series index."""
        self._series = {}
        self.failed_files = []
        if not self.folder.is_dir():
            raise FileNotFoundError(f"Not a directory: {self.folder}")

        for root, _dirs, files in os.walk(self.folder):
            for filename in sorted(files):
                path = os.path.join(root, filename)
                dataset = self._read_header(path)
                if dataset is None:
                    continue
                series_uid = str(_get_tag_value(dataset, "SeriesInstanceUID", "") or "")
                if not series_uid:
                    self.failed_files.append((path, "Missing SeriesInstanceUID"))
                    continue
                self._series.setdefault(series_uid, []).append((dataset, path))

        for entries in self._series.values():
            entries.sort(key=lambda entry: _slice_sort_key(entry[0]))

    def _read_header(self, path: str) -> Optional[Dataset]:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                return pydicom.dcmread(path, stop_before_pixels=True, force=True)
        except (InvalidDicomError, OSError) as e:
            self.failed_files.append((path, str(e)))
        except Exception as e:
            # force=True makes pydicom attempt any file; non-DICOM content fails in many ways
            self.failed_files.append((path, f"Unreadable: {e}"))
        return None

    def list_series(self) -> List[Tuple[str, str, int]]:
        """
        List the series found in the folder.

        Returns:
            List of (series_uid, description, image_count), sorted by SeriesNumber
        """
        result = []
        for series_uid, entries in self._series.items():
            first = entries[0][0]
            description = str(_get_tag_value(first, "SeriesDescription", "") or "")
            result.append((series_uid, description, len(entries)))

        def series_number(item: Tuple[str, str, int]) -> float:
            value = _get_tag_value(self._series[item[0]][0][0], "SeriesNumber")
            try:
                return float(value)
            except (ValueError, TypeError):
                return float("inf")

        return sorted(result, key=series_number)

    def get_image_ids(self, series_id: str) -> List[str]:
        return [path for _dataset, path in self._entries(series_id)]

    def get_metadata(self, series_id: str) -> StudyMetadata:
        return StudyMetadata.from_dataset(self._entries(series_id)[0][0])

    def get_frame_rate(self, series_id: str) -> Optional[float]:
        return get_frame_rate_from_dicom(self._entries(series_id)[0][0])

    def _entries(self, series_id: str) -> List[Tuple[Dataset, str]]:
        if series_id not in self._series:
            raise KeyError(f"Unknown series: {series_id}")
        return self._series[series_id]
