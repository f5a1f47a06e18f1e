"""
Unit tests for viewport overlay text.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.series_source import StudyMetadata
from core.transform_state import TransformState
from gui.viewport_overlay import CORNERS, build_overlay_text, overlay_from_snapshot


class TestViewportOverlay(unittest.TestCase):
    """Test cases for build_overlay_text."""

    def setUp(self):
        self.metadata = StudyMetadata(patient_name="Doe^Jane", patient_id="P-001", study_date="20240101",
                                      modality="CT", series_number="4")

    def test_corners(self):
        text = build_overlay_text(self.metadata, TransformState(), 0, 10)
        self.assertEqual(set(text), set(CORNERS))
        self.assertEqual(text["upper_left"], ["Doe^Jane", "ID: P-001", "Date: 20240101"])
        self.assertEqual(text["upper_right"], ["CT", "Series: 4", "Image: 1 / 10"])
        self.assertEqual(text["lower_left"], ["Zoom: 100%"])

    def test_transform_details(self):
        state = TransformState(scale=1.5, rotation=90, window_width=400, window_center=40, inverted=True)
        text = build_overlay_text(self.metadata, state, 9, 10)
        self.assertEqual(text["upper_right"][-1], "Image: 10 / 10")
        self.assertEqual(text["lower_left"], ["Zoom: 150%", "WW: 400", "WL: 40", "Rotation: 90°", "Inverted"])

    def test_empty_viewer(self):
        text = build_overlay_text(StudyMetadata(), None, None, 0)
        self.assertEqual(text["upper_left"][0], "Anonymous")
        self.assertEqual(text["upper_right"], ["", "Image: 0 / 0"])
        self.assertEqual(text["lower_left"], [])

    def test_from_snapshot(self):
        snapshot = {
            "metadata": self.metadata,
            "transform": TransformState(scale=2.0).to_dict(),
            "index": 2,
            "length": 5,
        }
        text = overlay_from_snapshot(snapshot)
        self.assertEqual(text["upper_right"][-1], "Image: 3 / 5")
        self.assertEqual(text["lower_left"], ["Zoom: 200%"])


if __name__ == "__main__":
    unittest.main()
