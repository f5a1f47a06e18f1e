"""
Unit tests for MeasurementAggregator.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))
sys.path.insert(0, os.path.dirname(__file__))

from fake_rendering_backend import FakeRenderingBackend, FakeSurface, ensure_qt_app
from core.measurement_aggregator import MeasurementAggregator
from core.tool_activation_machine import ANNOTATION_TOOL_NAMES
from core.viewport_slot_registry import ViewportSlotRegistry


class ImageKeyedBackend(FakeRenderingBackend):
    """Keeps annotations per displayed image, so every slot returns the same records."""

    def add_annotation(self, surface, tool_kind, record):
        self.annotations.setdefault(("image:img0", tool_kind), []).append(record)

    def get_annotations(self, surface, tool_kind):
        self._check(surface)
        return list(self.annotations.get(("image:img0", tool_kind), []))


class TestMeasurementAggregator(unittest.TestCase):
    """Test cases for MeasurementAggregator."""

    @classmethod
    def setUpClass(cls):
        ensure_qt_app()

    def setUp(self):
        self.backend = FakeRenderingBackend()
        self.registry = ViewportSlotRegistry()
        self.registry.resize(1, 2)
        self.left = FakeSurface("left")
        self.right = FakeSurface("right")
        self.registry.bind(0, self.left)
        self.registry.bind(1, self.right)
        self.aggregator = MeasurementAggregator(self.registry, self.backend)
        self.published = []
        self.aggregator.measurements_changed.connect(self.published.append)

    def test_empty_snapshot(self):
        self.assertEqual(self.aggregator.refresh(), {})
        self.assertEqual(self.published, [{}])
        self.assertEqual(self.aggregator.count(), 0)

    def test_refresh_reads_reference_slot(self):
        """Annotations are grouped by kind and read from slot 0 only."""
        self.backend.add_annotation(self.left, "length", {"length": 10.0})
        self.backend.add_annotation(self.left, "probe", {"huValue": 35})
        self.backend.add_annotation(self.right, "length", {"length": 20.0})

        snapshot = self.aggregator.refresh()
        self.assertEqual(snapshot["length"], ({"length": 10.0},))
        self.assertEqual(snapshot["probe"], ({"huValue": 35},))
        self.assertNotIn("angle", snapshot)
        self.assertEqual(self.aggregator.count(), 2)
        self.assertEqual(self.aggregator.measurements_for("angle"), ())

    def test_image_keyed_annotations_are_counted_once(self):
        """A backend keeping annotations per image returns them for every slot."""
        backend = ImageKeyedBackend()
        aggregator = MeasurementAggregator(self.registry, backend)
        backend.add_annotation(None, "length", {"length": 12.0})
        snapshot = aggregator.refresh()
        self.assertEqual(snapshot, {"length": ({"length": 12.0},)})

    def test_falls_back_to_lowest_bound_slot(self):
        self.backend.add_annotation(self.right, "angle", {"angle": 30.0})
        self.registry.unbind(0)
        self.assertEqual(self.aggregator.refresh(), {"angle": ({"angle": 30.0},)})
        self.registry.unbind(1)
        self.assertEqual(self.aggregator.refresh(), {})

    def test_annotation_events_trigger_resync(self):
        self.backend.add_annotation(self.left, "angle", {"angle": 45.0})
        self.aggregator.on_annotation_created(self.left, "angle")
        self.assertEqual(len(self.aggregator.snapshot["angle"]), 1)

        self.backend.annotations.clear()
        self.aggregator.on_annotation_removed(self.left, "angle")
        self.assertEqual(self.aggregator.snapshot, {})
        self.assertEqual(len(self.published), 2)

    def test_failing_read_keeps_previous_snapshot(self):
        self.backend.add_annotation(self.left, "length", {"length": 1.0})
        self.aggregator.refresh()
        published = len(self.published)

        self.backend.add_annotation(self.left, "length", {"length": 2.0})
        self.backend.failing_surfaces.add(self.left)
        snapshot = self.aggregator.refresh()
        self.assertEqual(snapshot, {"length": ({"length": 1.0},)})
        self.assertEqual(len(self.published), published)

    def test_clear_removes_every_kind(self):
        self.backend.add_annotation(self.left, "length", {"length": 1.0})
        self.backend.add_annotation(self.right, "text-marker", {"text": "A"})
        self.aggregator.refresh()

        self.aggregator.clear()
        self.assertEqual(self.aggregator.snapshot, {})
        self.assertEqual(self.published[-1], {})
        cleared = self.backend.calls_named("clear_annotations")
        self.assertEqual(len(cleared), 2 * len(ANNOTATION_TOOL_NAMES))
        self.assertEqual(len(self.backend.calls_named("update_image")), 2)
        self.assertEqual(self.aggregator.refresh(), {})

    def test_clear_is_idempotent(self):
        self.aggregator.clear()
        self.aggregator.clear()
        self.assertEqual(self.published, [{}, {}])

    def test_snapshot_is_a_copy(self):
        self.backend.add_annotation(self.left, "length", {"length": 1.0})
        self.aggregator.refresh()
        snapshot = self.aggregator.snapshot
        snapshot.clear()
        self.assertEqual(self.aggregator.count(), 1)


if __name__ == "__main__":
    unittest.main()
