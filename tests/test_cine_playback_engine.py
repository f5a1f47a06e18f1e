"""
Unit tests for CinePlaybackEngine.

Most ticks are driven directly through _advance_frame so the tests do not
depend on wall-clock timing; TestCinePlaybackTimer runs the real QTimer.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))
sys.path.insert(0, os.path.dirname(__file__))

from PySide6.QtCore import QEventLoop, QTimer

from fake_rendering_backend import FakeRenderingBackend, FakeSurface, ensure_qt_app
from core.cine_playback_engine import CinePlaybackEngine
from core.notice_channel import NoticeChannel
from core.sequence_navigator import SequenceNavigator
from core.viewport_slot_registry import ViewportSlotRegistry


def run_event_loop(milliseconds):
    """Process Qt events, including timer ticks, for the given time."""
    loop = QEventLoop()
    QTimer.singleShot(milliseconds, loop.quit)
    loop.exec()


def _ids(count):
    return [f"frame-{i}" for i in range(count)]


class TestCinePlaybackEngine(unittest.TestCase):
    """Test cases for CinePlaybackEngine."""

    @classmethod
    def setUpClass(cls):
        ensure_qt_app()

    def setUp(self):
        self.backend = FakeRenderingBackend()
        self.navigator = SequenceNavigator()
        self.navigator.set_sequence(_ids(10))
        self.registry = ViewportSlotRegistry()
        self.registry.resize(1, 1)
        self.surface = FakeSurface("main")
        self.registry.bind(0, self.surface)
        self.notices = NoticeChannel()
        self.engine = CinePlaybackEngine(self.navigator, self.registry, self.backend, self.notices)
        self.frames = []
        self.engine.frame_changed.connect(self.frames.append)

    def tearDown(self):
        self.engine.dispose()

    def _tick(self, count=1):
        for _ in range(count):
            self.engine._advance_frame()

    def test_play_starts_timer(self):
        states = []
        self.engine.playback_state_changed.connect(states.append)
        self.assertTrue(self.engine.play())
        self.assertTrue(self.engine.is_playing)
        self.assertTrue(self.engine.timer.isActive())
        self.assertEqual(self.engine.timer.interval(), 100)
        self.assertEqual(states, [True])

    def test_twenty_five_ticks_wrap(self):
        """10 images, 25 ticks from index 0: displays 1..9, 0..9, 0..5."""
        self.engine.play()
        self._tick(25)
        self.assertEqual(self.navigator.current_index, 5)
        self.assertEqual(self.frames, [(k + 1) % 10 for k in range(25)])
        self.assertEqual(len(self.backend.images_shown(self.surface)), 25)

    def test_wrap_law_for_frame_rates(self):
        """After k ticks from index i the index is (i + k) mod n, at any frame rate."""
        for fps in range(1, 31):
            with self.subTest(fps=fps):
                self.engine.set_frame_rate(fps)
                self.assertEqual(self.engine.interval_ms, max(1, int(1000 / fps)))
                self.navigator.jump_to(fps % 10)
                start = self.navigator.current_index
                self.engine.play()
                self._tick(fps)
                self.assertEqual(self.navigator.current_index, (start + fps) % 10)
                self.engine.stop()

    def test_ticks_ignored_when_stopped(self):
        self._tick(3)
        self.assertEqual(self.navigator.current_index, 0)
        self.assertEqual(self.backend.load_requests, [])

    def test_play_twice_reports_already_running(self):
        self.engine.play()
        self.assertFalse(self.engine.play())
        self.assertTrue(self.engine.is_playing)
        notice = self.notices.latest()
        self.assertEqual(notice.kind, "cine_already_running")
        self.assertEqual(notice.severity, "info")
        self.assertEqual(self.notices.errors(), [])

    def test_stop_when_not_running(self):
        self.assertFalse(self.engine.stop())
        self.assertEqual(self.notices.latest().kind, "cine_not_running")
        self.assertEqual(self.notices.latest().severity, "info")

    def test_stop_keeps_index(self):
        self.engine.play()
        self._tick(4)
        self.assertTrue(self.engine.stop())
        self.assertFalse(self.engine.timer.isActive())
        self.assertEqual(self.navigator.current_index, 4)

    def test_stop_then_play_has_no_double_advance(self):
        self.engine.play()
        self._tick(2)
        self.engine.stop()
        self.engine.play()
        self.assertEqual(self.navigator.current_index, 2)
        self._tick()
        self.assertEqual(self.navigator.current_index, 3)
        self.assertEqual(len(self.backend.load_requests), 3)

    def test_stale_generation_is_discarded(self):
        """A load still in flight when stop() runs never reaches the display."""
        self.backend.auto_resolve = False
        self.engine.play()
        self._tick()
        generation = self.engine.generation
        self.engine.stop()
        self.assertGreater(self.engine.generation, generation)
        self.backend.resolve_all()
        self.assertEqual(self.backend.images_shown(self.surface), [])
        self.assertEqual(self.frames, [])

    def test_stale_index_is_discarded(self):
        self.backend.auto_resolve = False
        self.engine.play()
        self._tick()
        self.navigator.jump_to(7)
        self.backend.resolve("frame-1")
        self.assertEqual(self.backend.images_shown(self.surface), [])

    def test_load_failure_reported_once_per_run(self):
        self.backend.failing_images.update(_ids(10))
        self.engine.play()
        self._tick(3)
        self.assertEqual([n.kind for n in self.notices.errors()], ["load_failure"])
        self.assertTrue(self.engine.is_playing)

        self.backend.failing_images.clear()
        self._tick()
        self.backend.failing_images.update(_ids(10))
        self._tick(2)
        self.assertEqual(len(self.notices.errors()), 2)

    def test_display_failure_reported_once_per_run(self):
        self.backend.failing_surfaces.add(self.surface)
        self.engine.play()
        self._tick(3)
        self.assertEqual([n.kind for n in self.notices.errors()], ["slot_unresponsive"])
        self.assertTrue(self.engine.is_playing)

        self.backend.failing_surfaces.clear()
        self._tick()
        self.backend.failing_surfaces.add(self.surface)
        self._tick(2)
        self.assertEqual(
            [n.kind for n in self.notices.errors()],
            ["slot_unresponsive", "slot_unresponsive"],
        )

    def test_set_frame_rate_while_playing(self):
        self.engine.play()
        self._tick(2)
        generation = self.engine.generation
        self.engine.set_frame_rate(25)
        self.assertTrue(self.engine.timer.isActive())
        self.assertEqual(self.engine.timer.interval(), 40)
        self.assertEqual(self.engine.generation, generation)
        self.assertEqual(self.navigator.current_index, 2)
        with self.assertRaises(ValueError):
            self.engine.set_frame_rate(0)

    def test_play_refuses_empty_sequence(self):
        self.navigator.set_sequence([])
        self.assertFalse(self.engine.play())
        self.assertFalse(self.engine.is_cine_capable())

    def test_toggle(self):
        self.assertTrue(self.engine.toggle())
        self.assertFalse(self.engine.toggle())

    def test_frame_change_callback(self):
        seen = []
        self.engine.set_frame_change_callback(seen.append)
        self.engine.play()
        self._tick(2)
        self.assertEqual(seen, [1, 2])

    def test_only_reference_slot_is_driven(self):
        self.registry.resize(1, 2)
        other = FakeSurface("other")
        self.registry.bind(1, other)
        self.engine.play()
        self._tick(3)
        self.assertEqual(len(self.backend.images_shown(self.surface)), 3)
        self.assertEqual(self.backend.images_shown(other), [])

    def test_dispose_is_idempotent(self):
        self.engine.play()
        self.engine.dispose()
        self.engine.dispose()
        self.assertTrue(self.engine.is_disposed)
        self.assertFalse(self.engine.is_playing)
        self.assertFalse(self.engine.timer.isActive())
        self.assertFalse(self.engine.play())
        self._tick()
        self.assertEqual(self.navigator.current_index, 0)


class TestCinePlaybackTimer(unittest.TestCase):
    """CinePlaybackEngine driven by a running QTimer."""

    @classmethod
    def setUpClass(cls):
        ensure_qt_app()

    def setUp(self):
        self.backend = FakeRenderingBackend()
        self.navigator = SequenceNavigator()
        self.navigator.set_sequence(_ids(10))
        self.registry = ViewportSlotRegistry()
        self.registry.resize(1, 1)
        self.surface = FakeSurface("main")
        self.registry.bind(0, self.surface)
        self.engine = CinePlaybackEngine(self.navigator, self.registry, self.backend, NoticeChannel())
        self.frames = []
        self.engine.frame_changed.connect(self.frames.append)

    def tearDown(self):
        self.engine.dispose()

    def test_timer_advances_frames(self):
        self.engine.set_frame_rate(30)
        self.engine.play()
        run_event_loop(300)
        self.engine.stop()
        self.assertGreaterEqual(len(self.frames), 2)
        self.assertEqual(self.frames, [(k + 1) % 10 for k in range(len(self.frames))])
        self.assertEqual(self.navigator.current_index, len(self.frames) % 10)

    def test_frame_rate_change_restarts_single_timer(self):
        """Changing the rate mid-interval restarts the countdown without an extra tick."""
        self.engine.set_frame_rate(10)
        self.engine.play()
        run_event_loop(60)
        self.engine.set_frame_rate(4)
        run_event_loop(150)
        self.assertEqual(self.frames, [])

        run_event_loop(200)
        self.engine.stop()
        self.assertGreaterEqual(len(self.frames), 1)
        self.assertEqual(self.navigator.current_index, len(self.frames))
        self.assertEqual(len(self.backend.load_requests), len(self.frames))


if __name__ == "__main__":
    unittest.main()
