"""
Cine Playback Engine

This module provides timer-driven cine playback over the open image sequence.

Each timer tick wraps the navigator forward one image, then loads that image
asynchronously and shows it on the reference slot (slot 0). Loads are tagged
with the engine generation and the index they were issued for; a result whose
tag no longer matches (playback stopped, or the user navigated meanwhile) is
discarded.

Inputs:
    - Playback control requests (play, stop, toggle, dispose)
    - Frame rate changes

Outputs:
    - Image loads and display on the reference slot
    - Playback state, frame rate and frame change signals
    - LoadFailure and SlotUnresponsive notices (once per run of consecutive failures)

Requirements:
    - PySide6 for QTimer and signals
    - concurrent.futures for load results
"""

from concurrent.futures import Future
from typing import Callable, Optional, Set

from PySide6.QtCore import QObject, QTimer, Signal

from core.notice_channel import NoticeChannel
from core.rendering_backend import RenderingBackend
from core.sequence_navigator import SequenceNavigator
from core.viewer_errors import (
    CineAlreadyRunning,
    CineNotRunning,
    LoadFailure,
    SlotUnresponsive,
    ViewerError,
)
from core.viewport_slot_registry import ViewportSlotRegistry
from utils.debug_log import debug_log


DEFAULT_FRAME_RATE = 10.0  # FPS


class CinePlaybackEngine(QObject):
    """
    Handles cine loop playback for the open image sequence.

    Features:
    - Repeating QTimer at 1000 / frame_rate ms
    - Wrap-around stepping through the sequence
    - Generation counter so late results from a stopped session are ignored
    - Frame rate change without a double tick
    """

    # Signals
    playback_state_changed = Signal(bool)  # True = playing
    frame_rate_changed = Signal(float)
    frame_changed = Signal(int)  # Index now displayed on the reference slot

    def __init__(
        self,
        navigator: SequenceNavigator,
        registry: ViewportSlotRegistry,
        backend: RenderingBackend,
        notices: NoticeChannel,
        frame_rate: float = DEFAULT_FRAME_RATE,
        timer: Optional[QTimer] = None,
    ):
        """
        Initialize the cine engine.

        Args:
            navigator: SequenceNavigator stepped on every tick
            registry: Slot registry providing the reference slot
            backend: Rendering collaborator used to load and display frames
            notices: Channel receiving load failures and benign notices
            frame_rate: Initial frame rate in FPS
            timer: Optional timer to drive ticks (a new QTimer by default)
        """
        super().__init__()
        if frame_rate <= 0:
            raise ValueError(f"Frame rate must be positive, got {frame_rate}")

        self.navigator = navigator
        self.registry = registry
        self.backend = backend
        self.notices = notices

        self._frame_rate = float(frame_rate)
        self._playing = False
        self._disposed = False
        self._generation = 0
        self._reported_failures: Set[str] = set()
        self._frame_change_callback: Optional[Callable[[int], None]] = None

        # Timer for frame advancement
        self.timer = timer if timer is not None else QTimer(self)
        self.timer.setSingleShot(False)
        self.timer.timeout.connect(self._advance_frame)

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def frame_rate(self) -> float:
        return self._frame_rate

    @property
    def interval_ms(self) -> int:
        """Timer interval in milliseconds for the current frame rate."""
        return max(1, int(1000.0 / self._frame_rate))

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def is_cine_capable(self) -> bool:
        """True when the sequence has at least two images to cycle through."""
        return self.navigator.length >= 2

    def set_frame_change_callback(self, callback: Optional[Callable[[int], None]]) -> None:
        """
        Register the callback invoked with the index of every displayed frame.

        Args:
            callback: Callable receiving the new index, or None to clear
        """
        self._frame_change_callback = callback

    def play(self) -> bool:
        """
        Start playback.

        Returns:
            True if playback started, False if it was already running, the
            sequence is empty or the engine was disposed
        """
        if self._disposed:
            return False
        if self._playing:
            self.notices.post(CineAlreadyRunning(), severity="info")
            return False
        if self.navigator.length == 0:
            debug_log("cine_playback_engine.py:play", "play ignored, empty sequence")
            return False

        self._reported_failures.clear()
        self.timer.start(self.interval_ms)
        self._playing = True
        self.playback_state_changed.emit(True)
        return True

    def stop(self) -> bool:
        """
        Stop playback. The current index is left where it is.

        The timer is cleared synchronously and the generation incremented,
        so a load still in flight from the last tick resolves to a no-op.

        Returns:
            True if playback was running
        """
        self._generation += 1
        self.timer.stop()
        if not self._playing:
            if not self._disposed:
                self.notices.post(CineNotRunning(), severity="info")
            return False

        self._playing = False
        self.playback_state_changed.emit(False)
        return True

    def toggle(self) -> bool:
        """
        Toggle between playing and stopped.

        Returns:
            The resulting playing state
        """
        if self._playing:
            self.stop()
        else:
            self.play()
        return self._playing

    def set_frame_rate(self, frame_rate: float) -> None:
        """
        Set playback frame rate.

        If playing, the timer is restarted at the new interval in one step.

        Args:
            frame_rate: Frames per second (> 0)
        """
        if frame_rate <= 0:
            raise ValueError(f"Frame rate must be positive, got {frame_rate}")
        self._frame_rate = float(frame_rate)
        if self._playing:
            # QTimer.start() on an active timer stops and restarts it
            self.timer.start(self.interval_ms)
        self.frame_rate_changed.emit(self._frame_rate)

    def dispose(self) -> None:
        """Stop playback and release the frame change callback. Safe to call repeatedly."""
        if self._playing:
            self.stop()
        else:
            self._generation += 1
            self.timer.stop()
        self._frame_change_callback = None
        self._disposed = True

    def _advance_frame(self) -> None:
        """Timer tick: step the navigator and load the new frame."""
        if not self._playing:
            return
        if self.navigator.length == 0:
            self.stop()
            return

        index = self.navigator.cine_step()
        image_id = self.navigator.image_id_at(index)
        generation = self._generation

        try:
            future = self.backend.load_image(image_id)
        except Exception as e:
            self._report_failure(LoadFailure(image_id, index, e))
            return

        future.add_done_callback(
            lambda f: self._on_frame_loaded(f, generation, index, image_id)
        )

    def _on_frame_loaded(self, future: Future, generation: int, index: int, image_id: str) -> None:
        if generation != self._generation or self.navigator.current_index != index:
            debug_log(
                "cine_playback_engine.py:_on_frame_loaded",
                "discarded stale cine frame",
                {"index": index, "generation": generation, "current_generation": self._generation},
            )
            return
        if future.cancelled():
            return

        error = future.exception()
        if error is not None:
            self._report_failure(LoadFailure(image_id, index, error))
            return

        slot = self.registry.reference_slot()
        if slot is None:
            return
        try:
            self.backend.display_image(slot.surface, future.result())
        except Exception as e:
            self._report_failure(SlotUnresponsive(slot.index, e))
            return

        self._reported_failures.clear()
        self.frame_changed.emit(index)
        if self._frame_change_callback is not None:
            self._frame_change_callback(index)

    def _report_failure(self, failure: ViewerError) -> None:
        # One notice per kind for each run of failed ticks
        if failure.kind in self._reported_failures:
            debug_log("cine_playback_engine.py:_report_failure", failure.message, {"kind": failure.kind})
            return
        self._reported_failures.add(failure.kind)
        self.notices.post(failure)
