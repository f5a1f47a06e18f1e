"""
Viewport Orchestrator

This module coordinates the viewport orchestration core: the slot registry,
the shared transform, tool activation, cine playback, measurement
aggregation and the image sequence, and exposes their state to the UI layer.

Inputs:
    - Layout changes and surface bind/unbind requests
    - Image sequences (directly or from a SeriesSource)
    - Navigation, toolbar, tool and cine requests from the UI
    - Render-completed and annotation notifications from the rendering backend

Outputs:
    - Tagged image loads displayed on the bound slots
    - Synchronous getters plus change signals for the UI layer
    - Notices for recoverable per-operation failures

Requirements:
    - PySide6 for signals
    - core components (navigator, registry, broadcaster, tools, cine, measurements)
    - utils.config_manager for defaults
    - gui.viewport_overlay and tools.measurement_formatting for display text
"""

from concurrent.futures import Future
from typing import Any, Dict, Iterable, List, Optional, Tuple

from PySide6.QtCore import QObject, QTimer, Signal

from core.cine_playback_engine import CinePlaybackEngine
from core.measurement_aggregator import MeasurementAggregator, MeasurementSnapshot
from core.notice_channel import NoticeChannel
from core.rendering_backend import RenderingBackend
from core.sequence_navigator import Direction, SequenceNavigator
from core.series_source import SeriesSource, StudyMetadata
from core.tool_activation_machine import DEFAULT_TOOL, ToolActivationMachine, resolve_tool_name
from core.transform_broadcaster import TransformBroadcaster
from core.transform_state import (
    Mutator,
    RotateDirection,
    TransformState,
    flip_horizontal,
    flip_vertical,
    pan_by,
    reset_to,
    rotate,
    set_scale,
    set_window_level,
    toggle_invert,
    zoom_by,
)
from core.viewer_errors import (
    LoadFailure,
    OutOfRange,
    RenderingLost,
    SlotUnresponsive,
    SourceFailure,
    UnknownTool,
)
from core.viewport_slot_registry import ViewportSlotRegistry, parse_layout_mode
from gui.viewport_overlay import build_overlay_text
from tools.measurement_formatting import summarize_measurements
from utils.config_manager import ConfigManager
from utils.debug_log import debug_log


class ViewportOrchestrator(QObject):
    """
    Owns the viewer state shared by all viewport slots.

    Responsibilities:
    - Keep bound slots synchronized (transform, tool, displayed image)
    - Discard stale asynchronous image loads
    - Route backend notifications to the transform and measurement state
    - Publish state to the UI through getters and signals
    """

    # Signals
    tool_changed = Signal(str)
    transform_changed = Signal(object)  # TransformState
    position_changed = Signal(int, int)  # index (-1 when empty), length
    measurements_changed = Signal(object)  # MeasurementSnapshot
    cine_state_changed = Signal(bool)
    frame_rate_changed = Signal(float)
    layout_changed = Signal(str)  # "RxC"
    metadata_changed = Signal(object)  # StudyMetadata
    frame_displayed = Signal(int)  # index shown after a completed load
    state_changed = Signal(str)  # name of the facet that changed

    def __init__(
        self,
        backend: RenderingBackend,
        config_manager: Optional[ConfigManager] = None,
        notices: Optional[NoticeChannel] = None,
        cine_timer: Optional[QTimer] = None,
    ):
        """
        Initialize the orchestrator and apply configured defaults.

        Args:
            backend: Rendering collaborator
            config_manager: Configuration (a default ConfigManager if None)
            notices: Notice channel (a new one if None)
            cine_timer: Optional timer driving cine ticks
        """
        super().__init__()
        self.backend = backend
        self.config_manager = config_manager if config_manager is not None else ConfigManager()
        self.notices = notices if notices is not None else NoticeChannel(
            self.config_manager.get_notice_history_size()
        )

        self.navigator = SequenceNavigator()
        self.registry = ViewportSlotRegistry(
            attach_surface=backend.enable,
            release_surface=backend.disable,
            report_failure=self.notices.post,
        )
        self.broadcaster = TransformBroadcaster(self.registry, backend)
        self.tools = ToolActivationMachine(self.registry, backend, initial_tool=self._configured_tool())
        self.cine = CinePlaybackEngine(
            self.navigator,
            self.registry,
            backend,
            self.notices,
            frame_rate=self.config_manager.get_cine_default_frame_rate(),
            timer=cine_timer,
        )
        self.measurements = MeasurementAggregator(self.registry, backend)

        self._metadata = StudyMetadata()
        self._sequence_token = 0
        self._disposed = False

        self._connect_signals()
        self.set_layout(self.config_manager.get_multi_window_layout())

    def _configured_tool(self) -> str:
        tool = self.config_manager.get_default_tool()
        try:
            return resolve_tool_name(tool)
        except UnknownTool as e:
            self.notices.post(e)
            return DEFAULT_TOOL

    def _connect_signals(self) -> None:
        self.broadcaster.transform_changed.connect(self._on_transform_changed)
        self.tools.tool_changed.connect(self._on_tool_changed)
        self.measurements.measurements_changed.connect(self._on_measurements_changed)
        self.cine.playback_state_changed.connect(self._on_cine_state_changed)
        self.cine.frame_rate_changed.connect(self._on_frame_rate_changed)
        self.cine.frame_changed.connect(self._on_cine_frame_changed)
        self.navigator.index_changed.connect(self._emit_position)
        self.navigator.sequence_changed.connect(self._emit_position)
        self.registry.layout_changed.connect(self._on_layout_changed)

        events = self.backend.events
        events.image_rendered.connect(self._on_image_rendered)
        events.annotation_created.connect(self.measurements.on_annotation_created)
        events.annotation_modified.connect(self.measurements.on_annotation_modified)
        events.annotation_removed.connect(self.measurements.on_annotation_removed)

    def _disconnect_backend(self) -> None:
        events = self.backend.events
        events.image_rendered.disconnect(self._on_image_rendered)
        events.annotation_created.disconnect(self.measurements.on_annotation_created)
        events.annotation_modified.disconnect(self.measurements.on_annotation_modified)
        events.annotation_removed.disconnect(self.measurements.on_annotation_removed)

    # ------------------------------------------------------------------
    # Getters exposed to the UI layer
    # ------------------------------------------------------------------

    @property
    def current_tool(self) -> Optional[str]:
        return self.tools.current_tool

    @property
    def transform(self) -> TransformState:
        return self.broadcaster.state

    @property
    def position(self) -> Tuple[Optional[int], int]:
        """(current index or None, sequence length)."""
        return self.navigator.current_index, self.navigator.length

    @property
    def measurements_snapshot(self) -> MeasurementSnapshot:
        return self.measurements.snapshot

    @property
    def is_cine_playing(self) -> bool:
        return self.cine.is_playing

    @property
    def frame_rate(self) -> float:
        return self.cine.frame_rate

    @property
    def metadata(self) -> StudyMetadata:
        return self._metadata

    @property
    def layout(self) -> str:
        return self.registry.layout_mode

    def snapshot(self) -> Dict[str, Any]:
        """Everything the UI displays, as one plain dict."""
        index, length = self.position
        return {
            "tool": self.current_tool,
            "transform": self.transform.to_dict(),
            "index": index,
            "length": length,
            "measurements": self.measurements_snapshot,
            "cine_playing": self.is_cine_playing,
            "cine_capable": self.cine.is_cine_capable(),
            "frame_rate": self.frame_rate,
            "layout": self.layout,
            "bound_slots": [slot.index for slot in self.registry.bound_slots()],
            "metadata": self._metadata,
        }

    def overlay_text(self) -> Dict[str, List[str]]:
        """Corner overlay text for the current image."""
        index, length = self.position
        return build_overlay_text(self._metadata, self.transform, index, length)

    def measurement_summary(self) -> List[Tuple[str, List[str]]]:
        """Measurement panel sections: (tool display name, formatted lines)."""
        return summarize_measurements(self.measurements_snapshot)

    # ------------------------------------------------------------------
    # Layout and surfaces
    # ------------------------------------------------------------------

    def set_layout(self, layout_mode: str) -> None:
        """
        Change the grid layout.

        Args:
            layout_mode: "RxC" string such as "1x1" or "2x2"
        """
        rows, cols = parse_layout_mode(layout_mode)
        self.resize(rows, cols)

    def resize(self, rows: int, cols: int) -> None:
        self.registry.resize(rows, cols)
        self._check_rendering_alive()

    def bind_surface(self, slot_index: int, surface: Any) -> bool:
        """
        Bind a rendering surface to a slot and bring it in sync.

        The new slot receives the shared transform, the current tool state
        and the current image.

        Returns:
            True if the surface was bound
        """
        try:
            slot = self.registry.bind(slot_index, surface)
        except OutOfRange as e:
            self.notices.post(e)
            return False
        except Exception as e:
            # Rejected surface or failed enable; the slot stays unbound
            self.notices.post(SlotUnresponsive(slot_index, e))
            return False

        try:
            self.broadcaster.sync_slot(slot)
            self.tools.sync_slot(slot)
        except Exception as e:
            self.notices.post(SlotUnresponsive(slot_index, e))

        if self.navigator.current_index is not None:
            self._request_frame(self.navigator.current_index, slot_index=slot_index)
        self.state_changed.emit("slots")
        return True

    def unbind_surface(self, slot_index: int) -> bool:
        """
        Detach the surface of a slot.

        Returns:
            True if the slot was bound
        """
        try:
            unbound = self.registry.unbind(slot_index)
        except OutOfRange as e:
            self.notices.post(e)
            return False
        self._check_rendering_alive()
        if unbound:
            self.state_changed.emit("slots")
        return unbound

    def _check_rendering_alive(self) -> None:
        # Cine cannot continue without any surface to draw on
        if self.cine.is_playing and self.registry.bound_count() == 0:
            self.cine.stop()
            self.notices.post(RenderingLost())

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def open_sequence(self, image_ids: Iterable[str], metadata: Optional[StudyMetadata] = None) -> None:
        """
        Replace the image sequence and show its first image on every bound slot.

        Cine is stopped and any load still in flight for the previous
        sequence is invalidated.

        Args:
            image_ids: Ordered image identifiers
            metadata: Display metadata for the study/series
        """
        if self.cine.is_playing:
            self.cine.stop()
        self._sequence_token += 1
        self._metadata = metadata if metadata is not None else StudyMetadata()
        self.metadata_changed.emit(self._metadata)

        self.navigator.set_sequence(image_ids)
        if self.navigator.current_index is not None:
            self._request_frame(self.navigator.current_index)
        self.measurements.refresh()
        self.state_changed.emit("sequence")

    def open_series(self, source: SeriesSource, series_id: str) -> bool:
        """
        Open a series from a data source.

        The source's frame rate hint, if any, becomes the cine frame rate.

        Returns:
            True if the series was opened
        """
        try:
            image_ids = source.get_image_ids(series_id)
            metadata = source.get_metadata(series_id)
            frame_rate = source.get_frame_rate(series_id)
        except Exception as e:
            self.notices.post(SourceFailure(series_id, e))
            return False

        if frame_rate:
            self.cine.set_frame_rate(self.config_manager.clamp_frame_rate(frame_rate))
        self.open_sequence(image_ids, metadata)
        return True

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def advance(self, direction: Direction) -> bool:
        """
        Move one image forwards or backwards; a no-op at either end.

        Returns:
            True if the index changed (and a load was requested)
        """
        if not self.navigator.advance(direction):
            return False
        self._request_frame(self.navigator.current_index)
        return True

    def next_image(self) -> bool:
        return self.advance("next")

    def previous_image(self) -> bool:
        return self.advance("prev")

    def jump_to(self, index: int) -> bool:
        """
        Jump to an absolute image index.

        Returns:
            True if index was valid, False if it was rejected as out of range
        """
        try:
            moved = self.navigator.jump_to(index)
        except OutOfRange as e:
            self.notices.post(e)
            return False
        if moved:
            self._request_frame(index)
        return True

    def first_image(self) -> bool:
        if self.navigator.length == 0:
            return False
        return self.jump_to(0)

    def last_image(self) -> bool:
        if self.navigator.length == 0:
            return False
        return self.jump_to(self.navigator.length - 1)

    def _request_frame(self, index: int, slot_index: Optional[int] = None) -> Optional[Future]:
        """
        Load the image at index and display it when it arrives.

        The request is tagged with the sequence token and index; if either
        no longer matches on completion, the result is dropped.

        Args:
            index: Sequence index to load
            slot_index: Only display on this slot (default: every bound slot)
        """
        image_id = self.navigator.image_id_at(index)
        token = self._sequence_token
        try:
            future = self.backend.load_image(image_id)
        except Exception as e:
            self.notices.post(LoadFailure(image_id, index, e))
            return None
        future.add_done_callback(
            lambda f: self._on_frame_loaded(f, token, index, image_id, slot_index)
        )
        return future

    def _on_frame_loaded(
        self,
        future: Future,
        token: int,
        index: int,
        image_id: str,
        slot_index: Optional[int],
    ) -> None:
        if token != self._sequence_token or self.navigator.current_index != index:
            debug_log(
                "viewport_orchestrator.py:_on_frame_loaded",
                "discarded stale frame",
                {"index": index, "current_index": self.navigator.current_index},
            )
            return
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.notices.post(LoadFailure(image_id, index, error))
            return

        image = future.result()
        if slot_index is None:
            self.registry.for_each_bound(lambda slot: self.backend.display_image(slot.surface, image))
        else:
            if slot_index >= self.registry.slot_count:
                return
            slot = self.registry.get_slot(slot_index)
            if not slot.is_bound:
                return
            try:
                self.backend.display_image(slot.surface, image)
            except Exception as e:
                self.notices.post(SlotUnresponsive(slot_index, e))
                return
        self.frame_displayed.emit(index)

    # ------------------------------------------------------------------
    # Transform operations (toolbar)
    # ------------------------------------------------------------------

    def apply_transform(self, mutator: Mutator) -> TransformState:
        """Apply any transform mutator to every bound slot."""
        return self.broadcaster.apply(mutator)

    def zoom_in(self) -> TransformState:
        zoom_in_factor, _zoom_out_factor = self.config_manager.get_zoom_factors()
        return self.apply_transform(zoom_by(zoom_in_factor))

    def zoom_out(self) -> TransformState:
        _zoom_in_factor, zoom_out_factor = self.config_manager.get_zoom_factors()
        return self.apply_transform(zoom_by(zoom_out_factor))

    def fit(self) -> TransformState:
        return self.apply_transform(set_scale(1.0))

    def set_zoom(self, scale: float) -> TransformState:
        return self.apply_transform(set_scale(scale))

    def rotate(self, direction: RotateDirection) -> TransformState:
        return self.apply_transform(rotate(direction))

    def flip_horizontal(self) -> TransformState:
        return self.apply_transform(flip_horizontal())

    def flip_vertical(self) -> TransformState:
        return self.apply_transform(flip_vertical())

    def invert(self) -> TransformState:
        return self.apply_transform(toggle_invert())

    def set_window_level(self, window_width: float, window_center: float) -> TransformState:
        return self.apply_transform(set_window_level(window_width, window_center))

    def pan_by(self, dx: float, dy: float) -> TransformState:
        return self.apply_transform(pan_by(dx, dy))

    def reset_view(self) -> TransformState:
        """Reset to the default view with the configured window/level."""
        window_width, window_center = self.config_manager.get_reset_window_level()
        default = TransformState(window_width=window_width, window_center=window_center)
        return self.apply_transform(reset_to(default))

    # ------------------------------------------------------------------
    # Tools and measurements
    # ------------------------------------------------------------------

    def activate_tool(self, tool: str) -> bool:
        """
        Make tool the single active tool on every bound slot.

        Returns:
            True if activated, False if the name was unknown (previous tool kept)
        """
        try:
            self.tools.activate(tool)
        except UnknownTool as e:
            self.notices.post(e)
            return False
        return True

    def refresh_measurements(self) -> MeasurementSnapshot:
        return self.measurements.refresh()

    def clear_measurements(self) -> None:
        self.measurements.clear()

    # ------------------------------------------------------------------
    # Cine
    # ------------------------------------------------------------------

    def play_cine(self) -> bool:
        return self.cine.play()

    def stop_cine(self) -> bool:
        return self.cine.stop()

    def toggle_cine(self) -> bool:
        """Toggle cine; returns the resulting playing state."""
        return self.cine.toggle()

    def set_frame_rate(self, frame_rate: float) -> float:
        """
        Set the cine frame rate, clamped to the configured range.

        Returns:
            The frame rate actually applied
        """
        clamped = self.config_manager.clamp_frame_rate(frame_rate)
        self.cine.set_frame_rate(clamped)
        return clamped

    # ------------------------------------------------------------------
    # Backend notifications
    # ------------------------------------------------------------------

    def _on_image_rendered(self, surface: Any) -> None:
        """Adopt a transform changed interactively on one slot so every slot follows."""
        slot = self.registry.slot_for_surface(surface)
        if slot is None:
            return
        try:
            reported = self.backend.get_transform(surface)
        except Exception as e:
            self.notices.post(SlotUnresponsive(slot.index, e))
            return
        if isinstance(reported, TransformState):
            self.broadcaster.adopt(reported)

    # ------------------------------------------------------------------
    # Internal signal relays
    # ------------------------------------------------------------------

    def _on_transform_changed(self, state: TransformState) -> None:
        self.transform_changed.emit(state)
        self.state_changed.emit("transform")

    def _on_tool_changed(self, tool: str) -> None:
        self.tool_changed.emit(tool)
        self.state_changed.emit("tool")

    def _on_measurements_changed(self, snapshot: MeasurementSnapshot) -> None:
        self.measurements_changed.emit(snapshot)
        self.state_changed.emit("measurements")

    def _on_cine_state_changed(self, playing: bool) -> None:
        self.cine_state_changed.emit(playing)
        self.state_changed.emit("cine")

    def _on_frame_rate_changed(self, frame_rate: float) -> None:
        self.frame_rate_changed.emit(frame_rate)
        self.state_changed.emit("frame_rate")

    def _on_cine_frame_changed(self, index: int) -> None:
        self.frame_displayed.emit(index)

    def _on_layout_changed(self, rows: int, cols: int) -> None:
        self.layout_changed.emit(f"{rows}x{cols}")
        self.state_changed.emit("layout")

    def _emit_position(self, *_args: Any) -> None:
        index, length = self.position
        self.position_changed.emit(-1 if index is None else index, length)
        self.state_changed.emit("position")

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Stop cine, disconnect from the backend and dispose every slot. Idempotent."""
        if self._disposed:
            return
        self._disposed = True
        self.cine.dispose()
        self._disconnect_backend()
        self._sequence_token += 1
        self.registry.dispose_all()
        self.state_changed.emit("disposed")
