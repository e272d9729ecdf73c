# player/session.py
"""
Playback session: the state machine between the UI and one audio transport.

    Idle --play--> Loading --ready--> Playing <--pause/resume--> Paused
                      \--failed--> Failed          any --stop--> Idle

A station only counts as "played" (on_success) once the transport has stayed
in Playing for GRACE_DELAY_MS after reporting ready. Streams that say ready
and die a second later never make it into history.

Every play() starts a new generation. Transport callbacks and the grace timer
carry the generation they were created for and are ignored once it is stale,
so a late event from a torn-down transport can't touch the current session.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from PySide6.QtCore import QObject, QTimer, Signal

from core.metadata import parse_metadata
from core.models import PlaybackState, PlaybackStatus, Station, StreamMetadata
from core.utils import is_stream_url
from player.transport import AudioTransport, TransportStatus

logger = logging.getLogger(__name__)

GRACE_DELAY_MS = 2000
DEFAULT_ERROR = "Playback failed"
INVALID_URL_ERROR = "Invalid station URL"


class NowPlayingSink(Protocol):
    def update(self, station: Station | None, title: str | None, artist: str | None, is_playing: bool) -> None:
        ...


def _qt_schedule(delay_ms: int, fn: Callable[[], None]) -> None:
    QTimer.singleShot(delay_ms, fn)


class _TransportBinding:
    """Subscription handle for one transport; close() detaches every observer."""

    def __init__(self, session: "PlaybackSession", transport: AudioTransport, generation: int):
        self.session = session
        self.transport = transport
        self.generation = generation
        self.active = True

        transport.statusChanged.connect(self.on_status)
        transport.metadataReceived.connect(self.on_metadata)
        transport.externalOutputChanged.connect(self.on_external_output)

    def on_status(self, status, error=None) -> None:
        if self.active:
            self.session._on_transport_status(self.generation, status, error)

    def on_metadata(self, payload) -> None:
        if self.active:
            self.session._on_transport_metadata(self.generation, payload)

    def on_external_output(self, active: bool) -> None:
        if self.active:
            self.session._on_external_output(self.generation, active)

    def close(self) -> None:
        if not self.active:
            return
        self.active = False
        for signal, slot in (
            (self.transport.statusChanged, self.on_status),
            (self.transport.metadataReceived, self.on_metadata),
            (self.transport.externalOutputChanged, self.on_external_output),
        ):
            try:
                signal.disconnect(slot)
            except (RuntimeError, TypeError):
                # already disconnected or the C++ object is gone
                pass


class PlaybackSession(QObject):
    stateChanged = Signal(object)           # PlaybackState
    metadataChanged = Signal(object)        # StreamMetadata
    errorChanged = Signal(object)           # str | None
    externalOutputChanged = Signal(bool)

    def __init__(
        self,
        transport_factory: Callable[[], AudioTransport],
        record_interaction: Optional[Callable[[str], None]] = None,
        now_playing: Optional[NowPlayingSink] = None,
        schedule: Optional[Callable[[int, Callable[[], None]], None]] = None,
        grace_delay_ms: int = GRACE_DELAY_MS,
        volume: float = 1.0,
        parent=None,
    ):
        super().__init__(parent)
        self._transport_factory = transport_factory
        self._record_interaction = record_interaction
        self._now_playing = now_playing
        self._schedule = schedule or _qt_schedule
        self.grace_delay_ms = grace_delay_ms

        self.state = PlaybackState.idle()
        self.metadata = StreamMetadata()
        self.error_message: str | None = None
        self.volume = min(1.0, max(0.0, float(volume)))
        self.is_external_output = False

        self._transport: Optional[AudioTransport] = None
        self._binding: Optional[_TransportBinding] = None
        self._generation = 0
        self._on_success: Optional[Callable[[Station], None]] = None
        self._play_requested = False

    # ----------------------------
    # Read-only helpers
    # ----------------------------

    @property
    def station(self) -> Station | None:
        return self.state.station

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    @property
    def has_transport(self) -> bool:
        return self._transport is not None

    # ----------------------------
    # Commands
    # ----------------------------

    def play(self, station: Station, on_success: Optional[Callable[[Station], None]] = None) -> None:
        self.stop()

        url = (station.stream_url or "").strip()
        if not is_stream_url(url):
            logger.warning("Refusing to play %r: invalid stream URL %r", station.name, station.stream_url)
            self._set_error(INVALID_URL_ERROR)
            self._set_state(PlaybackState.failed(station, INVALID_URL_ERROR))
            return

        self._generation += 1
        gen = self._generation

        transport = self._transport_factory()
        self._transport = transport
        self._binding = _TransportBinding(self, transport, gen)
        transport.set_volume(self.volume)
        self._set_external_output(bool(transport.is_external_output))

        self._on_success = on_success
        self._play_requested = True
        self._set_error(None)
        self._set_state(PlaybackState.loading(station))

        self._fire_interaction(station)

        logger.info("Loading %s (%s)", station.name, url)
        transport.load(url)
        transport.play()

    def pause(self) -> None:
        if self.state.status not in (PlaybackStatus.PLAYING, PlaybackStatus.LOADING):
            return
        self._play_requested = False
        self._on_success = None
        if self._transport is not None:
            self._transport.pause()
        self._set_state(PlaybackState.paused(self.state.station))

    def resume(self) -> None:
        if self.state.status != PlaybackStatus.PAUSED or self._transport is None:
            return
        self._play_requested = True
        self._transport.play()
        self._set_state(PlaybackState.playing(self.state.station))

    def toggle_play_pause(self) -> None:
        if self.state.status in (PlaybackStatus.PLAYING, PlaybackStatus.LOADING):
            self.pause()
        elif self.state.status == PlaybackStatus.PAUSED:
            self.resume()

    def stop(self) -> None:
        # bumping the generation invalidates the grace timer and late transport events
        self._generation += 1
        self._teardown_transport()

        self._on_success = None
        self._play_requested = False
        self._set_metadata(StreamMetadata())
        self._set_error(None)
        self._set_external_output(False)
        self._set_state(PlaybackState.idle())

    def set_volume(self, volume_0_to_1: float) -> None:
        v = min(1.0, max(0.0, float(volume_0_to_1)))
        self.volume = v
        if self._transport is not None:
            self._transport.set_volume(v)

    # ----------------------------
    # Transport callbacks
    # ----------------------------

    def _on_transport_status(self, gen: int, status: TransportStatus, error: str | None) -> None:
        if gen != self._generation:
            return

        station = self.state.station
        if status == TransportStatus.READY:
            if self.state.status == PlaybackStatus.LOADING and self._play_requested:
                self._set_state(PlaybackState.playing(station))
                self._schedule(self.grace_delay_ms, lambda: self._confirm_playback(gen))
        elif status == TransportStatus.FAILED:
            message = error or DEFAULT_ERROR
            logger.warning("Playback of %s failed: %s", station.name if station else "?", message)
            self._generation += 1
            self._on_success = None
            self._play_requested = False
            self._teardown_transport()
            self._set_error(message)
            self._set_state(PlaybackState.failed(station, message))

    def _confirm_playback(self, gen: int) -> None:
        if gen != self._generation or self.state.status != PlaybackStatus.PLAYING:
            return
        callback = self._on_success
        self._on_success = None
        if callback is not None and self.state.station is not None:
            callback(self.state.station)

    def _on_transport_metadata(self, gen: int, payload) -> None:
        if gen != self._generation:
            return
        parsed = parse_metadata(payload)
        if parsed.is_empty:
            return
        self._set_metadata(self.metadata.merged(parsed))

    def _on_external_output(self, gen: int, active: bool) -> None:
        if gen == self._generation:
            self._set_external_output(active)

    # ----------------------------
    # Internals
    # ----------------------------

    def _teardown_transport(self) -> None:
        binding, transport = self._binding, self._transport
        self._binding = None
        self._transport = None

        if binding is not None:
            binding.close()
        if transport is not None:
            try:
                transport.stop()
            except Exception:
                logger.exception("Failed to stop transport")
            transport.deleteLater()

    def _fire_interaction(self, station: Station) -> None:
        if self._record_interaction is None or not station.id:
            return
        try:
            self._record_interaction(station.id)
        except Exception as e:
            logger.debug("Recording interaction for %s failed: %s", station.id, e)

    def _notify_now_playing(self) -> None:
        if self._now_playing is None:
            return
        try:
            self._now_playing.update(
                self.state.station, self.metadata.title, self.metadata.artist, self.state.is_playing
            )
        except Exception as e:
            logger.debug("Now playing update failed: %s", e)

    def _set_state(self, state: PlaybackState) -> None:
        if state == self.state:
            return
        if self.state.status == PlaybackStatus.PLAYING and state.status != PlaybackStatus.PLAYING:
            # leaving Playing before the grace delay means the play didn't stick
            self._on_success = None
        self.state = state
        self.stateChanged.emit(state)
        self._notify_now_playing()

    def _set_metadata(self, metadata: StreamMetadata) -> None:
        if metadata == self.metadata:
            return
        self.metadata = metadata
        self.metadataChanged.emit(metadata)
        self._notify_now_playing()

    def _set_error(self, message: str | None) -> None:
        if message != self.error_message:
            self.error_message = message
            self.errorChanged.emit(message)

    def _set_external_output(self, active: bool) -> None:
        if active != self.is_external_output:
            self.is_external_output = active
            self.externalOutputChanged.emit(active)
