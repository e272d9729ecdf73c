# player/transport.py
from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Optional

from PySide6.QtCore import QObject, QUrl, Signal, Slot
from PySide6.QtMultimedia import QAudioOutput, QMediaDevices, QMediaMetaData, QMediaPlayer

from player.icy import IcyMetadataReader

logger = logging.getLogger(__name__)

# substrings of output device descriptions that mean "not the built-in speakers"
EXTERNAL_OUTPUT_HINTS = ("airplay", "bluetooth", "a2dp", "hdmi", "displayport", "chromecast")


class TransportStatus(Enum):
    READY = auto()
    FAILED = auto()


class AudioTransport(QObject):
    """
    What PlaybackSession drives. One instance per playback attempt.

    Signals:
      statusChanged(TransportStatus, error message | None)
      metadataReceived(payload) - list of (key, value) items, a header dict,
                                  or a raw ICY "StreamTitle=..." string
      externalOutputChanged(bool)
    """

    statusChanged = Signal(object, object)
    metadataReceived = Signal(object)
    externalOutputChanged = Signal(bool)

    def load(self, url: str) -> None:
        raise NotImplementedError

    def play(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def set_volume(self, volume_0_to_1: float) -> None:
        raise NotImplementedError

    @property
    def is_external_output(self) -> bool:
        return False


class QtAudioTransport(AudioTransport):
    """QMediaPlayer backed transport, plus an optional ICY side reader for titles."""

    def __init__(self, icy_metadata: bool = True, user_agent: str = "pyradiobrowser/0.1", parent=None):
        super().__init__(parent)
        self.icy_metadata = icy_metadata
        self.user_agent = user_agent

        self.audio = QAudioOutput(QMediaDevices.defaultAudioOutput())
        self.media = QMediaPlayer()
        self.media.setAudioOutput(self.audio)

        self.media.mediaStatusChanged.connect(self._on_media_status)
        self.media.errorOccurred.connect(self._on_error)
        self.media.metaDataChanged.connect(self._on_metadata_changed)

        self._devices = QMediaDevices(self)
        self._devices.audioOutputsChanged.connect(self._on_outputs_changed)

        self._ready_sent = False
        self._stopped = False
        self._icy: Optional[IcyMetadataReader] = None
        self._external = self._detect_external()

    # ----------------------------
    # Commands
    # ----------------------------

    def load(self, url: str) -> None:
        self._ready_sent = False
        self._stopped = False
        self.media.setSource(QUrl(url))

        if self.icy_metadata:
            reader = IcyMetadataReader(url, self.user_agent, parent=self)
            reader.headersReceived.connect(self._on_icy_headers)
            reader.streamTitleReceived.connect(self._on_icy_title)
            self._icy = reader
            reader.start()

    def play(self) -> None:
        self.media.play()

    def pause(self) -> None:
        self.media.pause()

    def stop(self) -> None:
        self._stopped = True
        if self._icy is not None:
            self._icy.stop()
            self._icy = None
        self.media.stop()
        self.media.setSource(QUrl())

    def set_volume(self, volume_0_to_1: float) -> None:
        v = min(1.0, max(0.0, float(volume_0_to_1)))
        self.audio.setVolume(v)

    @property
    def is_external_output(self) -> bool:
        return self._external

    # ----------------------------
    # Qt handlers
    # ----------------------------

    def _on_media_status(self, status: QMediaPlayer.MediaStatus) -> None:
        if self._stopped:
            return

        if status in (QMediaPlayer.MediaStatus.LoadedMedia, QMediaPlayer.MediaStatus.BufferedMedia):
            if not self._ready_sent:
                self._ready_sent = True
                self.statusChanged.emit(TransportStatus.READY, None)
        elif status == QMediaPlayer.MediaStatus.InvalidMedia:
            self.statusChanged.emit(TransportStatus.FAILED, self.media.errorString() or None)
        elif status == QMediaPlayer.MediaStatus.EndOfMedia:
            # a live stream has no end; the server dropped us
            self.statusChanged.emit(TransportStatus.FAILED, "The stream ended")

    def _on_error(self, error: QMediaPlayer.Error, message: str) -> None:
        if self._stopped or error == QMediaPlayer.Error.NoError:
            return
        logger.debug("Media error %s: %s", error, message)
        self.statusChanged.emit(TransportStatus.FAILED, message or None)

    def _on_metadata_changed(self) -> None:
        if self._stopped:
            return
        md = self.media.metaData()
        items = []
        title = md.stringValue(QMediaMetaData.Key.Title)
        if title:
            items.append(("title", title))
        for key in (QMediaMetaData.Key.ContributingArtist, QMediaMetaData.Key.AlbumArtist):
            artist = md.stringValue(key)
            if artist:
                items.append(("artist", artist))
                break
        if items:
            self.metadataReceived.emit(items)

    @Slot(object)
    def _on_icy_headers(self, headers) -> None:
        if self._stopped or self.sender() is not self._icy:
            return
        self.metadataReceived.emit(dict(headers))

    @Slot(str)
    def _on_icy_title(self, raw: str) -> None:
        if self._stopped or self.sender() is not self._icy:
            return
        self.metadataReceived.emit(raw)

    def _on_outputs_changed(self) -> None:
        self.audio.setDevice(QMediaDevices.defaultAudioOutput())
        external = self._detect_external()
        if external != self._external:
            self._external = external
            self.externalOutputChanged.emit(external)

    @staticmethod
    def _detect_external() -> bool:
        device = QMediaDevices.defaultAudioOutput()
        if device.isNull():
            return False
        description = (device.description() or "").lower()
        return any(hint in description for hint in EXTERNAL_OUTPUT_HINTS)
