from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable

from PySide6.QtCore import QObject, QStandardPaths, Signal, Slot

from catalog.browser import CatalogBrowser
from catalog.client import RadioBrowserClient
from catalog.workers import CatalogTaskRunner
from core.countries import CountryCodeResolver
from core.models import Station
from db.database import get_config, set_volume
from db.migrations import initialize_database
from db.stores import FavoritesStore, HistoryStore
from player.session import PlaybackSession
from player.transport import AudioTransport, QtAudioTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notify:
    message: str
    notify_type: str = "info"   # info/success/warn/error


class AppState(QObject):
    notification = Signal(object)   # emits Notify

    def __init__(self):
        super().__init__()
        self.app_data_dir: str | None = None
        self.db = None
        self.config = None
        self.client = None
        self.runner = None
        self.browser = None
        self.playback = None
        self.history = None
        self.favorites = None

    @Slot(str, str)
    def notify(self, message: str, notify_type: str = "info"):
        self.notification.emit(Notify(message=message, notify_type=notify_type))

    def play_station(self, station: Station) -> None:
        """Plays a station; it lands in history once playback is confirmed."""
        if self.playback is None:
            self.notify("Audio playback is not available", "error")
            return
        on_success = self.history.record if self.history is not None else None
        self.playback.play(station, on_success=on_success)

    def set_volume(self, volume: float) -> None:
        if self.playback is None:
            return
        self.playback.set_volume(volume)
        if self.db is not None:
            set_volume(self.db, self.playback.volume)


def get_app_data_dir() -> str:
    base = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.AppDataLocation)
    os.makedirs(base, exist_ok=True)
    return base


def configure_logging() -> None:
    level = os.getenv("RADIOBROWSER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def debug_print_schema(db) -> None:
    for table in ("config_data", "favorites", "recents"):
        cur = db.execute(f"PRAGMA table_info({table})")
        logger.info("[%s table schema]", table)
        for _cid, name, col_type, _notnull, _default, _pk in cur.fetchall():
            logger.info("- %s (%s)", name, col_type)


def init_app_state(
    app_data_dir: str | None = None,
    transport_factory: Callable[[], AudioTransport] | None = None,
    schedule: Callable[[int, Callable[[], None]], None] | None = None,
) -> AppState:
    """
    Builds the whole object graph: database, config, catalog client/browser,
    playback session and the history/favorites stores.
    transport_factory and schedule default to QMediaPlayer and QTimer.
    Needs a running Q(Core)Application.
    """
    configure_logging()

    app_state = AppState()
    app_state.app_data_dir = app_data_dir or get_app_data_dir()
    app_state.db = initialize_database(app_state.app_data_dir)

    if os.getenv("RADIOBROWSER_DEBUG_SCHEMA") == "1":
        debug_print_schema(app_state.db)

    config = get_config(app_state.db)
    api_url = os.getenv("RADIOBROWSER_API_URL")
    if api_url:
        config.api_base_url = api_url
    app_state.config = config

    app_state.client = RadioBrowserClient(
        base_url=config.api_base_url,
        user_agent=config.user_agent,
        hide_broken=config.hide_broken,
    )
    app_state.runner = CatalogTaskRunner(app_state)
    app_state.browser = CatalogBrowser(
        app_state.client,
        app_state.runner,
        resolver=CountryCodeResolver(),
        page_size=config.page_size,
        hide_broken=config.hide_broken,
        parent=app_state,
    )
    app_state.history = HistoryStore(app_state.db)
    app_state.favorites = FavoritesStore(app_state.db)

    client, runner = app_state.client, app_state.runner

    def record_interaction(station_id: str) -> None:
        runner.fire_and_forget(lambda: client.record_interaction(station_id), "Recording station click")

    app_state.playback = PlaybackSession(
        transport_factory=transport_factory or (lambda: QtAudioTransport(
            icy_metadata=config.icy_metadata, user_agent=config.user_agent
        )),
        record_interaction=record_interaction,
        schedule=schedule,
        volume=config.volume,
        parent=app_state,
    )

    def _on_playback_error(message):
        if message:
            app_state.notify(message, "error")

    def _on_browser_error(message):
        if message:
            app_state.notify(message, "warn")

    app_state.playback.errorChanged.connect(_on_playback_error)
    app_state.browser.errorChanged.connect(_on_browser_error)

    return app_state
