"""
Tests for PlaybackSession: state transitions, the success grace delay and
isolation between consecutive playback attempts.
"""

from unittest.mock import MagicMock

import pytest

from core.models import PlaybackState, PlaybackStatus, StreamMetadata
from factories import FakeTransport, ManualScheduler, make_station
from player.session import (
    DEFAULT_ERROR,
    GRACE_DELAY_MS,
    INVALID_URL_ERROR,
    PlaybackSession,
)


@pytest.fixture
def transports():
    return []


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def interactions():
    return MagicMock()


@pytest.fixture
def session(transports, scheduler, interactions):
    def factory():
        t = FakeTransport()
        transports.append(t)
        return t

    return PlaybackSession(
        transport_factory=factory,
        record_interaction=interactions,
        schedule=scheduler,
        volume=0.5,
    )


class TestPlay:
    def test_play_enters_loading(self, session, transports, interactions, station) -> None:
        session.play(station)

        assert session.state == PlaybackState.loading(station)
        assert transports[0].calls == [("load", station.stream_url), ("play",)]
        assert transports[0].volume == 0.5
        interactions.assert_called_once_with(station.id)

    def test_ready_enters_playing(self, session, transports, station) -> None:
        session.play(station)
        transports[0].ready()
        assert session.state == PlaybackState.playing(station)
        assert session.is_playing

    def test_invalid_url_fails_without_transport(self, session, transports) -> None:
        bad = make_station(2, stream_url="ftp://example.com/radio")
        session.play(bad)

        assert session.state == PlaybackState.failed(bad, INVALID_URL_ERROR)
        assert session.error_message == INVALID_URL_ERROR
        assert transports == []
        assert not session.has_transport

    def test_invalid_url_stops_previous_station(self, session, transports, station) -> None:
        session.play(station)
        session.play(make_station(2, stream_url=""))
        assert ("stop",) in transports[0].calls
        assert session.state.status == PlaybackStatus.FAILED

    def test_interaction_failure_does_not_block(self, session, transports, interactions, station) -> None:
        interactions.side_effect = RuntimeError("offline")
        session.play(station)
        assert session.is_loading
        assert transports[0].calls[0] == ("load", station.stream_url)

    def test_state_changes_are_signalled(self, session, transports, station) -> None:
        states = []
        session.stateChanged.connect(states.append)
        session.play(station)
        transports[0].ready()
        assert [s.status for s in states] == [PlaybackStatus.LOADING, PlaybackStatus.PLAYING]


class TestSuccessCallback:
    """on_success fires once, after playback stayed up for the grace delay."""

    def test_fires_after_grace_delay(self, session, transports, scheduler, station) -> None:
        on_success = MagicMock()
        session.play(station, on_success=on_success)
        transports[0].ready()

        on_success.assert_not_called()
        assert scheduler.pending[0][0] == GRACE_DELAY_MS

        scheduler.fire_all()
        on_success.assert_called_once_with(station)

    def test_fires_only_once(self, session, transports, scheduler, station) -> None:
        on_success = MagicMock()
        session.play(station, on_success=on_success)
        transports[0].ready()
        transports[0].ready()
        scheduler.fire_all()
        assert on_success.call_count == 1

    def test_not_before_ready(self, session, scheduler, station) -> None:
        on_success = MagicMock()
        session.play(station, on_success=on_success)
        scheduler.fire_all()
        on_success.assert_not_called()

    def test_superseded_station_never_succeeds(self, session, transports, scheduler) -> None:
        a, b = make_station(1), make_station(2)
        success_a, success_b = MagicMock(), MagicMock()

        session.play(a, on_success=success_a)
        transports[0].ready()
        session.play(b, on_success=success_b)
        scheduler.fire_all()

        success_a.assert_not_called()
        success_b.assert_not_called()

        transports[1].ready()
        scheduler.fire_all()
        success_b.assert_called_once_with(b)
        success_a.assert_not_called()

    def test_stop_cancels_pending_success(self, session, transports, scheduler, station) -> None:
        on_success = MagicMock()
        session.play(station, on_success=on_success)
        transports[0].ready()
        session.stop()
        scheduler.fire_all()
        on_success.assert_not_called()

    def test_pause_discards_success(self, session, transports, scheduler, station) -> None:
        on_success = MagicMock()
        session.play(station, on_success=on_success)
        transports[0].ready()
        session.pause()
        scheduler.fire_all()
        session.resume()
        scheduler.fire_all()
        on_success.assert_not_called()

    def test_failure_within_grace_delay(self, session, transports, scheduler, station) -> None:
        on_success = MagicMock()
        session.play(station, on_success=on_success)
        transports[0].ready()
        transports[0].fail("connection reset")
        scheduler.fire_all()
        on_success.assert_not_called()


class TestFailures:
    def test_default_message(self, session, transports, station) -> None:
        session.play(station)
        transports[0].fail()

        assert session.state == PlaybackState.failed(station, DEFAULT_ERROR)
        assert session.error_message == DEFAULT_ERROR
        assert not session.has_transport
        assert ("stop",) in transports[0].calls

    def test_transport_message_is_kept(self, session, transports, station) -> None:
        session.play(station)
        transports[0].fail("404 Not Found")
        assert session.state.error == "404 Not Found"

    def test_late_events_from_old_transport_are_ignored(self, session, transports) -> None:
        a, b = make_station(1), make_station(2)
        session.play(a)
        session.play(b)

        transports[0].fail("old stream died")
        transports[0].ready()
        transports[0].metadataReceived.emit("StreamTitle='Old - Song';")

        assert session.state == PlaybackState.loading(b)
        assert session.error_message is None
        assert session.metadata == StreamMetadata()

    def test_ready_after_stop_is_ignored(self, session, transports, station) -> None:
        session.play(station)
        session.stop()
        transports[0].ready()
        assert session.state == PlaybackState.idle()

    def test_play_after_failure_clears_error(self, session, transports, station) -> None:
        session.play(station)
        transports[0].fail("boom")
        session.play(station)
        assert session.error_message is None
        assert session.is_loading


class TestPauseResume:
    def test_pause_and_resume(self, session, transports, station) -> None:
        session.play(station)
        transports[0].ready()

        session.pause()
        assert session.state == PlaybackState.paused(station)
        assert transports[0].calls[-1] == ("pause",)

        session.resume()
        assert session.state == PlaybackState.playing(station)
        assert transports[0].calls[-1] == ("play",)

    def test_pause_while_loading(self, session, transports, station) -> None:
        session.play(station)
        session.pause()
        transports[0].ready()
        assert session.state.status == PlaybackStatus.PAUSED

    def test_pause_when_idle_is_noop(self, session) -> None:
        session.pause()
        session.resume()
        assert session.state == PlaybackState.idle()

    def test_toggle(self, session, transports, station) -> None:
        session.play(station)
        transports[0].ready()
        session.toggle_play_pause()
        assert session.state.status == PlaybackStatus.PAUSED
        session.toggle_play_pause()
        assert session.state.status == PlaybackStatus.PLAYING

    def test_stop_returns_to_idle(self, session, transports, station) -> None:
        session.play(station)
        transports[0].ready()
        session.stop()
        assert session.state == PlaybackState.idle()
        assert not session.has_transport


class TestMetadata:
    def test_icy_title(self, session, transports, station) -> None:
        session.play(station)
        transports[0].metadataReceived.emit("StreamTitle='Muse - Uprising';")
        assert session.metadata == StreamMetadata(title="Uprising", artist="Muse")

    def test_partial_update_keeps_known_fields(self, session, transports, station) -> None:
        session.play(station)
        transports[0].metadataReceived.emit([("title", "Song"), ("artist", "Band")])
        transports[0].metadataReceived.emit([("title", "Next Song")])
        assert session.metadata == StreamMetadata(title="Next Song", artist="Band")

    def test_empty_update_is_ignored(self, session, transports, station) -> None:
        changes = []
        session.metadataChanged.connect(changes.append)
        session.play(station)
        transports[0].metadataReceived.emit("StreamTitle='';")
        assert changes == []

    def test_stop_clears_metadata(self, session, transports, station) -> None:
        session.play(station)
        transports[0].metadataReceived.emit({"icy-name": "Radio One"})
        session.stop()
        assert session.metadata == StreamMetadata()


class TestNowPlayingAndOutput:
    def test_now_playing_updates(self, scheduler, station) -> None:
        sink = MagicMock()
        transport = FakeTransport()
        session = PlaybackSession(lambda: transport, now_playing=sink, schedule=scheduler)

        session.play(station)
        transport.ready()
        transport.metadataReceived.emit("StreamTitle='A - B';")

        sink.update.assert_called_with(station, "B", "A", True)

    def test_now_playing_failure_is_swallowed(self, scheduler, station) -> None:
        sink = MagicMock()
        sink.update.side_effect = RuntimeError("no media session")
        transport = FakeTransport()
        session = PlaybackSession(lambda: transport, now_playing=sink, schedule=scheduler)

        session.play(station)
        transport.ready()
        assert session.is_playing

    def test_external_output(self, scheduler, station) -> None:
        transport = FakeTransport(external=True)
        session = PlaybackSession(lambda: transport, schedule=scheduler)

        session.play(station)
        assert session.is_external_output

        transport.externalOutputChanged.emit(False)
        assert not session.is_external_output

    def test_volume_is_clamped(self, session, transports, station) -> None:
        session.play(station)
        session.set_volume(1.7)
        assert session.volume == 1.0
        assert transports[0].volume == 1.0
        session.set_volume(-3)
        assert transports[0].volume == 0.0
