"""
Tests for PlaybackSession - transitions, wraparound, removal during playback.
"""
from dataclasses import replace

import pytest

from conftest import make_song


def loads(player):
    return [call[1].name for call in player.calls if call[0] == 'load']


class TestPlaySong:
    """Tests for starting playback."""

    def test_play_song_sets_index(self, session, player, songs, music_dir):
        session.play_song(songs[1], songs)
        state = session.state
        assert state.current_index == 1
        assert state.current_song == songs[1]
        assert state.is_playing
        assert player.loaded == music_dir / songs[1].storage_file_name

    def test_playlist_is_snapshot(self, session, songs):
        playlist = list(songs)
        session.play_song(songs[0], playlist)
        playlist.reverse()
        assert session.state.playlist == tuple(songs)

    def test_song_not_in_playlist_defaults_to_zero(self, session, songs):
        stranger = make_song('Stranger')
        session.play_song(stranger, songs)
        assert session.state.current_index == 0
        assert session.state.current_song == stranger

    def test_failed_load_stays_loaded_but_paused(self, session, player, songs):
        """A missing file fails the track, not the session."""
        player.fail_loads = True
        session.play_song(songs[0], songs)
        state = session.state
        assert state.is_loaded
        assert not state.is_playing


class TestNextPrevious:
    """Tests for skipping through the playlist."""

    def test_next_twice_then_wrap(self, session, songs):
        session.play_song(songs[0], songs)
        session.play_next()
        session.play_next()
        assert session.state.current_index == 2
        assert session.state.current_song == songs[2]
        session.play_next()
        assert session.state.current_index == 0
        assert session.state.current_song == songs[0]

    @pytest.mark.parametrize('start', [0, 1, 2])
    def test_next_len_times_returns_to_start(self, session, songs, start):
        session.play_song(songs[start], songs)
        for _ in range(len(songs)):
            session.play_next()
        assert session.state.current_index == start

    def test_next_on_empty_playlist_is_noop(self, session, player):
        session.play_next()
        assert player.calls == []
        assert not session.state.is_loaded

    def test_previous_decrements_with_wrap(self, session, songs):
        session.play_song(songs[0], songs)
        session.play_previous()
        assert session.state.current_index == 2
        session.play_previous()
        assert session.state.current_index == 1

    def test_previous_at_threshold_still_moves(self, session, songs):
        session.play_song(songs[1], songs)
        session.on_backend_update(True, 3.0, 200.0)
        session.play_previous()
        assert session.state.current_index == 0

    def test_previous_after_threshold_restarts(self, session, player, songs):
        session.play_song(songs[1], songs)
        session.on_backend_update(True, 42.0, 200.0)
        session.play_previous()
        assert session.state.current_index == 1
        assert session.state.current_time == 0.0
        assert player.calls[-1] == ('seek', 0)

    def test_track_finished_advances(self, session, songs):
        session.play_song(songs[2], songs)
        session.on_track_finished()
        assert session.state.current_song == songs[0]
        assert session.state.is_playing


class TestTransport:
    """Tests for pause, seek and stop."""

    def test_toggle(self, session, player, songs):
        session.play_song(songs[0], songs)
        session.toggle_play_pause()
        assert not session.state.is_playing
        session.toggle_play_pause()
        assert session.state.is_playing
        assert [c[0] for c in player.calls[-2:]] == ['pause', 'play']

    def test_toggle_idle_is_noop(self, session, player):
        session.toggle_play_pause()
        assert player.calls == []

    def test_seek_keeps_index(self, session, player, songs):
        session.play_song(songs[1], songs)
        session.seek(65.5)
        assert session.state.current_index == 1
        assert session.state.current_time == 65.5
        assert player.calls[-1] == ('seek', 65.5)

    def test_stop_goes_idle(self, session, songs):
        session.play_song(songs[1], songs)
        session.stop()
        state = session.state
        assert state.current_song is None
        assert state.playlist == ()
        assert state.current_index == 0
        assert not state.is_playing


class TestUpdateSong:
    """Tests for edits reaching the session."""

    def test_update_current(self, session, player, songs):
        session.play_song(songs[1], songs)
        session.on_backend_update(True, 30.0, 200.0)
        edited = replace(songs[1], custom_title='Edited')

        session.update_song(edited)

        state = session.state
        assert state.current_song.display_title == 'Edited'
        assert state.playlist[1].display_title == 'Edited'
        assert state.current_time == 30.0
        assert player.calls[-1] == ('update_now_playing', songs[1].id)
        assert loads(player) == [songs[1].storage_file_name]

    def test_update_other_entry(self, session, player, songs):
        session.play_song(songs[0], songs)
        calls_before = len(player.calls)
        session.update_song(replace(songs[2], custom_title='Later'))
        assert session.state.playlist[2].display_title == 'Later'
        assert session.state.current_song == songs[0]
        assert len(player.calls) == calls_before


class TestRemoveFromPlaylist:
    """Tests for deletion while playing."""

    def test_remove_current_advances(self, session, songs):
        session.play_song(songs[0], songs)
        session.remove_song_from_playlist(songs[0])
        state = session.state
        assert state.current_song == songs[1]
        assert state.playlist == (songs[1], songs[2])
        assert state.playlist[state.current_index] == state.current_song

    def test_remove_current_last_wraps(self, session, songs):
        session.play_song(songs[2], songs)
        session.remove_song_from_playlist(songs[2])
        state = session.state
        assert state.current_song == songs[0]
        assert state.current_index == 0
        assert len(state.playlist) == 2

    def test_remove_sole_song_goes_idle(self, session, songs):
        session.play_song(songs[0], songs[:1])
        session.remove_song_from_playlist(songs[0])
        assert not session.state.is_loaded
        assert session.state.playlist == ()

    def test_remove_other_reindexes(self, session, songs):
        session.play_song(songs[2], songs)
        session.remove_song_from_playlist(songs[0])
        state = session.state
        assert state.current_song == songs[2]
        assert state.current_index == 1

    def test_remove_unknown_is_noop(self, session, songs):
        session.play_song(songs[1], songs)
        session.remove_song_from_playlist(make_song('Ghost'))
        assert session.state.playlist == tuple(songs)


class TestObservers:
    """Tests for snapshot notifications."""

    def test_subscribers_get_snapshots(self, session, songs):
        seen = []
        unsubscribe = session.subscribe(seen.append)
        session.play_song(songs[0], songs)
        session.play_next()
        unsubscribe()
        session.play_next()
        assert [s.current_index for s in seen] == [0, 1]

    def test_removing_current_notifies_once_consistently(self, session, songs):
        session.play_song(songs[0], songs)
        seen = []
        session.subscribe(seen.append)

        session.remove_song_from_playlist(songs[0])

        assert len(seen) == 1
        for state in seen:
            assert state.playlist[state.current_index] == state.current_song
        assert seen[0].playlist == (songs[1], songs[2])

    def test_track_finished_notifies_once(self, session, songs):
        session.play_song(songs[2], songs)
        seen = []
        session.subscribe(seen.append)
        session.on_track_finished()
        assert [(s.current_index, s.current_song) for s in seen] == [(0, songs[0])]

    def test_backend_update_copies_state(self, session, songs):
        session.play_song(songs[0], songs)
        session.on_backend_update(False, 12.5, 250.0)
        state = session.state
        assert not state.is_playing
        assert state.current_time == 12.5
        assert state.duration == 250.0
        assert state.progress == pytest.approx(0.05)

    def test_backend_update_ignored_when_idle(self, session):
        session.on_backend_update(True, 5.0, 100.0)
        assert session.state.current_time == 0.0
