"""
Tests for PygamePlayer - load failures, seek offsets, finish detection.
"""
from unittest.mock import MagicMock, patch

import pytest

from conftest import make_song
from loft.api.player import PygamePlayer, NullPlayer


class FakePygameError(Exception):
    pass


@pytest.fixture
def fake_pygame():
    with patch('loft.api.player.pygame') as pg:
        pg.error = FakePygameError
        pg.mixer.get_init.return_value = (44100, -16, 2)
        pg.mixer.music.get_busy.return_value = True
        pg.mixer.music.get_pos.return_value = 0
        yield pg


@pytest.fixture
def audio_file(temp_dir):
    path = temp_dir / 'track.mp3'
    path.write_bytes(b'fake')
    return path


class TestLoad:
    def test_missing_file_fails(self, fake_pygame, temp_dir):
        player = PygamePlayer()
        assert player.load(temp_dir / 'gone.mp3', 10.0) is False
        fake_pygame.mixer.music.load.assert_not_called()
        assert player.play() is False

    def test_undecodable_file_fails(self, fake_pygame, audio_file):
        fake_pygame.mixer.music.load.side_effect = FakePygameError('unsupported')
        assert PygamePlayer().load(audio_file) is False

    def test_aac_warning_logged_once(self, fake_pygame, temp_dir, caplog):
        fake_pygame.mixer.music.load.side_effect = FakePygameError('unsupported')
        path = temp_dir / 'track.m4a'
        path.write_bytes(b'fake')
        player = PygamePlayer()
        with caplog.at_level('WARNING', logger='loft.api.player'):
            assert player.load(path) is False
            assert player.load(path) is False
        warnings = [r for r in caplog.records if 'not supported' in r.getMessage()]
        assert len(warnings) == 1

    def test_no_audio_device_fails(self, fake_pygame, audio_file):
        fake_pygame.mixer.get_init.return_value = None
        fake_pygame.mixer.init.side_effect = FakePygameError('no device')
        assert PygamePlayer().load(audio_file) is False


class TestTransport:
    def test_play_pause_resume(self, fake_pygame, audio_file):
        player = PygamePlayer()
        player.load(audio_file, 120.0)
        assert player.play()
        fake_pygame.mixer.music.play.assert_called_once_with(start=0.0)
        player.pause()
        player.play()
        fake_pygame.mixer.music.unpause.assert_called_once()
        assert player.status() == (True, 0.0, 120.0)

    def test_seek_offsets_time(self, fake_pygame, audio_file):
        player = PygamePlayer()
        player.load(audio_file, 120.0)
        player.play()
        player.seek(30.0)
        fake_pygame.mixer.music.get_pos.return_value = 2500
        assert player.current_time() == pytest.approx(32.5)

    def test_seek_while_paused_stays_paused(self, fake_pygame, audio_file):
        player = PygamePlayer()
        player.load(audio_file)
        player.seek(10.0)
        fake_pygame.mixer.music.pause.assert_called_once()
        assert player.status()[0] is False


class TestFinish:
    def test_poll_reports_end_once(self, fake_pygame, audio_file):
        player = PygamePlayer()
        player.load(audio_file)
        player.play()
        assert player.poll() is False
        fake_pygame.mixer.music.get_busy.return_value = False
        assert player.poll() is True
        assert player.poll() is False

    def test_paused_is_not_finished(self, fake_pygame, audio_file):
        player = PygamePlayer()
        player.load(audio_file)
        player.play()
        player.pause()
        fake_pygame.mixer.music.get_busy.return_value = False
        assert player.poll() is False


class TestNullPlayer:
    def test_records_calls(self):
        player = NullPlayer()
        song = make_song('A')
        player.load('a.mp3', 5.0)
        player.play()
        player.update_now_playing(song)
        assert [c[0] for c in player.calls] == ['load', 'play', 'update_now_playing']
        assert player.status() == (True, 0.0, 5.0)
