"""Tests for reading songs from audio tags."""

from __future__ import annotations

from pathlib import Path

import pytest
from mutagen import MutagenError

from p2m3u import metadata as metadata_module
from p2m3u.library import UNKNOWN_ARTIST
from p2m3u.metadata import TagReadError, parse_track_number, read_song


class FakeAudio:
    def __init__(self, tags):
        self.tags = tags


@pytest.mark.parametrize("raw, expected", [("7", 7), ("7/12", 7), (" 3 / 10", 3), ("", 0), (None, 0), ("A", 0)])
def test_parse_track_number(raw, expected) -> None:
    assert parse_track_number(raw) == expected


def test_read_song_maps_tags(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    tags = {
        "artist": ["Artist A", "Artist B"],
        "albumartist": ["Various"],
        "album": ["Album X"],
        "title": ["Song 1"],
        "tracknumber": ["3/12"],
    }
    monkeypatch.setattr(metadata_module, "MutagenFile", lambda path, easy: FakeAudio(tags))

    song = read_song(tmp_path / "a.flac", "Music/a.flac")

    assert song.filepath == str(tmp_path / "a.flac")
    assert song.relpath == "Music/a.flac"
    assert song.artist == "Artist A, Artist B"
    assert song.album_artist == "Various"
    assert song.album == "Album X"
    assert song.title == "Song 1"
    assert song.track_number == 3


def test_read_song_without_tags(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(metadata_module, "MutagenFile", lambda path, easy: FakeAudio(None))
    song = read_song(tmp_path / "a.mp3", "Music/a.mp3")
    assert song.artist == UNKNOWN_ARTIST
    assert song.title == ""
    assert song.track_number == 0


def test_read_song_unrecognised_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(metadata_module, "MutagenFile", lambda path, easy: None)
    with pytest.raises(TagReadError):
        read_song(tmp_path / "a.wav", "Music/a.wav")


def test_read_song_mutagen_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(path, easy):
        raise MutagenError("bad header")

    monkeypatch.setattr(metadata_module, "MutagenFile", broken)
    with pytest.raises(TagReadError):
        read_song(tmp_path / "a.flac", "Music/a.flac")


def test_read_song_real_file_that_is_not_audio(tmp_path: Path) -> None:
    path = tmp_path / "fake.flac"
    path.write_bytes(b"this is not a flac stream")
    with pytest.raises(TagReadError):
        read_song(path, "Music/fake.flac")
