"""Tests for candidate scoring and match selection."""

from __future__ import annotations

import logging
from dataclasses import replace

import pytest

from p2m3u.config import ALBUM, ALBUM_ARTIST, ARTIST, TITLE, TRACK, ConverterConfig
from p2m3u.library import Library, Song
from p2m3u.matching import (
    KEY_SEPARATOR,
    MalformedKeyError,
    file_extension,
    format_key,
    match_key,
    match_keys,
    score_candidates,
    select_match,
)

FORMAT = (ARTIST, ALBUM, TITLE)


def key(*fields: str) -> str:
    return KEY_SEPARATOR.join(fields)


def test_scores_accumulate_per_field(two_song_library: Library) -> None:
    """Album, artist and title hits add up for the same song."""
    scores = score_candidates(two_song_library, key("Band A", "Album X", "Song 1"), FORMAT)
    assert scores[0] == pytest.approx(0.9)
    assert scores[1] == pytest.approx(0.4)


def test_scores_are_sparse(two_song_library: Library) -> None:
    scores = score_candidates(two_song_library, key("Nobody", "Album Y", "Nothing"), FORMAT)
    assert scores == {1: pytest.approx(0.5)}


def test_second_matching_field_increases_score() -> None:
    library = Library()
    library.insert("a.mp3", Song(filepath="/a.mp3", relpath="a.mp3", album="Album", title="Song"))
    album_only = score_candidates(library, key("Album", "Other"), (ALBUM, TITLE))
    album_and_title = score_candidates(library, key("Album", "Song"), (ALBUM, TITLE))
    assert album_and_title[0] > album_only[0]


def test_each_split_artist_adds_weight() -> None:
    library = Library()
    library.insert("a.mp3", Song(filepath="/a.mp3", relpath="a.mp3", artist="A, B", album_artist="A"))
    scores = score_candidates(library, key("A, B, C", "A"), (ARTIST, ALBUM_ARTIST))
    assert scores[0] == pytest.approx(0.3 + 0.3 + 0.3)


def test_segments_are_trimmed(two_song_library: Library) -> None:
    scores = score_candidates(two_song_library, key(" Band A ", "Album X ", " Song 1"), FORMAT)
    assert scores[0] == pytest.approx(0.9)


def test_track_field_is_not_scored(two_song_library: Library) -> None:
    scores = score_candidates(two_song_library, key("Nobody", "1"), (ARTIST, TRACK))
    assert scores == {}


def test_malformed_key_raises(two_song_library: Library) -> None:
    with pytest.raises(MalformedKeyError):
        score_candidates(two_song_library, key("Band A", "Album X"), FORMAT)


def test_end_to_end_picks_flac_on_matching_album(two_song_library: Library, converter_config: ConverterConfig) -> None:
    """Album+artist+title+flac bonus beats artist+title on another album."""
    candidates = score_candidates(two_song_library, key("Band A", "Album X", "Song 1"), FORMAT)
    assert select_match(two_song_library, candidates, converter_config) == 0

    song = match_key(two_song_library, key("Band A", "Album X", "Song 1"), converter_config)
    assert song is not None and song.relpath == "a.flac"


def test_weak_candidate_alone_is_rejected(two_song_library: Library, converter_config: ConverterConfig) -> None:
    """Artist+title on an mp3 (0.4) stays under the default allowance."""
    assert match_key(two_song_library, key("Band A", "Album Z", "Song 1"), converter_config) is None


def test_threshold_requires_strictly_greater(converter_config: ConverterConfig) -> None:
    library = Library()
    library.insert("x.mp3", Song(filepath="/x.mp3", relpath="x.mp3", album="Album"))
    at_limit = replace(converter_config, minimum_match_allowance=0.5)
    just_under = replace(converter_config, minimum_match_allowance=0.5 - 1e-9)

    assert select_match(library, {0: 0.5}, at_limit) is None
    assert select_match(library, {0: 0.5}, just_under) == 0


def test_filetype_bonus_is_case_insensitive() -> None:
    library = Library()
    library.insert("x.Flac", Song(filepath="/x.Flac", relpath="x.Flac"))
    cfg = ConverterConfig(minimum_match_allowance=0.1, filetype_bonuses={"FLAC": 0.2})
    assert select_match(library, {0: 0.0}, cfg) == 0


def test_ties_go_to_lowest_id(converter_config: ConverterConfig) -> None:
    library = Library()
    for name in ("a.mp3", "b.mp3", "c.mp3"):
        library.insert(name, Song(filepath=f"/{name}", relpath=name))
    assert select_match(library, {2: 1.0, 1: 1.0, 0: 0.5}, converter_config) == 1


def test_no_candidates_is_no_match(converter_config: ConverterConfig) -> None:
    assert select_match(Library(), {}, converter_config) is None
    assert match_key(Library(), key("Band A", "Album X", "Song 1"), converter_config) is None


def test_unknown_fields_do_not_match(two_song_library: Library, converter_config: ConverterConfig) -> None:
    assert match_key(two_song_library, key("Nobody", "Nothing", "Nada"), converter_config) is None


@pytest.mark.parametrize(
    "path, expected",
    [
        ("Music/a.flac", "FLAC"),
        ("Music/a.b.mp3", "MP3"),
        ("Music/no_extension", ""),
        ("Music.v2/no_extension", ""),
        ("C:\\Music\\song.Ogg", "OGG"),
    ],
)
def test_file_extension(path: str, expected: str) -> None:
    assert file_extension(path) == expected


def test_match_keys_keeps_order_and_skips_malformed(
    two_song_library: Library, converter_config: ConverterConfig, caplog: pytest.LogCaptureFixture
) -> None:
    keys = [
        key("Band A", "Album X", "Song 1"),
        key("Band A", "Album X"),
        key("Nobody", "Nothing", "Nada"),
    ]
    with caplog.at_level(logging.WARNING, logger="p2m3u.matching"):
        results = match_keys(two_song_library, keys, converter_config)

    assert [r.relpath if r else None for r in results] == ["a.flac", None, None]
    assert "Skipping entry" in caplog.text


def test_format_key() -> None:
    assert format_key(key("Band A", "Album X", "Song 1")) == "Band A / Album X / Song 1"
