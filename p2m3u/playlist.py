"""
Playlist input and output.

Reads CSV playlists (plain or Exportify exports) into entries, flattens those
into query keys following the configured format, and writes the matched songs
back out as an M3U of relative paths.
"""
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .config import ALBUM, ALBUM_ARTIST, ARTIST, TITLE, TRACK
from .library import UNKNOWN_ARTIST, Song
from .matching import KEY_SEPARATOR, format_key

logger = logging.getLogger(__name__)

INPUT_TYPES = ("CSV", "EXPORTIFY")
OUTPUT_TYPES = ("M3U",)

# Column headers per reader type, keyed by field tag
CSV_HEADERS = {
    "CSV": {
        ARTIST: "Artist",
        ALBUM_ARTIST: "AlbumArtist",
        TITLE: "Title",
        ALBUM: "Album",
        TRACK: "Track Number",
    },
    "EXPORTIFY": {
        ARTIST: "Artist Name(s)",
        ALBUM_ARTIST: "Album Artist Name(s)",
        TITLE: "Track Name",
        ALBUM: "Album Name",
        TRACK: "Track Number",
    },
}


class PlaylistError(ValueError):
    """Raised for unreadable or unusable playlist input."""


@dataclass(frozen=True)
class PlaylistEntry:
    title: str = ""
    artist: str = ""
    album_artist: str = ""
    album: str = ""
    track_number: int = -1

    def value(self, tag: str) -> str:
        if tag == ARTIST:
            return self.artist
        if tag == ALBUM_ARTIST:
            return self.album_artist
        if tag == ALBUM:
            return self.album
        if tag == TITLE:
            return self.title
        if tag == TRACK:
            return str(self.track_number)
        raise KeyError(tag)


def detect_type(path: str | Path, override: Optional[str], known: Sequence[str]) -> str:
    """Pick a reader/writer type from an explicit override or the file extension."""
    kind = (override or Path(path).suffix.lstrip(".")).upper()
    if kind not in known:
        raise PlaylistError(f"Invalid type {kind!r}; expected one of {', '.join(known)}")
    return kind


def read_playlist(path: str | Path, reader_type: str = "CSV") -> list[PlaylistEntry]:
    """
    Parse a CSV playlist into entries.

    Raises:
        PlaylistError: If the file is unreadable or its header has none of the
                       expected columns.
    """
    headers = CSV_HEADERS[reader_type.upper()]
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            rows = list(csv.reader(f))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise PlaylistError(f"Cannot read playlist {path}: {e}") from e

    if not rows:
        raise PlaylistError(f"Playlist {path} is empty")

    header = rows[0]
    columns = {tag: header.index(name) for tag, name in headers.items() if name in header}
    if not columns:
        raise PlaylistError(f"Input CSV {path} does not include a valid header")

    def cell(row: list[str], tag: str) -> str:
        idx = columns.get(tag)
        if idx is None or idx >= len(row):
            return ""
        return row[idx]

    entries: list[PlaylistEntry] = []
    for line_no, row in enumerate(rows[1:], start=2):
        if not any(c.strip() for c in row):
            continue
        track_number = -1
        raw_track = cell(row, TRACK).strip()
        if raw_track:
            try:
                track_number = int(raw_track)
            except ValueError:
                logger.warning("Line %d: track number %r is not a valid integer", line_no, raw_track)
        entries.append(
            PlaylistEntry(
                title=cell(row, TITLE),
                artist=cell(row, ARTIST),
                album_artist=cell(row, ALBUM_ARTIST),
                album=cell(row, ALBUM),
                track_number=track_number,
            )
        )
    logger.info("Read %d entries from %s", len(entries), path)
    return entries


def build_keys(entries: Sequence[PlaylistEntry], fmt: Sequence[str]) -> list[str]:
    """Flatten entries into query keys; empty fields become the placeholder."""
    keys = []
    for entry in entries:
        values = [entry.value(tag).strip() or UNKNOWN_ARTIST for tag in fmt]
        keys.append(KEY_SEPARATOR.join(values))
    return keys


def get_playlist_keys(path: str | Path, reader_type: str, fmt: Sequence[str]) -> list[str]:
    """
    Read a playlist and return its query keys.

    Raises:
        PlaylistError: If the playlist yields no keys.
    """
    keys = build_keys(read_playlist(path, reader_type), fmt)
    if not keys:
        raise PlaylistError(f"Key list empty from {path}")
    return keys


def write_m3u(songs: Sequence[Optional[Song]], output_path: str | Path) -> int:
    """Write one relative path per matched song; returns the number written."""
    lines = [song.relpath for song in songs if song is not None]
    with open(output_path, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(f"{line}\n")
    return len(lines)


def write_missing(keys: Sequence[str], songs: Sequence[Optional[Song]], output_path: str | Path) -> int:
    """List the keys that found no match; returns how many were listed."""
    missing = [key for key, song in zip(keys, songs) if song is None]
    with open(output_path, "w", encoding="utf-8") as f:
        f.write("Couldn't find:\n")
        for key in missing:
            f.write(f"{format_key(key)}\n")
    return len(missing)
