"""
In-memory library index.

The Library owns every indexed Song plus four secondary indices (artist, album
artist, album, title) and a relative path -> identifier map used to skip files
that were already indexed on a previous run. Identifiers come from a monotonic
counter and are never reused.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping, Optional

from .splitter import DEFAULT_DELIMITER, DEFAULT_ESCAPE, split_field

logger = logging.getLogger(__name__)

# Placeholder for a missing artist; also what playlist keys use for empty fields
UNKNOWN_ARTIST = "Unknown"


class DuplicatePathError(ValueError):
    """Raised when a relative path is inserted twice."""


@dataclass(frozen=True)
class Song:
    filepath: str
    relpath: str
    title: str = ""
    artist: str = UNKNOWN_ARTIST
    album_artist: str = ""
    album: str = ""
    track_number: int = 0

    def to_dict(self) -> dict:
        return {
            "filepath": self.filepath,
            "relpath": self.relpath,
            "title": self.title,
            "artist": self.artist,
            "album_artist": self.album_artist,
            "album": self.album,
            "track_number": self.track_number,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "Song":
        return cls(
            filepath=str(data["filepath"]),
            relpath=str(data["relpath"]),
            title=str(data.get("title", "")),
            artist=str(data.get("artist", UNKNOWN_ARTIST)),
            album_artist=str(data.get("album_artist", "")),
            album=str(data.get("album", "")),
            track_number=int(data.get("track_number", 0) or 0),
        )


@dataclass
class Library:
    """
    Song collection with secondary indices.

    `split_character` and `special_cases` control how artist and album artist
    fields are broken into individual index keys.
    """

    split_character: str = DEFAULT_DELIMITER
    special_cases: frozenset[str] = frozenset()
    songs: dict[int, Song] = field(default_factory=dict)
    artist_index: dict[str, set[int]] = field(default_factory=dict)
    album_artist_index: dict[str, set[int]] = field(default_factory=dict)
    album_index: dict[str, set[int]] = field(default_factory=dict)
    title_index: dict[str, set[int]] = field(default_factory=dict)
    path_index: dict[str, int] = field(default_factory=dict)
    next_id: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.songs)

    def __iter__(self) -> Iterator[tuple[int, Song]]:
        return iter(self.songs.items())

    def split_values(self, value: str) -> list[str]:
        """Split a multi-valued field into trimmed, non-empty values."""
        parts = split_field(value, self.split_character, DEFAULT_ESCAPE, self.special_cases)
        return [p.strip() for p in parts if p.strip()]

    def contains(self, relpath: str) -> bool:
        return relpath in self.path_index

    def lookup(self, relpath: str) -> Optional[int]:
        return self.path_index.get(relpath)

    def get(self, song_id: int) -> Song:
        return self.songs[song_id]

    def insert(self, relpath: str, song: Song) -> int:
        """
        Add a song under `relpath` and index its fields.

        Raises:
            DuplicatePathError: If `relpath` is already indexed. Callers are
                                expected to check `contains()` first.
            ValueError: If `relpath` differs from `song.relpath`; snapshots
                        rebuild the path index from the song record.
        """
        if relpath != song.relpath:
            raise ValueError(f"Path key {relpath!r} does not match song relpath {song.relpath!r}")
        with self._lock:
            if relpath in self.path_index:
                raise DuplicatePathError(f"Path already indexed: {relpath}")
            song_id = self.next_id
            self._index(song_id, song)
            self.path_index[relpath] = song_id
            self.next_id = song_id + 1
        logger.debug("Indexed %s as %d", relpath, song_id)
        return song_id

    def _index(self, song_id: int, song: Song) -> None:
        self.songs[song_id] = song
        for artist in self.split_values(song.artist):
            if artist != UNKNOWN_ARTIST:
                self.artist_index.setdefault(artist, set()).add(song_id)
        for artist in self.split_values(song.album_artist):
            if artist != UNKNOWN_ARTIST:
                self.album_artist_index.setdefault(artist, set()).add(song_id)
        album = song.album.strip()
        if album:
            self.album_index.setdefault(album, set()).add(song_id)
        title = song.title.strip()
        if title:
            self.title_index.setdefault(title, set()).add(song_id)

    @classmethod
    def from_songs(
        cls,
        songs: Mapping[int, Song],
        next_id: int,
        split_character: str = DEFAULT_DELIMITER,
        special_cases: Iterable[str] = (),
    ) -> "Library":
        """Rebuild a library, keeping the given identifiers."""
        library = cls(split_character=split_character, special_cases=frozenset(special_cases))
        for song_id in sorted(songs):
            song = songs[song_id]
            if song.relpath in library.path_index:
                raise DuplicatePathError(f"Path already indexed: {song.relpath}")
            library._index(song_id, song)
            library.path_index[song.relpath] = song_id
        library.next_id = max(next_id, max(songs, default=-1) + 1)
        return library
