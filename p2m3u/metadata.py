from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from mutagen import File as MutagenFile
from mutagen import MutagenError

from .library import UNKNOWN_ARTIST, Song

logger = logging.getLogger(__name__)


class TagReadError(OSError):
    """Raised when an audio file's tags cannot be read."""


def _first(tags, key: str) -> Optional[str]:
    val = tags.get(key)
    if isinstance(val, list) and val:
        return str(val[0])
    if isinstance(val, str):
        return val
    return None


def parse_track_number(raw: Optional[str]) -> int:
    """Parse "7" or "7/12" into 7; anything unusable becomes 0."""
    if not raw:
        return 0
    try:
        return int(str(raw).split("/")[0].strip())
    except ValueError:
        return 0


def read_song(filepath: Path | str, relpath: str) -> Song:
    """
    Read the tags of one audio file into a Song.

    Uses mutagen's "easy" tag interface so ID3, Vorbis and MP4 files expose the
    same keys. Several artist values are joined with ", " so they can be split
    again at index time.

    Raises:
        TagReadError: If the file cannot be opened or is not a recognised
                      audio format.
    """
    path = Path(filepath)
    try:
        audio = MutagenFile(path, easy=True)
    except (MutagenError, OSError) as e:
        raise TagReadError(f"Could not read tags from {path}: {e}") from e
    if audio is None:
        raise TagReadError(f"Unrecognised audio file: {path}")

    tags = audio.tags or {}

    artists = tags.get("artist") or []
    if isinstance(artists, str):
        artists = [artists]
    artist = ", ".join(str(a) for a in artists) if artists else UNKNOWN_ARTIST

    return Song(
        filepath=str(path),
        relpath=relpath,
        title=_first(tags, "title") or "",
        artist=artist,
        album_artist=_first(tags, "albumartist") or "",
        album=_first(tags, "album") or "",
        track_number=parse_track_number(_first(tags, "tracknumber")),
    )
