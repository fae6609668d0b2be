"""
Weighted candidate scoring and best-match selection.

A query key is one playlist entry flattened into a string whose fields follow
the configured format, separated by KEY_SEPARATOR. Each field is looked up in
the matching secondary index and every hit adds a fixed weight to the song's
score. Album and artist hits dominate; a title hit is a small tie-breaker,
since the same title shows up on many albums.
"""
import logging
import posixpath
from typing import Iterable, Optional, Sequence

from rich.progress import Progress

from .config import ALBUM, ALBUM_ARTIST, ARTIST, TITLE, TRACK, ConverterConfig, console
from .library import Library, Song

logger = logging.getLogger(__name__)

# ASCII unit separator; never expected inside tag values
KEY_SEPARATOR = "\x1f"

ARTIST_WEIGHT = 0.3
ALBUM_ARTIST_WEIGHT = 0.3
ALBUM_WEIGHT = 0.5
TITLE_WEIGHT = 0.1


class MalformedKeyError(ValueError):
    """Raised when a query key does not have one segment per format field."""


def split_key(query_key: str, fmt: Sequence[str]) -> list[str]:
    segments = query_key.split(KEY_SEPARATOR)
    if len(segments) != len(fmt):
        raise MalformedKeyError(
            f"Key has {len(segments)} field(s) but format {list(fmt)} expects {len(fmt)}: {query_key!r}"
        )
    return segments


def _accrue(scores: dict[int, float], ids: Iterable[int], weight: float) -> None:
    for song_id in ids:
        scores[song_id] = scores.get(song_id, 0.0) + weight


def score_candidates(library: Library, query_key: str, fmt: Sequence[str]) -> dict[int, float]:
    """
    Score every song that shares at least one field with the query key.

    Returns:
        dict[int, float]: Sparse mapping of song id to accumulated weight.

    Raises:
        MalformedKeyError: If the key's field count does not match `fmt`.
    """
    scores: dict[int, float] = {}
    for tag, segment in zip(fmt, split_key(query_key, fmt)):
        if tag == ARTIST:
            for artist in library.split_values(segment):
                _accrue(scores, library.artist_index.get(artist, ()), ARTIST_WEIGHT)
        elif tag == ALBUM_ARTIST:
            for artist in library.split_values(segment):
                _accrue(scores, library.album_artist_index.get(artist, ()), ALBUM_ARTIST_WEIGHT)
        elif tag == ALBUM:
            _accrue(scores, library.album_index.get(segment.strip(), ()), ALBUM_WEIGHT)
        elif tag == TITLE:
            _accrue(scores, library.title_index.get(segment.strip(), ()), TITLE_WEIGHT)
        elif tag == TRACK:
            # Track numbers are carried in the key but never scored
            continue
    return scores


def file_extension(path: str) -> str:
    """Uppercased suffix after the last '.' of the file name, or ''."""
    name = posixpath.basename(path.replace("\\", "/"))
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].upper()


def select_match(library: Library, candidates: dict[int, float], config: ConverterConfig) -> Optional[int]:
    """
    Pick the best candidate after adding the per-filetype bonus.

    Candidates are visited in ascending id order and only a strictly greater
    score replaces the current best, so the lowest id wins a tie. The best
    score must be strictly greater than the configured allowance.
    """
    best_id: Optional[int] = None
    best_score = float("-inf")
    for song_id in sorted(candidates):
        song = library.get(song_id)
        score = candidates[song_id] + config.bonus_for(file_extension(song.relpath))
        if score > best_score:
            best_id, best_score = song_id, score

    if best_id is None or best_score <= config.minimum_match_allowance:
        return None
    logger.debug("Best candidate %d scored %.2f", best_id, best_score)
    return best_id


def match_key(library: Library, query_key: str, config: ConverterConfig) -> Optional[Song]:
    """Return the best matching song for one query key, or None."""
    candidates = score_candidates(library, query_key, config.format)
    song_id = select_match(library, candidates, config)
    return library.get(song_id) if song_id is not None else None


def match_keys(library: Library, keys: Sequence[str], config: ConverterConfig) -> list[Optional[Song]]:
    """
    Match a whole playlist, keeping input order.

    A malformed key is logged and treated as unmatched; the batch continues.
    """
    results: list[Optional[Song]] = []
    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("[green]Finding matches...[/green]", total=len(keys))
        for key in keys:
            try:
                results.append(match_key(library, key, config))
            except MalformedKeyError as e:
                logger.warning("Skipping entry: %s", e)
                results.append(None)
            progress.update(task, advance=1)

    matched = sum(1 for r in results if r is not None)
    logger.info("Matched %d of %d entries", matched, len(keys))
    return results


def format_key(query_key: str) -> str:
    """Render a query key for humans."""
    return " / ".join(query_key.split(KEY_SEPARATOR))
