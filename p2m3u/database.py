"""
Persists the library index between runs and keeps it up to date.

This module handles the snapshot file (a gzip-compressed JSON document holding
every indexed song and the identifier counter) and the incremental scan of the
search roots. Tag reading runs on a ThreadPoolExecutor; insertion into the
library stays on the calling thread so the index only ever has one writer.
"""

import concurrent.futures
import gzip
import json
import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Generator, Iterable, Optional, Union

from rich.progress import Progress

from .config import console
from .library import Library, Song
from .metadata import read_song

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

SUPPORTED_FILETYPES = {"OGG", "MP3", "M4A", "FLAC", "WAV", "AIFF"}


class SnapshotError(OSError):
    """Raised when the snapshot file cannot be read or written."""


################################################################################
# SNAPSHOT
################################################################################


def load_snapshot(
    db_path: Union[str, Path],
    split_character: str = ",",
    special_cases: Iterable[str] = (),
) -> Optional[Library]:
    """
    Load a library from its snapshot file.

    Secondary indices are rebuilt with the given split settings, so a changed
    SplitCharacter or SpecialCases takes effect without rescanning.

    Returns:
        Optional[Library]: None if no snapshot exists yet.

    Raises:
        SnapshotError: If the file exists but cannot be read or decoded.
    """
    path = Path(db_path).expanduser()
    if not path.exists():
        logger.info("No snapshot at %s, starting with an empty library", path)
        return None

    try:
        with gzip.open(path, "rt", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, EOFError, ValueError) as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e

    if not isinstance(data, dict) or data.get("version") != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot format in {path}")

    try:
        songs = {int(k): Song.from_dict(v) for k, v in data["songs"].items()}
        next_id = int(data["next_id"])
        library = Library.from_songs(songs, next_id, split_character, special_cases)
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"Corrupt snapshot {path}: {e}") from e

    logger.info("Loaded %d songs from %s", len(library), path)
    return library


def save_snapshot(library: Library, db_path: Union[str, Path]) -> None:
    """
    Write the library to its snapshot file, replacing it atomically.

    Raises:
        SnapshotError: If the file or its directory cannot be written.
    """
    path = Path(db_path).expanduser()
    payload = {
        "version": SNAPSHOT_VERSION,
        "next_id": library.next_id,
        "songs": {str(song_id): song.to_dict() for song_id, song in library},
    }

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as raw, gzip.GzipFile(fileobj=raw, mode="wb") as gz:
                gz.write(json.dumps(payload, ensure_ascii=False).encode("utf-8"))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise SnapshotError(f"Cannot write snapshot {path}: {e}") from e

    logger.info("Saved %d songs to %s", len(library), path)


################################################################################
# LIBRARY SCAN
################################################################################


def scan_audio_files(library_dir: Path) -> Generator[Path, None, None]:
    """
    Walks a directory for files with a supported audio extension.

    Directories and files are visited in sorted order so identifiers are
    assigned deterministically.

    Raises:
        OSError: If library_dir does not exist or is not a directory.
    """
    if not library_dir.exists():
        raise OSError(f"Library directory does not exist: {library_dir}")
    if not library_dir.is_dir():
        raise OSError(f"Library path is not a directory: {library_dir}")

    def _raise(err: OSError) -> None:
        raise err

    for root, dirs, files in os.walk(library_dir, onerror=_raise):
        dirs.sort()
        for name in sorted(files):
            suffix = Path(name).suffix
            if suffix and suffix[1:].upper() in SUPPORTED_FILETYPES:
                yield Path(root) / name


def relative_key(library_dir: Path, file_path: Path) -> str:
    """Path index key: the root's base name followed by the path below it."""
    return f"{library_dir.name}/{file_path.relative_to(library_dir).as_posix()}"


def refresh_library(library: Library, library_dir: Union[str, Path], workers: Optional[int] = None) -> int:
    """
    Index every audio file below `library_dir` that the library has not seen.

    Files already present in the path index are not read again. Any tag read
    failure aborts the scan.

    Returns:
        int: Number of songs added.

    Raises:
        OSError: If the directory is missing or a file's tags cannot be read.
    """
    # Keep symlinked roots under the name they were given
    root = Path(library_dir).expanduser().absolute()
    console.print(f"[cyan]Reading[/] {root}")

    pending: list[tuple[Path, str]] = []
    for path in scan_audio_files(root):
        key = relative_key(root, path)
        # Only read tags for files not already loaded from the snapshot
        if not library.contains(key):
            pending.append((path, key))
    if not pending:
        console.print("[green]No new files found.[/green]")
        return 0

    songs: dict[str, Song] = {}
    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("[green]Indexing tracks:", total=len(pending))
        with ThreadPoolExecutor(max_workers=workers or os.cpu_count()) as executor:
            futures = {executor.submit(read_song, path, key): key for path, key in pending}
            try:
                for future in concurrent.futures.as_completed(futures):
                    songs[futures[future]] = future.result()
                    progress.update(task, advance=1)
            except Exception:
                # Fail fast: drop reads that have not started yet
                executor.shutdown(wait=False, cancel_futures=True)
                raise

    # Insert in walk order, independent of completion order
    for _, key in pending:
        library.insert(key, songs[key])

    console.print(f"[green]Indexed {len(pending)} new files from {root.name}.[/green]")
    return len(pending)
