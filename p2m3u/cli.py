from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.markup import escape

from .config import ConfigError, ConverterConfig, console, load_config
from .database import load_snapshot, refresh_library, save_snapshot
from .library import Library
from .logging_setup import setup_logging
from .matching import match_keys
from .playlist import (
    INPUT_TYPES,
    OUTPUT_TYPES,
    PlaylistError,
    detect_type,
    get_playlist_keys,
    write_m3u,
    write_missing,
)

app = typer.Typer(
    help="Take a playlist of song metadata and convert it to a relative-pathed playlist."
)
config_app = typer.Typer(help="Show configuration")
app.add_typer(config_app, name="config")


def _effective_config(config_file: Optional[Path], search_dirs: Optional[List[Path]], db_file: Optional[Path]) -> ConverterConfig:
    cfg = load_config(config_file)
    if search_dirs:
        cfg = cfg.with_extra_paths(search_dirs)
    if db_file is not None:
        cfg = replace(cfg, db_path=db_file.expanduser())
    if not cfg.paths:
        raise ConfigError("No search paths specified! Unable to continue.")
    return cfg


def build_library(cfg: ConverterConfig) -> Library:
    """Load the snapshot, scan every search root for new files and save it back."""
    library = load_snapshot(cfg.db_path, cfg.split_character, cfg.special_cases)
    if library is None:
        library = Library(split_character=cfg.split_character, special_cases=cfg.special_cases)

    console.print("[cyan]Building database...[/cyan]")
    for path in cfg.paths:
        refresh_library(library, path)

    console.print("[cyan]Writing database...[/cyan]")
    save_snapshot(library, cfg.db_path)
    return library


@app.command()
def convert(
    playlist: Path = typer.Argument(..., help="Input playlist"),
    output: Path = typer.Argument(..., help="Output file"),
    search_dirs: Optional[List[Path]] = typer.Argument(None, help="Directories to search"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file to use"),
    db_file: Optional[Path] = typer.Option(None, "--db-file", help="Custom db file"),
    output_missing: Optional[Path] = typer.Option(None, "--output-missing", help="File to output missing songs"),
    input_type: Optional[str] = typer.Option(None, "--input-type", "-i", help="Mode to parse input file (CSV, EXPORTIFY)"),
    output_type: Optional[str] = typer.Option(None, "--output-type", "-o", help="Mode to write output file (M3U)"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Verbosity counter"),
):
    """
    Match every playlist entry against the local library and write the matches.

    The library index is cached in the db file; only files not seen on a
    previous run have their tags read.
    """
    setup_logging(verbose)
    try:
        cfg = _effective_config(config_file, search_dirs, db_file)
        in_kind = detect_type(playlist, input_type, INPUT_TYPES)
        detect_type(output, output_type, OUTPUT_TYPES)

        library = build_library(cfg)

        console.print("[cyan]Reading input playlist...[/cyan]")
        keys = get_playlist_keys(playlist, in_kind, cfg.format)

        console.print("[cyan]Matching playlist items...[/cyan]")
        songs = match_keys(library, keys, cfg)

        if output_missing is not None:
            write_missing(keys, songs, output_missing)

        console.print("[cyan]Writing output playlist...[/cyan]")
        written = write_m3u(songs, output)
    except (ConfigError, PlaylistError, OSError) as e:
        console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(
        f"[bold green]{written} matched[/bold green], [bold red]{len(keys) - written} unmatched[/bold red]"
    )


@app.command()
def index(
    search_dirs: Optional[List[Path]] = typer.Argument(None, help="Directories to search"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file to use"),
    db_file: Optional[Path] = typer.Option(None, "--db-file", help="Custom db file"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Verbosity counter"),
):
    """Scan the search paths and update the db file without matching anything."""
    setup_logging(verbose)
    try:
        cfg = _effective_config(config_file, search_dirs, db_file)
        library = build_library(cfg)
    except (ConfigError, OSError) as e:
        console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)
    console.print(f"[bold green]✓ Library index contains {len(library)} songs.[/bold green]")


@config_app.command(name="show")
def config_show(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file to use"),
):
    """Show current configuration values."""
    try:
        cfg = load_config(config_file)
    except ConfigError as e:
        console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)
    rows = {
        "Paths": [str(p) for p in cfg.paths],
        "Format": "/".join(cfg.format),
        "MinimumMatchAllowance": cfg.minimum_match_allowance,
        "FiletypeBonuses": cfg.filetype_bonuses,
        "SplitCharacter": cfg.split_character,
        "SpecialCases": sorted(cfg.special_cases),
        "DbPath": str(cfg.db_path),
    }
    for k, v in rows.items():
        console.print(f"[cyan]{k}[/cyan]=[white]{escape(repr(v))}[/white]")
