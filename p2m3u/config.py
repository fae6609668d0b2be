#!/usr/bin/env python3
"""
Per-run configuration for p2m3u with env var overrides.
- User config file: ~/.config/p2m3u/config.toml (or --config PATH)
- Precedence: environment > config file > built-in defaults
- Keys use the TOML spelling:
  - Paths: list of search roots
  - Format: list of field tags (or "Artist/Album/Title")
  - MinimumMatchAllowance: float
  - FiletypeBonuses: table of uppercase extension -> float
  - SplitCharacter: single character
  - SpecialCases: list of substrings never split on
  - DbPath: snapshot file
"""
from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from rich.console import Console

logger = logging.getLogger(__name__)

# Paths
CONFIG_DIR = Path.home() / ".config" / "p2m3u"
CONFIG_FILE = CONFIG_DIR / "config.toml"

console = Console()

# Field tags usable in Format
ALBUM_ARTIST = "AlbumArtist"
ALBUM = "Album"
ARTIST = "Artist"
TITLE = "Title"
TRACK = "Track"
FIELD_TAGS = (ARTIST, ALBUM_ARTIST, ALBUM, TITLE, TRACK)

# Built-in defaults
DEFAULTS: Dict[str, Any] = {
    "Paths": [],
    "Format": [ARTIST, ALBUM, TITLE],
    "MinimumMatchAllowance": 0.9,
    "FiletypeBonuses": {"FLAC": 0.2, "M4A": 0.1},
    "SplitCharacter": ",",
    "SpecialCases": [],
    "DbPath": str(CONFIG_DIR / "library.json.gz"),
}

# Environment variable mapping
ENV_MAP = {
    "Paths": "P2M3U_PATHS",  # comma-separated list
    "DbPath": "P2M3U_DB_PATH",
    "MinimumMatchAllowance": "P2M3U_MINIMUM_MATCH_ALLOWANCE",
}


class ConfigError(ValueError):
    """Raised for malformed or unusable configuration."""


@dataclass(frozen=True)
class ConverterConfig:
    paths: tuple[Path, ...] = ()
    format: tuple[str, ...] = (ARTIST, ALBUM, TITLE)
    minimum_match_allowance: float = 0.9
    filetype_bonuses: Dict[str, float] = field(default_factory=lambda: {"FLAC": 0.2, "M4A": 0.1})
    split_character: str = ","
    special_cases: frozenset[str] = frozenset()
    db_path: Path = Path(DEFAULTS["DbPath"])

    def with_extra_paths(self, extra: Iterable[str | Path]) -> "ConverterConfig":
        """Return a copy with command-line search roots appended."""
        return replace(self, paths=self.paths + tuple(Path(p).expanduser() for p in extra))

    def bonus_for(self, extension: str) -> float:
        return self.filetype_bonuses.get(extension.upper(), 0.0)


def _load_user_file(path: Optional[Path]) -> Dict[str, Any]:
    """Read the TOML config; a missing explicit file falls back to defaults."""
    if path is None:
        if not CONFIG_FILE.exists():
            return {}
        path = CONFIG_FILE
    elif not path.exists():
        logger.error("Specified config file does not exist: %s. Using default configuration", path)
        return {}

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e
    except OSError as e:
        logger.error("Error reading config file %s: %s. Using default configuration", path, e)
        return {}

    unknown = set(data) - set(DEFAULTS)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))
    return {k: v for k, v in data.items() if k in DEFAULTS}


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(cfg)
    for key, env_name in ENV_MAP.items():
        val = os.getenv(env_name)
        if val is None:
            continue
        if key == "Paths":
            out[key] = [s for s in (v.strip() for v in val.split(",")) if s]
        else:
            out[key] = val
    return out


def _parse_format(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, str):
        tags = [t.strip() for t in raw.split("/") if t.strip()]
    elif isinstance(raw, list):
        tags = [str(t).strip() for t in raw]
    else:
        raise ConfigError(f"Format must be a list or a '/'-separated string, got {raw!r}")
    if not tags:
        raise ConfigError("Format must name at least one field")
    bad = [t for t in tags if t not in FIELD_TAGS]
    if bad:
        raise ConfigError(f"Unknown format field(s) {bad}; expected one of {list(FIELD_TAGS)}")
    return tuple(tags)


def _coerce_types(eff: Dict[str, Any]) -> ConverterConfig:
    paths = eff.get("Paths") or []
    if isinstance(paths, str):
        paths = [paths]
    if not isinstance(paths, list):
        raise ConfigError(f"Paths must be a list, got {paths!r}")

    try:
        allowance = float(eff["MinimumMatchAllowance"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"MinimumMatchAllowance must be a number: {e}") from e

    bonuses = eff.get("FiletypeBonuses") or {}
    if not isinstance(bonuses, dict):
        raise ConfigError(f"FiletypeBonuses must be a table, got {bonuses!r}")
    try:
        bonuses = {str(k).upper(): float(v) for k, v in bonuses.items()}
    except (TypeError, ValueError) as e:
        raise ConfigError(f"FiletypeBonuses values must be numbers: {e}") from e

    split_char = str(eff["SplitCharacter"])
    if len(split_char) != 1:
        raise ConfigError(f"SplitCharacter must be exactly one character, got {split_char!r}")

    special = eff.get("SpecialCases") or []
    if not isinstance(special, list):
        raise ConfigError(f"SpecialCases must be a list, got {special!r}")

    return ConverterConfig(
        paths=tuple(Path(str(p)).expanduser() for p in paths),
        format=_parse_format(eff["Format"]),
        minimum_match_allowance=allowance,
        filetype_bonuses=bonuses,
        split_character=split_char,
        special_cases=frozenset(str(s) for s in special if str(s)),
        db_path=Path(str(eff["DbPath"])).expanduser(),
    )


def load_config(path: Optional[str | Path] = None) -> ConverterConfig:
    """Load effective config: env > file > defaults, coerced to expected types."""
    file_cfg = _load_user_file(Path(path).expanduser() if path else None)
    merged = DEFAULTS | file_cfg
    merged = _apply_env_overrides(merged)
    return _coerce_types(merged)
