import pytest

from p2m3u import config as config_module
from p2m3u.config import ConverterConfig
from p2m3u.library import Library, Song


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the user's real config file and P2M3U_* variables out of tests."""
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "no-such-config.toml")
    for env_name in config_module.ENV_MAP.values():
        monkeypatch.delenv(env_name, raising=False)


@pytest.fixture
def converter_config():
    return ConverterConfig()


@pytest.fixture
def two_song_library():
    """Same artist and title on two albums; one FLAC, one MP3."""
    library = Library()
    library.insert(
        "a.flac",
        Song(filepath="/lib/a.flac", relpath="a.flac", artist="Band A", album="Album X", title="Song 1"),
    )
    library.insert(
        "b.mp3",
        Song(filepath="/lib/b.mp3", relpath="b.mp3", artist="Band A", album="Album Y", title="Song 1"),
    )
    return library
