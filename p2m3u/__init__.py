"""
p2m3u: Convert playlists of song metadata into relative-pathed M3U playlists.

This package provides:
- An incremental index of the local music library, cached between runs.
- Weighted matching of playlist entries (artist, album artist, album, title)
  against that index.
- CSV and Exportify playlist readers and an M3U writer.
"""

__version__ = "1.0.0"
