"""
Main entry point for the p2m3u application.

This file allows the package to be executed as a script, e.g., by running `python -m p2m3u`.
It imports the Typer application object from the `cli` module and invokes it.
"""

from .cli import app

if __name__ == "__main__":
    app()
