import logging

from rich.logging import RichHandler

from .config import console

LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def setup_logging(verbosity: int = 0) -> None:
    """Route log records through rich; each -v lowers the level one step."""
    level = LEVELS[max(0, min(verbosity, len(LEVELS) - 1))]
    handler = RichHandler(console=console, rich_tracebacks=False, markup=False, show_path=verbosity > 1)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)
