import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "INFO", console: Optional[Console] = None):
    """
    Configures console logging for the daemon.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(console=console or Console(stderr=True), show_path=False),
        ],
        force=True,
    )
    logging.getLogger(__name__).debug("logging configured at %s", level)
