"""Root logger configuration for the CLI."""
from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Log records go to stderr so ``--json`` output on stdout stays parseable
err_console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> None:
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = RichHandler(console=err_console, show_path=verbose, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
    root.addHandler(handler)

    # aiohttp is chatty at DEBUG and adds nothing for a speed test
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
