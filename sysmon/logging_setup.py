"""Log output configuration."""
import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(debug: bool = False) -> logging.Logger:
    """Attach a RichHandler to the ``sysmon`` logger.

    Without debug only warnings and errors are shown.
    """
    root = logging.getLogger("sysmon")
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=debug,
        rich_tracebacks=debug,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    root.propagate = False
    return root
