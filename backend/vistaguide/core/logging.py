import logging
import sys

from vistaguide.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install one stream handler on the root logger.

    Safe to call more than once; the handler is replaced, not duplicated.
    """
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())
    for handler in list(root.handlers):
        if getattr(handler, "_vistaguide", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    handler._vistaguide = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    # urllib3 logs every connection attempt at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
