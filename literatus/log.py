"""Logging setup for the literatus CLI and HTTP backend.

Call ``setup_logging`` once from ``cli.main()``.  It configures the
``"literatus"`` package logger and, so that request logs share one format and
one file, the ``"uvicorn"`` logger family too (the ``serve`` command starts
uvicorn with ``log_config=None`` so these handlers are kept).  Modules obtain
a child logger via ``logging.getLogger(__name__)``.
"""

import logging
import sys
from pathlib import Path

_FMT = "%(asctime)s  %(levelname)-7s [%(name)s] %(message)s"
_DATE = "%H:%M:%S"

_MANAGED_LOGGERS = ("literatus", "uvicorn")


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure the ``literatus`` and ``uvicorn`` loggers.

    Args:
        verbose:  If True, set the ``literatus`` level to DEBUG (graph sizes,
                  prompt sizes).  Default is INFO.  uvicorn stays at INFO.
        log_file: If provided, also write to this file.  Parent directories
                  are created automatically.

    Calling this function a second time (e.g., in tests) is safe: existing
    handlers are cleared before new ones are added.
    """
    fmt = logging.Formatter(_FMT, datefmt=_DATE)

    handlers: list[logging.Handler] = []
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    handlers.append(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        handlers.append(fh)

    for name in _MANAGED_LOGGERS:
        logger = logging.getLogger(name)
        for old in logger.handlers[:]:
            old.close()
            logger.removeHandler(old)
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("literatus").setLevel(level)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
