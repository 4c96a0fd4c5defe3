"""Loggers for the catalog service, all under the ``catalog`` namespace."""
import logging
import os
import sys
from typing import Optional

ROOT = "catalog"
_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _configure(root: logging.Logger) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    root.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return ``catalog.<name>``, installing the stdout handler on first use."""
    root = logging.getLogger(ROOT)
    if not root.handlers:
        _configure(root)
    return logging.getLogger(f"{ROOT}.{name}") if name else root
