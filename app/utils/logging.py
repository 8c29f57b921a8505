from __future__ import annotations

import logging
import sys


def _coerce_level(level: str) -> int:
    value = logging.getLevelName(str(level or "INFO").upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str = "INFO") -> None:
    lvl = _coerce_level(level)
    root = logging.getLogger()
    root.setLevel(lvl)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(lvl)
    # Request and trace loggers already emit one JSON object per line.
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.handlers.clear()
    root.addHandler(handler)
