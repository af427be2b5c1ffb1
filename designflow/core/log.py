"""Process-wide logging setup."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", log_dir: str | Path | None = None) -> logging.Logger:
    lvl = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("designflow")
    logger.setLevel(lvl)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(lvl)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if log_dir:
        path = Path(log_dir).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path / "designflow.log", encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logger
