# src/task_monitor/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - allow task_monitor logs
    - matrix-nio only from `nio_level` (WARNING when Matrix delivers notifications)
    - everything else, captured Python warnings included, only ERROR+
    """

    def __init__(self, nio_level: int = logging.ERROR) -> None:
        super().__init__()
        self._nio_level = nio_level

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("task_monitor."):
            return True

        if name == "nio" or name.startswith("nio."):
            return record.levelno >= self._nio_level

        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/task_monitor",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    nio_console_level: int = logging.ERROR,
) -> None:
    """
    Configure logging with:
    - Console handler: readable + filtered
    - File handler: full logs for debugging

    Call this ONCE, very early (before first logger.info).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "monitor.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter(nio_console_level))
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
