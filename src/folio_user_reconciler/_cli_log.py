"""Logging for the command line interface."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def initialize(log_directory: Path, console_level: int, file_level: int) -> Path:
    """Logs to stderr and to a new file in log_directory.

    :returns the path of the log file
    """
    log_directory.mkdir(parents=True, exist_ok=True)
    started = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    log_file = log_directory / f"fureco_{started}.log"

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(max(logging.DEBUG, console_level))
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    file = logging.FileHandler(log_file, encoding="utf-8")
    file.setLevel(max(logging.DEBUG, file_level))
    file.setFormatter(logging.Formatter(_FORMAT))

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    root.setLevel(min(console.level, file.level))
    root.addHandler(console)
    root.addHandler(file)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(logging.WARNING, root.level))

    return log_file
