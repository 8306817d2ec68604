import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s: %(message)s"


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    app_name: str = "DaveSaveEd",
) -> Optional[Path]:
    """Route log records to stdout and, if ``log_dir`` is given, to a timestamped file.

    Returns the log file path when file logging is enabled.
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S")
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    # Remove existing handlers to avoid duplicates in repeated test runs
    for h in list(root.handlers):
        root.removeHandler(h)
        if isinstance(h, logging.FileHandler):
            h.close()
    root.addHandler(handler)

    if log_dir is None:
        return None
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"{app_name}_log_{datetime.now():%Y%m%d_%H%M%S}.txt"
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(file_handler)
    logging.getLogger(__name__).info("File logging enabled. Log will be written to: %s", log_path)
    return log_path
