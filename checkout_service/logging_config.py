"""
logging_config.py — Logging Setup for the Checkout Service

Called once when the API starts (see main.create_app). Every module logs
through `get_logger(__name__)`; workflow code prefixes its lines with
`[Order: <id>]` so a single order can be followed through the log file.

Output:
    • stdout, for `docker logs` / uvicorn consoles
    • LOG_FILE, unless it is set to an empty string
"""

import logging
import sys

from .config import get_settings

LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s'

# Client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(log_file=None, level=None):
    """
    Installs the root handlers.

    Args:
        log_file (str | None): Log file path; defaults to the LOG_FILE setting.
        level (str | None): Root level name; defaults to the LOG_LEVEL setting.
    """
    settings = get_settings()
    log_file = settings.log_file if log_file is None else log_file

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name):
    """Module logger; handlers and format come from setup_logging()."""
    return logging.getLogger(name)
