"""
Logging configuration for the command-line tool.

Log records go to stderr so stdout stays reserved for the values the
operator asked for (user names, generated passwords).
"""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def debug_from_env() -> bool:
    return os.getenv("IDMANAGER_DEBUG", "false").lower() in ("true", "1", "yes")


def setup_logging(verbose: bool = False) -> None:
    """
    Configure the root logger once.

    - default: WARNING and above
    - verbose (or IDMANAGER_DEBUG): DEBUG, SQLAlchemy engine at INFO
    """
    level = logging.DEBUG if (verbose or debug_from_env()) else logging.WARNING

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # SQL echo is only useful when debugging.
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level == logging.DEBUG else logging.WARNING
    )
