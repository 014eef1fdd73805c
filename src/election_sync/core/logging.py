"""Loguru setup for the sync CLI.

Per-item narration goes to stderr as plain text.  Records bound with
``json_output=True`` (the end-of-run summaries) are emitted as JSON lines
instead, so they can be picked up by a log shipper without parsing prose.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
_LOG_FILE = "election-sync.log"


def _wants_json(record: dict) -> bool:
    return bool(record["extra"].get("json_output", False))


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Replace every loguru sink with the sync tool's sinks.

    Safe to call more than once: the CLI calls it with defaults at startup
    and again once settings have been loaded.

    Args:
        log_level: Minimum level, case-insensitive.
        log_dir: When set, all records are also appended to
            ``election-sync.log`` there (rotated daily, kept for a week).
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, filter=lambda record: not _wants_json(record))
    logger.add(sys.stderr, level=level, serialize=True, filter=_wants_json)

    if not log_dir:
        return
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    logger.add(directory / _LOG_FILE, level=level, format=_LOG_FORMAT, rotation="24h", retention="7 days")
