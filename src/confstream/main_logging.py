"""Logging configuration for the confstream CLI."""
import json
import logging


class JsonFormatter(logging.Formatter):
    """Format each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(verbose: bool, quiet: bool = False, json_logs: bool = False) -> None:
    """Configure logging level and format.

    Args:
        verbose: If True, set DEBUG level.
        quiet: If True, set WARNING level. Otherwise INFO level is used.
        json_logs: If True, emit one JSON object per record instead of text.

    Logs go to stderr so that configuration updates on stdout stay parseable.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    handler = logging.StreamHandler()
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    # Per-request logs from httpx are noise next to ours
    logging.getLogger("httpx").setLevel(logging.WARNING)
