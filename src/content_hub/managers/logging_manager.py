"""
# Logging Manager

Central logger factory for the Content Hub backend. Every module obtains its logger here so that
output format, level and prefixes stay consistent across the repository, services and routes.

## Usage

```python
from content_hub.managers.logging_manager import get_logger

logger = get_logger(prefix="[Content Repository]")
logger.info("Created brief %s for client %s", brief_id, client_id)
# 2026-01-01 12:00:00,000 | INFO | content_hub | [Content Repository] Created brief ...
```

Prefixes tag a component without creating a new logger hierarchy, which keeps level configuration
in one place (`configure_logging()`).
"""

import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple

DEFAULT_LOGGER_NAME = "content_hub"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


class PrefixedLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that prepends a fixed component prefix to every message."""

    def __init__(self, logger: logging.Logger, prefix: str = ""):
        super().__init__(logger, {})
        self.prefix = prefix

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        if self.prefix:
            return f"{self.prefix} {msg}", kwargs
        return msg, kwargs


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install the stream handler on the package logger.

    Safe to call more than once; only the level is updated after the first call.

    Args:
        level (`Optional[str]`): Level name such as `"INFO"` or `"DEBUG"`. Defaults to `INFO`.
    """
    global _configured

    root = logging.getLogger(DEFAULT_LOGGER_NAME)
    root.setLevel((level or "INFO").upper())

    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.propagate = False
        _configured = True


def get_logger(name: str = DEFAULT_LOGGER_NAME, prefix: str = "") -> PrefixedLoggerAdapter:
    """
    Return a prefixed logger for a component.

    Args:
        name (`str`): Logger name. Child names (`content_hub.x`) inherit the package configuration.
        prefix (`str`): Text prepended to every message, e.g. `"[Workflow Client]"`.

    Returns:
        `PrefixedLoggerAdapter`: Adapter exposing the standard logging methods.
    """
    return PrefixedLoggerAdapter(logging.getLogger(name), prefix)
