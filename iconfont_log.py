"""iconfontify logger.

Usage from any module::

    from iconfont_log import log

    log.info("cleaned %s", path.name)
    log.error("failed to clean %s: %s", path.name, exc)

Enable via environment variable::

    ICONFONTIFY_LOG=DEBUG python build_font.py   # all messages
    ICONFONTIFY_LOG=INFO  python build_font.py   # info and above
    ICONFONTIFY_LOG=1     python build_font.py   # alias for DEBUG
"""

import logging
import os

log = logging.getLogger("iconfontify")

# ANSI color codes
_COLORS = {
    "DEBUG": "\033[36m",    # Cyan
    "INFO": "\033[32m",     # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",    # Red
    "RESET": "\033[0m",
}

_ALIASES = {"1": "DEBUG", "0": "WARNING", "TRUE": "DEBUG", "FALSE": "WARNING"}


class ColoredFormatter(logging.Formatter):
    """Add colors to level names when the handler writes to a terminal."""

    def __init__(self, fmt, handler):
        super().__init__(fmt)
        self.handler = handler

    def format(self, record):
        stream = getattr(self.handler, "stream", None)
        if stream is not None and hasattr(stream, "isatty") and stream.isatty():
            record = logging.makeLogRecord(record.__dict__)
            color = _COLORS.get(record.levelname, "")
            record.levelname = f"{color}{record.levelname}{_COLORS['RESET']}"
        return super().format(record)


def _install_handler(level: int):
    log.setLevel(level)
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(ColoredFormatter("[iconfontify %(levelname)s] %(message)s", handler))
        log.addHandler(handler)


def configure_from_env(default: str | None = None) -> None:
    """Apply ICONFONTIFY_LOG, falling back to ``default`` when it is unset.

    Entry points pass ``default="INFO"`` so a plain build prints progress;
    library callers get no handler unless they ask for one.
    """
    level_str = os.environ.get("ICONFONTIFY_LOG", "").strip().upper() or (default or "")
    if not level_str:
        return
    level_str = _ALIASES.get(level_str, level_str)
    level = getattr(logging, level_str, None)
    if isinstance(level, int):
        _install_handler(level)


configure_from_env()
