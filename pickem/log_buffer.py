"""In-memory circular buffer log handler for the Activity Log and toasts."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
from typing import Optional

NOTICE_SUCCESS = "success"
NOTICE_ERROR = "error"


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    level: str
    logger: str
    message: str
    # "success" / "error" for records meant to be shown to the user.
    notice: Optional[str] = None


class BufferHandler(logging.Handler):
    """Stores the last *maxlen* log records in a deque for display."""

    def __init__(self, maxlen: int = 200) -> None:
        super().__init__()
        self._buffer: deque[LogEntry] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = LogEntry(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc)
                .strftime("%Y-%m-%d %H:%M:%S UTC"),
                level=record.levelname,
                logger=record.name,
                message=self.format(record),
                notice=getattr(record, "notice", None),
            )
            self._buffer.append(entry)
        except Exception:
            self.handleError(record)

    def entries(self, limit: int = 100, notices_only: bool = False) -> list[dict]:
        """Return the most recent *limit* entries (newest first)."""
        items = [e for e in self._buffer if e.notice] if notices_only else list(self._buffer)
        items = items[-limit:] if limit > 0 else []
        items.reverse()
        return [asdict(e) for e in items]

    def clear(self) -> None:
        self._buffer.clear()


# Module-level singleton
_handler: BufferHandler | None = None


def get_buffer_handler() -> BufferHandler:
    """Return (and lazily create) the singleton BufferHandler."""
    global _handler
    if _handler is None:
        _handler = BufferHandler(maxlen=200)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        _handler.setLevel(logging.INFO)
    return _handler


def install_buffer_handler() -> BufferHandler:
    """Attach the buffer handler to the app loggers that report activity."""
    handler = get_buffer_handler()

    target_loggers = [
        "pickem.main",
        "pickem.players",
        "pickem.picks.repository",
        "pickem.ingestion.sync",
        "pickem.ingestion.espn_client",
        "pickem.spreadsheet.workbook",
    ]
    for name in target_loggers:
        lg = logging.getLogger(name)
        if handler not in lg.handlers:
            lg.addHandler(handler)
        lg.setLevel(logging.DEBUG)

    return handler
