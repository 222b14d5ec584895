"""Structured JSON logging for approval engine events."""

from __future__ import annotations

import json
import logging
import logging.handlers
from collections.abc import Iterable, MutableMapping
from datetime import datetime, timezone
from queue import Full, Queue
from typing import Any, override
from uuid import uuid4

LOGGER = logging.getLogger(__name__)

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents.

    Fields passed through ``extra`` (``subject_id``, ``signer``, ``reason``
    and so on) are collected under ``context``.
    """

    def __init__(self, *, default_trace_id: str | None = None) -> None:
        super().__init__()
        self._default_trace_id = default_trace_id

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and key != "trace_id"
        }
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None) or self._default_trace_id,
            "context": context,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, sort_keys=True)


class BoundedQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that drops records instead of blocking request handlers."""

    @override
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except Full:
            self.handleError(record)

    @override
    def handleError(self, record: logging.LogRecord) -> None:
        return


class SubjectLoggerAdapter(logging.LoggerAdapter[logging.Logger]):
    """Attach the subject identifier to every record emitted through it."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def subject_logger(logger: logging.Logger, subject_id: str) -> SubjectLoggerAdapter:
    """Return an adapter binding ``subject_id`` onto ``logger``."""

    return SubjectLoggerAdapter(logger, {"subject_id": subject_id})


def configure_structured_logging(
    logger: logging.Logger,
    *,
    trace_id: str | None = None,
    level: int = logging.INFO,
    queue_size: int = 1024,
) -> logging.handlers.QueueListener:
    """Configure ``logger`` to emit JSON through a background queue listener.

    Args:
        logger: Target logger to configure.
        trace_id: Static trace identifier applied to records that do not set
            one through ``extra``. A random identifier is used when omitted.
        level: Logging verbosity level.
        queue_size: Maximum number of buffered records before dropping.

    Returns:
        The started queue listener; stop it with :func:`shutdown_listeners`.
    """

    logger.setLevel(level)
    record_queue: Queue[logging.LogRecord] = Queue(maxsize=queue_size)
    logger.addHandler(BoundedQueueHandler(record_queue))

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter(default_trace_id=trace_id or str(uuid4())))

    listener = logging.handlers.QueueListener(record_queue, stream_handler)
    listener.start()
    return listener


def shutdown_listeners(listeners: Iterable[logging.handlers.QueueListener]) -> None:
    """Stop queue listeners, logging rather than raising on failure."""

    for listener in listeners:
        try:
            listener.stop()
        except Exception as exc:  # pragma: no cover - best effort cleanup
            LOGGER.warning("Failed to stop logging listener", exc_info=exc)
