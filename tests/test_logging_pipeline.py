"""Tests for structured logging pipeline utilities."""

from __future__ import annotations

import io
import json
import logging
import logging.handlers
import sys
from queue import Queue
from typing import Any, cast

from quorum_sign import logging_pipeline


def _capture(listener: logging.handlers.QueueListener) -> io.StringIO:
    stream_handler = cast(logging.StreamHandler[Any], listener.handlers[0])
    buffer = io.StringIO()
    stream_handler.setStream(buffer)
    return buffer


def test_configure_structured_logging_emits_json() -> None:
    """Records flow through the queue as JSON lines."""
    logger = logging.getLogger("quorum-sign-test.json")
    listener = logging_pipeline.configure_structured_logging(
        logger, trace_id="trace-123", level=logging.INFO
    )
    buffer = _capture(listener)

    logger.info("accepted", extra={"signer": "0xabc", "signature_count": 2})
    logging_pipeline.shutdown_listeners([listener])

    payload = json.loads(buffer.getvalue().strip())
    assert payload["message"] == "accepted"
    assert payload["trace_id"] == "trace-123"
    assert payload["level"] == "INFO"
    assert payload["context"] == {"signer": "0xabc", "signature_count": 2}


def test_subject_logger_binds_subject_id() -> None:
    """The adapter adds the subject id to every record."""
    logger = logging.getLogger("quorum-sign-test.subject")
    listener = logging_pipeline.configure_structured_logging(logger)
    buffer = _capture(listener)

    adapter = logging_pipeline.subject_logger(logger, "proj-9")
    adapter.warning("rejected", extra={"reason": "unauthorized"})
    logging_pipeline.shutdown_listeners([listener])

    payload = json.loads(buffer.getvalue().strip())
    assert payload["context"] == {"subject_id": "proj-9", "reason": "unauthorized"}
    assert payload["trace_id"]


def test_exceptions_are_rendered() -> None:
    """Exception info is included in the JSON payload."""
    formatter = logging_pipeline.JsonFormatter(default_trace_id="t")
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
    payload = json.loads(formatter.format(record))
    assert "ValueError: boom" in payload["exception"]
    assert payload["trace_id"] == "t"


def test_bounded_queue_drops_when_full() -> None:
    """A full queue drops records instead of blocking."""
    handler = logging_pipeline.BoundedQueueHandler(Queue(maxsize=1))
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "m", None, None)
    handler.enqueue(record)
    handler.enqueue(record)
    assert handler.queue.qsize() == 1
