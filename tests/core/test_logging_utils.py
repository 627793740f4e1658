"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging

from readlater.core.logging_utils import (
    EnhancedJsonFormatter,
    generate_correlation_id,
    mask_secret,
    setup_json_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="readlater.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="integration_transition",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_groups_lifecycle_and_query_fields() -> None:
    formatter = EnhancedJsonFormatter(include_location=False, include_process_info=False)

    payload = json.loads(
        formatter.format(
            _record(
                correlation_id="abc123",
                integration_id="int-1",
                transition="disable",
                seq=4,
                ordering="task_first",
            )
        )
    )

    assert payload["message"] == "integration_transition"
    assert payload["correlation_id"] == "abc123"
    assert payload["integration"] == {"integration_id": "int-1", "transition": "disable"}
    assert payload["query"] == {"seq": 4}
    assert payload["extra"] == {"ordering": "task_first"}
    assert "module" not in payload


def test_correlation_ids_are_short_and_unique() -> None:
    ids = {generate_correlation_id() for _ in range(50)}

    assert len(ids) == 50
    assert all(len(cid) == 12 for cid in ids)


def test_mask_secret() -> None:
    assert mask_secret("abcdefgh") == "****efgh"
    assert mask_secret("abc") == "***"
    assert mask_secret(None) == ""


def test_stdlib_backend_writes_json(tmp_path) -> None:
    log_file = tmp_path / "readlater.log"
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_json_logging("INFO", use_loguru=False, log_file=str(log_file))
        logging.getLogger("readlater.test").info("sync_task_enqueued", extra={"task_name": "t1"})
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    lines = [json.loads(line) for line in log_file.read_text().splitlines()]
    entry = next(line for line in lines if line["message"] == "sync_task_enqueued")
    assert entry["integration"] == {"task_name": "t1"}
    assert logging.getLogger("httpx").level == logging.WARNING
