from __future__ import annotations

import logging
from uuid import uuid4

from rbac_api.common.logging import (
    ConsoleLogFormatter,
    bind_request_context,
    clear_request_context,
    log_context,
)


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="rbac_api.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_log_context_stringifies_ids() -> None:
    tenant_id = uuid4()

    ctx = log_context(tenant_id=tenant_id, role_id=None, added=2)

    assert ctx == {"tenant_id": str(tenant_id), "added": 2}


def test_formatter_renders_extras_and_correlation_id() -> None:
    formatter = ConsoleLogFormatter()
    bind_request_context("req-123")
    try:
        line = formatter.format(_record("rbac.role.create", role_name="Host", note=None))
    finally:
        clear_request_context()

    assert "INFO " in line
    assert "rbac_api.test [cid=req-123] rbac.role.create" in line
    assert "role_name=Host" in line
    assert "note=null" in line


def test_formatter_uses_dash_without_correlation_id() -> None:
    line = ConsoleLogFormatter().format(_record("app.startup"))

    assert "[cid=-]" in line


def test_batch_summary_extras_reach_the_record(caplog) -> None:
    logger = logging.getLogger("rbac_api.test.batch")
    extra = log_context(created_count=1, updated_count=0, deleted_count=2, error_count=0)

    with caplog.at_level(logging.INFO, logger="rbac_api.test.batch"):
        logger.info("rbac.permission.batch_save", extra=extra)

    record = caplog.records[-1]
    assert record.created_count == 1
    assert record.deleted_count == 2
    assert "created_count=1" in ConsoleLogFormatter().format(record)
