"""Unit tests for query timing and failure logging."""

import logging

import pytest
from services.stats_service.services.visit_store import timed_query
from sqlalchemy import text


class FailingSession:
    def __init__(self, error: Exception):
        self.error = error

    async def execute(self, statement):
        raise self.error


def _errors(caplog):
    return [r for r in caplog.records if r.levelno >= logging.ERROR]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unexpected_failure_is_logged_as_error(caplog):
    caplog.set_level(logging.DEBUG)

    with pytest.raises(RuntimeError):
        await timed_query(FailingSession(RuntimeError("boom")), "broken", text("SELECT 1"))

    assert len(_errors(caplog)) == 1
    assert "Query [broken] failed" in _errors(caplog)[0].getMessage()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expected_failure_is_logged_at_debug(caplog):
    caplog.set_level(logging.DEBUG)

    with pytest.raises(LookupError):
        await timed_query(
            FailingSession(LookupError("gone")),
            "optional_view",
            text("SELECT 1"),
            is_expected_error=lambda exc: isinstance(exc, LookupError),
        )

    assert _errors(caplog) == []
    assert any(
        r.levelno == logging.DEBUG and "optional_view" in r.getMessage()
        for r in caplog.records
    )
