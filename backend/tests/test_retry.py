"""
Bounded retry around stock row writes.
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from stockroom.errors import WriteConflict
from stockroom.services.concurrency import run_with_retry


class TestRunWithRetry:

    def test_stale_row_is_retried(self, app):
        calls = []

        def op():
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("version mismatch")
            return "done"

        assert run_with_retry(op, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_exhausted_stale_retries_become_write_conflict(self, app):
        def op():
            raise StaleDataError("version mismatch")

        with pytest.raises(WriteConflict) as exc_info:
            run_with_retry(op, attempts=2, backoff_base=0)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {"attempts": 2}

    def test_exhausted_operational_error_propagates(self, app):
        def op():
            raise OperationalError("UPDATE stock_items", {}, Exception("database is locked"))

        with pytest.raises(OperationalError):
            run_with_retry(op, attempts=2, backoff_base=0)

    def test_other_errors_are_not_retried(self, app):
        calls = []

        def op():
            calls.append(1)
            raise KeyError("boom")

        with pytest.raises(KeyError):
            run_with_retry(op, attempts=5, backoff_base=0)
        assert len(calls) == 1
