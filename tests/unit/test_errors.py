"""Tests for error classification."""

import pytest

from src.core.db_client import DatabaseError, RecordNotFoundError
from src.core.errors import (
    ErrorCategory,
    ErrorCode,
    ErrorSeverity,
    classify_error,
    classify_error_with_response,
)


@pytest.mark.parametrize(
    ("exception", "category"),
    [
        (PermissionError("Task t1 does not belong to bob@example.com"), ErrorCategory.PERMISSION_DENIED),
        (RecordNotFoundError("Record not found in tasks: t1"), ErrorCategory.NOT_FOUND),
        (KeyError("Task not found: t1"), ErrorCategory.NOT_FOUND),
        (DatabaseError("disk I/O error"), ErrorCategory.UNKNOWN),
        (Exception("boom"), ErrorCategory.UNKNOWN),
    ],
)
def test_classify_error(exception: Exception, category: ErrorCategory) -> None:
    assert classify_error(exception) is category


def test_permission_denied_response() -> None:
    response = classify_error_with_response(PermissionError("Comment c1 does not belong to bob@example.com"))

    assert response.code == ErrorCode.ERR_PERMISSION_DENIED
    assert response.severity is ErrorSeverity.MEDIUM
    assert "permission" in response.message


def test_not_found_response() -> None:
    response = classify_error_with_response(KeyError("Task not found: t1"))

    assert response.code == ErrorCode.ERR_NOT_FOUND
    assert response.severity is ErrorSeverity.LOW


def test_unknown_error_response() -> None:
    response = classify_error_with_response(RuntimeError("weird"))

    assert response.code == ErrorCode.ERR_UNKNOWN
    assert response.suggestion
