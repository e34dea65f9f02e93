"""
core/errors.py 테스트

오류 코드, 응답 변환, 저장소 예외 변환
"""

import logging
import sqlite3

import pytest

from core.errors import (
    ConflictError,
    ErrorCodes,
    InternalError,
    LedgerError,
    NotFoundError,
    TransactionTimeoutError,
    ValidationError,
    not_found,
    storage_errors,
)


class TestErrorCodes:
    """오류 클래스별 코드"""

    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (ValidationError("x"), ErrorCodes.VALIDATION_ERROR),
            (NotFoundError("x"), ErrorCodes.NOT_FOUND),
            (ConflictError("x"), ErrorCodes.DUPLICATE_ENTRY),
            (InternalError(), ErrorCodes.INTERNAL_ERROR),
            (TransactionTimeoutError(), ErrorCodes.TIMEOUT),
        ],
    )
    def test_default_codes(self, error: LedgerError, code: str) -> None:
        assert error.code == code

    def test_conflict_code_override(self) -> None:
        error = ConflictError("Vehicle is referenced", code=ErrorCodes.MASTER_IN_USE)

        assert error.code == ErrorCodes.MASTER_IN_USE
        assert ConflictError("x").code == ErrorCodes.DUPLICATE_ENTRY

    def test_timeout_is_internal(self) -> None:
        """제한 시간 초과도 InternalError로 잡을 수 있음"""
        assert isinstance(TransactionTimeoutError(), InternalError)


class TestToDict:
    """응답 dict 변환"""

    def test_with_field(self) -> None:
        error = ValidationError("date is required", field="date")

        assert error.to_dict() == {
            "code": "VALIDATION_ERROR",
            "message": "date is required",
            "field": "date",
        }

    def test_without_field(self) -> None:
        assert not_found("Vehicle").to_dict() == {
            "code": "NOT_FOUND",
            "message": "Vehicle not found",
        }

    def test_internal_error_generic_message(self) -> None:
        assert InternalError().message == "Internal server error"


class TestStorageErrors:
    """storage_errors 컨텍스트 매니저"""

    def test_sqlite_error_becomes_internal(self, caplog: pytest.LogCaptureFixture) -> None:
        """sqlite 오류는 로그 후 InternalError"""
        with caplog.at_level(logging.ERROR, logger="core.errors"):
            with pytest.raises(InternalError) as exc_info:
                with storage_errors("create_trip", org_id="org-a"):
                    raise sqlite3.OperationalError("disk I/O error")

        assert exc_info.value.message == "Internal server error"
        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
        assert "create_trip" in caplog.text

    def test_ledger_error_passes_through(self) -> None:
        with pytest.raises(NotFoundError):
            with storage_errors("get"):
                raise not_found("Trip")

    def test_other_exceptions_untouched(self) -> None:
        with pytest.raises(KeyError):
            with storage_errors("list"):
                raise KeyError("x")

    def test_no_error(self) -> None:
        with storage_errors("noop"):
            value = 1

        assert value == 1
