"""
오류 타입 정의

엔진/서비스가 호출자에게 돌려주는 구조화된 실패.
모든 오류는 kind(code), message, (검증 오류는) field 를 가진다.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator

logger = logging.getLogger(__name__)


class ErrorCodes:
    """호출자에게 노출되는 안정적인 오류 코드"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    MASTER_IN_USE = "MASTER_IN_USE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    TIMEOUT = "TIMEOUT"


class LedgerError(Exception):
    """모든 도메인 오류의 기반 클래스

    Args:
        message: 사람이 읽을 수 있는 메시지
        field: 문제가 된 필드명 (선택)
    """

    code: str = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str, field: str | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field
        if code is not None:
            self.code = code

    def to_dict(self) -> dict[str, Any]:
        """응답용 dict 변환"""
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.field is not None:
            data["field"] = self.field
        return data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}, field={self.field!r})"


class ValidationError(LedgerError):
    """필수 필드 누락 또는 잘못된 값 (부분 쓰기 없음)"""

    code = ErrorCodes.VALIDATION_ERROR


class NotFoundError(LedgerError):
    """행이 없거나 다른 조직 소유

    두 경우 모두 같은 응답을 돌려주어 조직 간 존재 여부가 노출되지 않게 한다.
    """

    code = ErrorCodes.NOT_FOUND


class ConflictError(LedgerError):
    """자연키 충돌 또는 참조 중인 Master 삭제 시도"""

    code = ErrorCodes.DUPLICATE_ENTRY


class InternalError(LedgerError):
    """저장소 실패

    원인은 로그로만 남기고 호출자에게는 일반 메시지만 전달.
    """

    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str = "Internal server error", code: str | None = None):
        super().__init__(message, code=code)


class TransactionTimeoutError(InternalError):
    """제한 시간 내에 트랜잭션이 끝나지 않음 (전체 롤백)"""

    code = ErrorCodes.TIMEOUT

    def __init__(self, message: str = "Transaction timed out"):
        super().__init__(message)


def not_found(entity: str) -> NotFoundError:
    """'<Entity> not found' 형식의 NotFoundError 생성"""
    return NotFoundError(f"{entity} not found")


@contextmanager
def storage_errors(operation: str, **context: Any) -> Iterator[None]:
    """저장소 예외를 InternalError로 변환

    도메인 오류(LedgerError)는 그대로 통과시키고,
    sqlite 오류는 원인을 로그로 남긴 뒤 일반 메시지의 InternalError로 바꾼다.

    사용 예시:
    ```python
    with storage_errors("create_trip", org_id=org_id):
        await store.insert(org_id, values)
    ```
    """
    try:
        yield
    except LedgerError:
        raise
    except sqlite3.Error as e:
        logger.exception(f"저장소 오류: {operation}", extra=context)
        raise InternalError() from e
