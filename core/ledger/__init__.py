"""
운송 장부 모델

거래 종류별 파생 필드 계산, Master 기여분(delta), 입력 페이로드, 종류별 정의.
저장소에 의존하지 않는 순수 계층 (종류별 테이블 정의만 참조).

사용 예시:
```python
from core.ledger import calc_trip, contribution, TransactionKind

derived = calc_trip({"st_miter": 100, "end_miter": 350, "ltr": 25, "trip_fare": 5000})
delta = contribution(TransactionKind.TRIP, {**values, **derived})
```
"""

from core.ledger.calculations import (
    CLOSING_VALUES,
    calc_return_trip,
    calc_trip,
    calc_trip_book,
    contribution,
)
from core.ledger.delta import MasterDelta
from core.ledger.kinds import (
    MASTER_SPECS,
    TRANSACTION_SPECS,
    MasterLink,
    MasterSpec,
    TransactionSpec,
    master_spec,
    transaction_spec,
)
from core.ledger.payloads import (
    BulkImportRequest,
    BulkImportResult,
    ImportRejection,
    Payload,
    parse_payload,
)
from core.types import LookupKind, MasterKind, TransactionKind

__all__ = [
    # 계산
    "calc_trip",
    "calc_trip_book",
    "calc_return_trip",
    "contribution",
    "CLOSING_VALUES",
    "MasterDelta",
    # 종류 정의
    "MASTER_SPECS",
    "TRANSACTION_SPECS",
    "MasterLink",
    "MasterSpec",
    "TransactionSpec",
    "master_spec",
    "transaction_spec",
    # 페이로드
    "Payload",
    "BulkImportRequest",
    "BulkImportResult",
    "ImportRejection",
    "parse_payload",
    # Enum
    "LookupKind",
    "MasterKind",
    "TransactionKind",
]
