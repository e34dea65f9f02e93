"""
거래 서비스

거래 종류별 create / update / delete / get / list.
모든 쓰기는 한 트랜잭션 안에서 "기존 행 읽기 → 병합/검증 → 파생 필드 재계산 → 전파" 순서로 실행된다.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import Defaults
from core.errors import ConflictError, ValidationError, storage_errors
from core.ledger.kinds import TransactionSpec, check_required, transaction_spec
from core.ledger.payloads import parse_payload
from core.types import MutationOp, TransactionKind
from engine.propagation import ApplyResult, BalancePropagationEngine
from engine.stores import LedgerStores

logger = logging.getLogger(__name__)

# 숫자로만 이루어진 trip_no 중 최대값 (자동 번호 부여용)
_MAX_NUMERIC_TRIP_NO_SQL = """
    SELECT MAX(CAST(trip_no AS INTEGER))
    FROM trip
    WHERE organization_id = ?
      AND trip_no <> ''
      AND trip_no NOT GLOB '*[^0-9]*'
"""


class TransactionService:
    """거래 서비스

    Args:
        db: SQLiteAdapter 인스턴스
        stores: 공유 저장소 묶음 (없으면 새로 생성)

    사용 예시:
    ```python
    service = TransactionService(db)

    trip = await service.create(TransactionKind.TRIP, org_id, {
        "date": "2025-04-01", "vehNo": "MH12AB1234",
        "fromLocation": "Pune", "toLocation": "Mumbai",
        "stMiter": 100, "endMiter": 350, "ltr": 25,
        "tripFare": 5000, "tripExpense": 1200,
    })
    await service.update(TransactionKind.TRIP, org_id, trip["id"], {"tripExpense": 1500})
    await service.delete(TransactionKind.TRIP, org_id, trip["id"])
    ```
    """

    def __init__(self, db: SQLiteAdapter, stores: LedgerStores | None = None):
        self.db = db
        self.stores = stores or LedgerStores(db)
        self.engine = BalancePropagationEngine(db, self.stores)

    # -------------------------------------------------------------------------
    # 쓰기
    # -------------------------------------------------------------------------

    async def create(
        self,
        kind: TransactionKind,
        org_id: str,
        data: Mapping[str, Any] | Any,
    ) -> dict[str, Any]:
        """거래 생성

        Args:
            kind: 거래 종류
            org_id: 조직 ID
            data: 입력 (dict 또는 페이로드 모델)

        Returns:
            저장된 거래 (파생 필드 포함)

        Raises:
            ValidationError: 필수 필드 누락/잘못된 값
            NotFoundError: 명시한 Master id가 조직에 없음
            ConflictError: trip_no 중복
        """
        return (await self.create_with_master(kind, org_id, data)).record

    async def create_with_master(
        self,
        kind: TransactionKind,
        org_id: str,
        data: Mapping[str, Any] | Any,
    ) -> ApplyResult:
        """거래 생성 후 (거래, 갱신된 Master) 반환"""
        spec = transaction_spec(kind)
        values = parse_payload(spec.payload, data).values()
        check_required(spec.required, values)

        async def work() -> ApplyResult:
            if spec.natural_key is not None:
                if not values.get(spec.natural_key):
                    values[spec.natural_key] = await self.next_trip_no(org_id)
                await self._check_natural_key(spec, org_id, values[spec.natural_key])
            values.update(spec.derive(values))
            return await self.engine.apply(MutationOp.CREATE, kind, org_id, new_state=values)

        with storage_errors("create", org_id=org_id, kind=kind.value):
            return await self.db.run_in_transaction(work)

    async def update(
        self,
        kind: TransactionKind,
        org_id: str,
        record_id: str,
        data: Mapping[str, Any] | Any,
    ) -> dict[str, Any]:
        """거래 수정 (보낸 필드만 변경)

        Raises:
            NotFoundError: 거래가 없거나 다른 조직 소유
            ValidationError: 병합 결과 필수 필드 누락
            ConflictError: trip_no 중복
        """
        return (await self.update_with_master(kind, org_id, record_id, data)).record

    async def update_with_master(
        self,
        kind: TransactionKind,
        org_id: str,
        record_id: str,
        data: Mapping[str, Any] | Any,
    ) -> ApplyResult:
        """거래 수정 후 (거래, 갱신된 Master, 연결 해제된 Master) 반환"""
        spec = transaction_spec(kind)
        patch = parse_payload(spec.payload, data).values()
        store = self.stores.transaction(kind)

        async def work() -> ApplyResult:
            old = await store.require(org_id, record_id)
            merged = {name: old.get(name) for name in spec.table.writable}
            merged.update(patch)
            check_required(spec.required, merged)

            if spec.natural_key is not None and merged[spec.natural_key] != old[spec.natural_key]:
                await self._check_natural_key(spec, org_id, merged[spec.natural_key])

            merged.update(spec.derive(merged))
            return await self.engine.apply(
                MutationOp.UPDATE, kind, org_id, new_state=merged, old_state=old
            )

        with storage_errors("update", org_id=org_id, kind=kind.value, record_id=record_id):
            return await self.db.run_in_transaction(work)

    async def delete(
        self,
        kind: TransactionKind,
        org_id: str,
        record_id: str,
    ) -> dict[str, Any]:
        """거래 삭제 (기여분 역적용)

        Returns:
            삭제된 거래

        Raises:
            NotFoundError: 거래가 없거나 다른 조직 소유
        """
        return (await self.delete_with_master(kind, org_id, record_id)).record

    async def delete_with_master(
        self,
        kind: TransactionKind,
        org_id: str,
        record_id: str,
    ) -> ApplyResult:
        store = self.stores.transaction(kind)

        async def work() -> ApplyResult:
            old = await store.require(org_id, record_id)
            return await self.engine.apply(MutationOp.DELETE, kind, org_id, old_state=old)

        with storage_errors("delete", org_id=org_id, kind=kind.value, record_id=record_id):
            return await self.db.run_in_transaction(work)

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def get(self, kind: TransactionKind, org_id: str, record_id: str) -> dict[str, Any]:
        """ID로 조회

        Raises:
            NotFoundError: 없거나 다른 조직 소유
        """
        with storage_errors("get", org_id=org_id, kind=kind.value):
            return await self.stores.transaction(kind).require(org_id, record_id)

    async def list(
        self,
        kind: TransactionKind,
        org_id: str,
        filters: Mapping[str, Any] | None = None,
        date_from: date | str | None = None,
        date_to: date | str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """조직 범위 목록 조회

        Args:
            kind: 거래 종류
            org_id: 조직 ID
            filters: 종류별 허용 필터 (정확히 일치 또는 부분 일치), 빈 값은 무시
            date_from: 시작일 (포함)
            date_to: 종료일 (포함)
            limit: 최대 개수

        Returns:
            정렬된 거래 목록 (Trip은 trip_no 내림차순, 나머지는 최근 생성 순)

        Raises:
            ValidationError: 허용되지 않은 필터
        """
        spec = transaction_spec(kind)
        equals: dict[str, Any] = {}
        contains: dict[str, str] = {}

        for name, value in (filters or {}).items():
            if value is None or value == "":
                continue
            if name in spec.equals_filters:
                equals[name] = getattr(value, "value", value)
            elif name in spec.contains_filters:
                contains[name] = str(value)
            else:
                raise ValidationError(f"Unsupported filter: {name}", field=name)

        with storage_errors("list", org_id=org_id, kind=kind.value):
            return await self.stores.transaction(kind).list(
                org_id,
                equals=equals,
                contains=contains,
                date_from=date_from,
                date_to=date_to,
                order_by=spec.order_by,
                limit=limit,
            )

    async def next_trip_no(self, org_id: str) -> str:
        """다음 자동 trip_no (숫자 trip_no 최대값 + 1, 없으면 시작 번호)"""
        row = await self.db.fetchone(_MAX_NUMERIC_TRIP_NO_SQL, (org_id,))
        last = row[0] if row else None
        if last is None:
            return str(Defaults.FIRST_TRIP_NO)
        return str(max(int(last) + 1, Defaults.FIRST_TRIP_NO))

    async def _check_natural_key(self, spec: TransactionSpec, org_id: str, value: Any) -> None:
        existing = await self.stores.transaction(spec.kind).find_one(
            org_id, **{spec.natural_key: value}
        )
        if existing is not None:
            raise ConflictError(
                f"{spec.label} with {spec.natural_key} {value} already exists",
                field=spec.natural_key,
            )
