"""
Bulk Import 서비스

한 조직의 Trip / Expense / 비용 카테고리 배치를 가져온다.

1. 카테고리 upsert: 트랜잭션 밖, 이름이 없을 때만 생성 (중단 시 일부만 반영될 수 있음)
2. 검증/중복 제거: 저장 없이 기존 trip_no와 배치 안의 trip_no로 중복 판단
3. 영속화: 제한 시간이 있는 단일 트랜잭션에서 Trip → Expense 삽입
   (경쟁으로 생긴 trip_no 충돌은 건너뛰고 거부 행으로 보고)
4. Vehicle 집계: 같은 트랜잭션 안에서 차량별로 (운행 수, 이익) 합계를 한 번씩 증감

행 단위 오류는 해당 행에만 붙고 배치를 실패시키지 않는다.
영속화/집계 오류(제한 시간 초과 포함)는 배치 전체를 롤백한다.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import ImportLimits
from core.errors import InternalError, ValidationError, storage_errors
from core.ledger.calculations import calc_trip, trip_contribution
from core.ledger.delta import MasterDelta
from core.ledger.kinds import check_required
from core.ledger.payloads import (
    BulkImportRequest,
    BulkImportResult,
    ExpenseCategoryPayload,
    ExpensePayload,
    ImportRejection,
    TripPayload,
    parse_payload,
)
from core.types import MasterKind, RejectionType, TransactionKind
from engine.masters import MasterService
from engine.stores import LedgerStores

logger = logging.getLogger(__name__)

IMPORT_TRIP_REQUIRED = ("trip_no", "date", "veh_no", "from_location", "to_location")
IMPORT_EXPENSE_REQUIRED = ("trip_no", "date", "expense_type")


@dataclass
class _Persisted:
    """영속화 단계 결과"""

    trips_created: int = 0
    expenses_created: int = 0
    skipped: list[ImportRejection] = field(default_factory=list)
    vehicles_updated: int = 0


def _raw_trip_no(row: Any) -> str | None:
    if not isinstance(row, Mapping):
        return None
    value = row.get("trip_no", row.get("tripNo"))
    return None if value is None or value == "" else str(value)


class BulkImportService:
    """Bulk Import 서비스

    Args:
        db: SQLiteAdapter 인스턴스
        stores: 공유 저장소 묶음 (없으면 새로 생성)
        timeout_sec: 영속화 단계 제한 시간 (초)

    사용 예시:
    ```python
    importer = BulkImportService(db, timeout_sec=settings.bulk_import_timeout_sec)
    result = await importer.import_batch(org_id, {
        "trips": [...],
        "expenses": [...],
        "expenseCategories": [{"name": "Toll", "mode": "Expenses"}],
    })
    print(result.trips_created, result.trips_failed, result.rejections)
    ```
    """

    def __init__(
        self,
        db: SQLiteAdapter,
        stores: LedgerStores | None = None,
        timeout_sec: float = ImportLimits.PERSIST_TIMEOUT_SEC,
    ):
        self.db = db
        self.stores = stores or LedgerStores(db)
        self.timeout_sec = timeout_sec
        self.masters = MasterService(db, self.stores)

    async def import_batch(
        self,
        org_id: str,
        data: BulkImportRequest | Mapping[str, Any],
    ) -> BulkImportResult:
        """배치 가져오기

        Args:
            org_id: 조직 ID
            data: {trips[], expenses[], expenseCategories[]}

        Returns:
            BulkImportResult (부분 성공 포함)

        Raises:
            ValidationError: trips가 비어 있음
            TransactionTimeoutError: 영속화 단계 제한 시간 초과 (전체 롤백)
            InternalError: 영속화/집계 중 저장소 오류 (전체 롤백)
        """
        request = parse_payload(BulkImportRequest, data)
        if not request.trips:
            raise ValidationError("Trips array is required and must not be empty", field="trips")

        rejections: list[ImportRejection] = []

        # 1. 카테고리 (트랜잭션 밖)
        categories_created = await self._upsert_categories(org_id, request.expense_categories, rejections)

        # 2. 검증/중복 제거 (저장 없음)
        trips = await self._validate_trips(org_id, request.trips, rejections)
        expenses = self._validate_expenses(request.expenses, rejections)

        trips_failed = len(request.trips) - len(trips)
        expenses_failed = len(request.expenses) - len(expenses)

        # 3~4. 영속화 + 차량 집계 (단일 트랜잭션)
        persisted = _Persisted()
        if trips or expenses:
            async def work() -> _Persisted:
                return await self._persist(org_id, trips, expenses)

            with storage_errors("bulk_import", org_id=org_id):
                persisted = await self.db.run_in_transaction(work, timeout=self.timeout_sec)

        trips_failed += len(persisted.skipped)
        rejections.extend(persisted.skipped)

        result = BulkImportResult(
            trips_created=persisted.trips_created,
            trips_failed=trips_failed,
            expenses_created=persisted.expenses_created,
            expenses_failed=expenses_failed,
            categories_created=categories_created,
            rejections=rejections,
        )

        logger.info(
            "Bulk Import 완료",
            extra={
                "org_id": org_id,
                "trips_created": result.trips_created,
                "trips_failed": result.trips_failed,
                "expenses_created": result.expenses_created,
                "expenses_failed": result.expenses_failed,
                "categories_created": result.categories_created,
                "vehicles_updated": persisted.vehicles_updated,
            },
        )
        return result

    # -------------------------------------------------------------------------
    # 1. 카테고리
    # -------------------------------------------------------------------------

    async def _upsert_categories(
        self,
        org_id: str,
        rows: list[Any],
        rejections: list[ImportRejection],
    ) -> int:
        created = 0
        for index, raw in enumerate(rows):
            try:
                category = parse_payload(ExpenseCategoryPayload, raw)
                check_required(("name", "mode"), category.values())
            except ValidationError:
                rejections.append(ImportRejection(
                    type=RejectionType.CATEGORY,
                    index=index,
                    message=f"Category at index {index}: name and mode are required",
                ))
                continue

            try:
                if await self.masters.ensure_category(org_id, category.name, category.mode):
                    created += 1
            except InternalError as e:
                logger.warning(
                    "카테고리 생성 실패",
                    extra={"org_id": org_id, "index": index, "category": category.name},
                )
                rejections.append(ImportRejection(
                    type=RejectionType.CATEGORY,
                    index=index,
                    message=f'Failed to create category "{category.name}": {e.message}',
                ))
        return created

    # -------------------------------------------------------------------------
    # 2. 검증
    # -------------------------------------------------------------------------

    async def _validate_trips(
        self,
        org_id: str,
        rows: list[Any],
        rejections: list[ImportRejection],
    ) -> list[tuple[int, dict[str, Any]]]:
        """검증을 통과한 (원래 인덱스, 값) 목록"""
        with storage_errors("bulk_import_keys", org_id=org_id):
            seen = await self.stores.transaction(TransactionKind.TRIP).column_values(org_id, "trip_no")

        accepted: list[tuple[int, dict[str, Any]]] = []
        for index, raw in enumerate(rows):
            try:
                values = parse_payload(TripPayload, raw).values()
                check_required(IMPORT_TRIP_REQUIRED, values)
            except ValidationError as e:
                rejections.append(ImportRejection(
                    type=RejectionType.TRIP,
                    index=index,
                    trip_no=_raw_trip_no(raw),
                    message=e.message,
                ))
                continue

            trip_no = values["trip_no"]
            if trip_no in seen:
                rejections.append(ImportRejection(
                    type=RejectionType.TRIP,
                    index=index,
                    trip_no=trip_no,
                    message=f"Trip with trip_no {trip_no} already exists",
                ))
                continue

            # 파생 필드는 파일 값이 아니라 입력값에서 다시 계산
            values.update(calc_trip(values))
            seen.add(trip_no)
            accepted.append((index, values))
        return accepted

    def _validate_expenses(
        self,
        rows: list[Any],
        rejections: list[ImportRejection],
    ) -> list[dict[str, Any]]:
        accepted: list[dict[str, Any]] = []
        for index, raw in enumerate(rows):
            try:
                values = parse_payload(ExpensePayload, raw).values()
                check_required(IMPORT_EXPENSE_REQUIRED, values)
                amount = values.get("amount")
                if amount is None or amount <= 0:
                    raise ValidationError("amount must be greater than 0", field="amount")
            except ValidationError as e:
                rejections.append(ImportRejection(
                    type=RejectionType.EXPENSE,
                    index=index,
                    trip_no=_raw_trip_no(raw),
                    message=e.message,
                ))
                continue
            accepted.append(values)
        return accepted

    # -------------------------------------------------------------------------
    # 3~4. 영속화
    # -------------------------------------------------------------------------

    async def _persist(
        self,
        org_id: str,
        trips: list[tuple[int, dict[str, Any]]],
        expenses: list[dict[str, Any]],
    ) -> _Persisted:
        trip_store = self.stores.transaction(TransactionKind.TRIP)
        expense_store = self.stores.transaction(TransactionKind.EXPENSE)
        vehicle_store = self.stores.master(MasterKind.VEHICLE)

        result = _Persisted()
        vehicles: dict[str, dict[str, Any] | None] = {}
        aggregates: dict[str, MasterDelta] = {}

        for index, values in trips:
            veh_no = values["veh_no"]
            if veh_no not in vehicles:
                vehicles[veh_no] = await vehicle_store.find_by_natural_key(org_id, veh_no)
            vehicle = vehicles[veh_no]
            values["vehicle_id"] = vehicle["id"] if vehicle else None
            if vehicle:
                values["veh_no"] = vehicle["veh_no"]

            record = await trip_store.insert(org_id, values, ignore_conflict=True)
            if record is None:
                result.skipped.append(ImportRejection(
                    type=RejectionType.TRIP,
                    index=index,
                    trip_no=values["trip_no"],
                    message=f"Trip with trip_no {values['trip_no']} already exists",
                ))
                continue

            result.trips_created += 1
            if vehicle:
                delta = trip_contribution(record)
                current = aggregates.get(vehicle["id"])
                aggregates[vehicle["id"]] = delta if current is None else current + delta

        for values in expenses:
            await expense_store.insert(org_id, values)
            result.expenses_created += 1

        # 차량별 집계 증감 (Master 변경 횟수 = 서로 다른 차량 수)
        for vehicle_id, delta in aggregates.items():
            if delta.is_zero:
                continue
            await vehicle_store.increment(org_id, vehicle_id, delta.nonzero())
            result.vehicles_updated += 1

        return result
