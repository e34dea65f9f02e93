"""
Bulk Import 통합 테스트

부분 성공, 중복 제거, 차량 집계, 롤백/제한 시간
"""

import asyncio
from decimal import Decimal

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import TransactionTimeoutError, ValidationError
from core.types import LookupKind, MasterKind, RejectionType, TransactionKind
from engine import BulkImportService, LedgerStores, MasterService, TransactionService


def row(trip_no, veh_no: str = "V1", **overrides) -> dict:
    data = {
        "tripNo": trip_no,
        "date": "2025-04-01",
        "vehNo": veh_no,
        "fromLocation": "Pune",
        "toLocation": "Mumbai",
        "stMiter": 100,
        "endMiter": 350,
        "ltr": 25,
        "tripFare": 5000,
        "tripExpense": 1200,
    }
    data.update(overrides)
    return data


async def _vehicles(masters: MasterService, org_id: str, *veh_nos: str) -> dict[str, dict]:
    return {
        veh_no: await masters.create(MasterKind.VEHICLE, org_id, {"vehNo": veh_no})
        for veh_no in veh_nos
    }


class TestBulkImport:
    """Trip 배치"""

    @pytest.mark.asyncio
    async def test_duplicate_of_existing_trip(
        self,
        masters: MasterService,
        transactions: TransactionService,
        importer: BulkImportService,
        org_a: str,
    ) -> None:
        """기존 trip_no와 겹치는 행만 거부, 나머지 차량은 한 번씩 증가"""
        vehicles = await _vehicles(masters, org_a, "V1", "V2", "V3")
        await transactions.create(TransactionKind.TRIP, org_a, row("2002", "V3"))

        result = await importer.import_batch(org_a, {
            "trips": [row(2001, "V1"), row(2002, "V2"), row(2003, "V2", tripExpense=2000)],
        })

        assert result.trips_created == 2
        assert result.trips_failed == 1
        assert len(result.rejections) == 1
        rejection = result.rejections[0]
        assert rejection.type == RejectionType.TRIP
        assert rejection.index == 1
        assert rejection.trip_no == "2002"
        assert "already exists" in rejection.message

        v1 = await masters.get(MasterKind.VEHICLE, org_a, vehicles["V1"]["id"])
        v2 = await masters.get(MasterKind.VEHICLE, org_a, vehicles["V2"]["id"])
        v3 = await masters.get(MasterKind.VEHICLE, org_a, vehicles["V3"]["id"])
        assert (v1["total_trip"], v1["net_profit"]) == (1, Decimal("3800"))
        assert (v2["total_trip"], v2["net_profit"]) == (1, Decimal("3000"))
        assert v3["total_trip"] == 1

    @pytest.mark.asyncio
    async def test_partial_failure(
        self, masters: MasterService, transactions: TransactionService,
        importer: BulkImportService, org_a: str,
    ) -> None:
        """유효 K개 + 무효 M개 → K개만 저장, M개 거부 (인덱스 정확)"""
        vehicles = await _vehicles(masters, org_a, "V1", "V2")
        missing_location = row(3003, "V2")
        del missing_location["toLocation"]

        result = await importer.import_batch(org_a, {
            "trips": [
                row(3001, "V1"),
                row(None, "V1"),
                missing_location,
                row(3004, "V2", tripFare=7000),
                row(3001, "V2"),
                row(3006, "V1", stMiter="abc"),
                row(3007, "V1", tripExpense=500),
            ],
        })

        assert result.trips_created == 3
        assert result.trips_failed == 4
        assert sorted(r.index for r in result.rejections) == [1, 2, 4, 5]
        by_index = {r.index: r for r in result.rejections}
        assert "trip_no" in by_index[1].message
        assert "to_location" in by_index[2].message
        assert by_index[2].trip_no == "3003"
        assert "already exists" in by_index[4].message
        assert by_index[5].trip_no == "3006"

        trips = await transactions.list(TransactionKind.TRIP, org_a)
        assert sorted(t["trip_no"] for t in trips) == ["3001", "3004", "3007"]

        v1 = await masters.get(MasterKind.VEHICLE, org_a, vehicles["V1"]["id"])
        v2 = await masters.get(MasterKind.VEHICLE, org_a, vehicles["V2"]["id"])
        assert (v1["total_trip"], v1["net_profit"]) == (2, Decimal("3800") + Decimal("4500"))
        assert (v2["total_trip"], v2["net_profit"]) == (1, Decimal("5800"))

    @pytest.mark.asyncio
    async def test_derived_fields_recomputed(
        self, transactions: TransactionService, importer: BulkImportService, org_a: str
    ) -> None:
        """파일의 파생 값은 무시하고 입력값에서 다시 계산"""
        await importer.import_batch(org_a, {
            "trips": [row(4001, profitStatement=1, tripKm=999, average=0, totalTripFare=0)],
        })

        trip = (await transactions.list(TransactionKind.TRIP, org_a))[0]
        assert trip["trip_km"] == 250
        assert trip["average"] == Decimal("10")
        assert trip["total_trip_fare"] == Decimal("5000")
        assert trip["profit_statement"] == Decimal("3800")

    @pytest.mark.asyncio
    async def test_unknown_vehicle_imported_unlinked(
        self, transactions: TransactionService, importer: BulkImportService, org_a: str
    ) -> None:
        result = await importer.import_batch(org_a, {"trips": [row(5001, "NOPE")]})

        assert result.trips_created == 1
        trip = (await transactions.list(TransactionKind.TRIP, org_a))[0]
        assert trip["vehicle_id"] is None
        assert trip["veh_no"] == "NOPE"

    @pytest.mark.asyncio
    async def test_one_increment_per_vehicle(
        self,
        masters: MasterService,
        stores: LedgerStores,
        importer: BulkImportService,
        org_a: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """차량별 합계를 한 번만 증감"""
        await _vehicles(masters, org_a, "V1", "V2")
        vehicle_store = stores.master(MasterKind.VEHICLE)
        original = vehicle_store.increment
        calls: list[str] = []

        async def counting_increment(org_id, record_id, amounts):
            calls.append(record_id)
            return await original(org_id, record_id, amounts)

        monkeypatch.setattr(vehicle_store, "increment", counting_increment)

        await importer.import_batch(org_a, {
            "trips": [row(n, "V1" if n % 2 else "V2") for n in range(6001, 6011)],
        })

        assert len(calls) == 2
        assert len(set(calls)) == 2

    @pytest.mark.asyncio
    async def test_trip_no_taken_during_import_is_skipped(
        self,
        masters: MasterService,
        stores: LedgerStores,
        transactions: TransactionService,
        importer: BulkImportService,
        org_a: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """검증 뒤 다른 요청이 같은 trip_no를 만든 경우 건너뛰고 거부로 보고"""
        vehicles = await _vehicles(masters, org_a, "V1")
        await transactions.create(TransactionKind.TRIP, org_a, row("7002", "V1"))

        trip_store = stores.transaction(TransactionKind.TRIP)

        async def stale_keys(org_id, column):
            return set()

        monkeypatch.setattr(trip_store, "column_values", stale_keys)

        result = await importer.import_batch(org_a, {"trips": [row(7001, "V1"), row(7002, "V1")]})

        assert result.trips_created == 1
        assert result.trips_failed == 1
        assert result.rejections[0].index == 1
        assert "already exists" in result.rejections[0].message

        vehicle = await masters.get(MasterKind.VEHICLE, org_a, vehicles["V1"]["id"])
        assert vehicle["total_trip"] == 2

    @pytest.mark.asyncio
    async def test_empty_trips_rejected(self, importer: BulkImportService, org_a: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            await importer.import_batch(org_a, {"trips": [], "expenses": [{"tripNo": 1}]})

        assert exc_info.value.field == "trips"

    @pytest.mark.asyncio
    async def test_all_rows_rejected(
        self, transactions: TransactionService, importer: BulkImportService, org_a: str
    ) -> None:
        result = await importer.import_batch(org_a, {"trips": [{"tripNo": 1}, "not-a-row"]})

        assert result.trips_created == 0
        assert result.trips_failed == 2
        assert [r.index for r in result.rejections] == [0, 1]
        assert await transactions.list(TransactionKind.TRIP, org_a) == []


class TestExpensesAndCategories:
    """Expense / 카테고리"""

    @pytest.mark.asyncio
    async def test_expenses(
        self, transactions: TransactionService, importer: BulkImportService, org_a: str
    ) -> None:
        result = await importer.import_batch(org_a, {
            "trips": [row(8001)],
            "expenses": [
                {"tripNo": 8001, "date": "2025-04-01", "expenseType": "Toll", "amount": 250},
                {"tripNo": 8001, "date": "2025-04-01", "expenseType": "Toll", "amount": 0},
                {"date": "2025-04-01", "expenseType": "Food", "amount": 80},
            ],
        })

        assert result.expenses_created == 1
        assert result.expenses_failed == 2
        expense_rejections = [r for r in result.rejections if r.type == RejectionType.EXPENSE]
        assert [r.index for r in expense_rejections] == [1, 2]

        expenses = await transactions.list(TransactionKind.EXPENSE, org_a)
        assert len(expenses) == 1
        assert expenses[0]["trip_no"] == "8001"
        assert expenses[0]["amount"] == Decimal("250")

    @pytest.mark.asyncio
    async def test_categories(
        self, masters: MasterService, importer: BulkImportService, org_a: str
    ) -> None:
        """없는 카테고리만 생성, 잘못된 행은 거부"""
        await masters.create(LookupKind.EXPENSE_CATEGORY, org_a, {"name": "Toll", "mode": "Expenses"})

        result = await importer.import_batch(org_a, {
            "trips": [row(9001)],
            "expenseCategories": [
                {"name": "Toll", "mode": "Expenses"},
                {"name": "Diesel", "mode": "Fuel"},
                {"name": "Broken"},
            ],
        })

        assert result.categories_created == 1
        category_rejections = [r for r in result.rejections if r.type == RejectionType.CATEGORY]
        assert len(category_rejections) == 1
        assert category_rejections[0].index == 2
        assert category_rejections[0].message == "Category at index 2: name and mode are required"

        names = {c["name"] for c in await masters.list(LookupKind.EXPENSE_CATEGORY, org_a)}
        assert names == {"Toll", "Diesel"}


class TestImportFailure:
    """영속화 단계 실패 → 전체 롤백"""

    @pytest.mark.asyncio
    async def test_timeout_rolls_back_batch(
        self,
        db: SQLiteAdapter,
        masters: MasterService,
        stores: LedgerStores,
        transactions: TransactionService,
        org_a: str,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        vehicles = await _vehicles(masters, org_a, "V1")
        vehicle_store = stores.master(MasterKind.VEHICLE)
        original = vehicle_store.increment

        async def slow_increment(org_id, record_id, amounts):
            await asyncio.sleep(5)
            return await original(org_id, record_id, amounts)

        monkeypatch.setattr(vehicle_store, "increment", slow_increment)
        importer = BulkImportService(db, stores, timeout_sec=0.1)

        with pytest.raises(TransactionTimeoutError):
            await importer.import_batch(org_a, {
                "trips": [row(9101), row(9102)],
                "expenses": [{"tripNo": 9101, "date": "2025-04-01", "expenseType": "Toll", "amount": 10}],
                "expenseCategories": [{"name": "Toll", "mode": "Expenses"}],
            })

        assert await transactions.list(TransactionKind.TRIP, org_a) == []
        assert await transactions.list(TransactionKind.EXPENSE, org_a) == []
        vehicle = await masters.get(MasterKind.VEHICLE, org_a, vehicles["V1"]["id"])
        assert vehicle["total_trip"] == 0

        # 카테고리는 트랜잭션 밖에서 먼저 반영됨
        categories = await masters.list(LookupKind.EXPENSE_CATEGORY, org_a)
        assert [c["name"] for c in categories] == ["Toll"]
