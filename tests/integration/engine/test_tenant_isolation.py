"""
조직 격리 통합 테스트

조직 A 범위의 작업은 조직 B의 행을 읽거나 바꿀 수 없다 (NotFoundError).
"""

from decimal import Decimal

import pytest

from core.errors import NotFoundError
from core.types import MasterKind, TransactionKind
from engine import MasterService, ReportService, TransactionService


def _trip(**overrides) -> dict:
    payload = {
        "date": "2025-04-01",
        "vehNo": "MH12AB1234",
        "fromLocation": "Pune",
        "toLocation": "Mumbai",
        "tripFare": 5000,
        "tripExpense": 1200,
    }
    payload.update(overrides)
    return payload


class TestTenantIsolation:
    """조직 격리"""

    @pytest.mark.asyncio
    async def test_transaction_invisible_to_other_org(
        self, transactions: TransactionService, org_a: str, org_b: str
    ) -> None:
        trip = await transactions.create(TransactionKind.TRIP, org_a, _trip())

        with pytest.raises(NotFoundError):
            await transactions.get(TransactionKind.TRIP, org_b, trip["id"])
        with pytest.raises(NotFoundError):
            await transactions.update(TransactionKind.TRIP, org_b, trip["id"], {"tripFare": 1})
        with pytest.raises(NotFoundError):
            await transactions.delete(TransactionKind.TRIP, org_b, trip["id"])

        assert await transactions.list(TransactionKind.TRIP, org_b) == []
        unchanged = await transactions.get(TransactionKind.TRIP, org_a, trip["id"])
        assert unchanged["trip_fare"] == Decimal("5000")

    @pytest.mark.asyncio
    async def test_master_invisible_to_other_org(
        self, masters: MasterService, org_a: str, org_b: str
    ) -> None:
        vehicle = await masters.create(MasterKind.VEHICLE, org_a, {"vehNo": "MH12AB1234"})

        with pytest.raises(NotFoundError):
            await masters.get(MasterKind.VEHICLE, org_b, vehicle["id"])
        with pytest.raises(NotFoundError):
            await masters.update(MasterKind.VEHICLE, org_b, vehicle["id"], {"vehType": "Truck"})
        with pytest.raises(NotFoundError):
            await masters.delete(MasterKind.VEHICLE, org_b, vehicle["id"])

        assert await masters.list(MasterKind.VEHICLE, org_b) == []

    @pytest.mark.asyncio
    async def test_cannot_link_other_org_master_by_id(
        self, masters: MasterService, transactions: TransactionService, org_a: str, org_b: str
    ) -> None:
        """다른 조직 Master id를 지정 → NotFoundError, 그 Master는 변하지 않음"""
        vehicle = await masters.create(MasterKind.VEHICLE, org_a, {"vehNo": "MH12AB1234"})

        with pytest.raises(NotFoundError):
            await transactions.create(TransactionKind.TRIP, org_b, _trip(vehicleId=vehicle["id"]))

        current = await masters.get(MasterKind.VEHICLE, org_a, vehicle["id"])
        assert current["total_trip"] == 0

    @pytest.mark.asyncio
    async def test_name_resolution_scoped(
        self, masters: MasterService, transactions: TransactionService, org_a: str, org_b: str
    ) -> None:
        """같은 차량번호라도 다른 조직의 Master에는 연결되지 않음"""
        vehicle_a = await masters.create(MasterKind.VEHICLE, org_a, {"vehNo": "MH12AB1234"})

        trip_b = await transactions.create(TransactionKind.TRIP, org_b, _trip())

        assert trip_b["vehicle_id"] is None
        current = await masters.get(MasterKind.VEHICLE, org_a, vehicle_a["id"])
        assert current["total_trip"] == 0

    @pytest.mark.asyncio
    async def test_natural_keys_per_org(
        self, masters: MasterService, transactions: TransactionService, org_a: str, org_b: str
    ) -> None:
        """trip_no / 이름 유일성은 조직 단위"""
        await masters.create(MasterKind.DRIVER, org_a, {"name": "Ravi"})
        await masters.create(MasterKind.DRIVER, org_b, {"name": "Ravi"})

        trip_a = await transactions.create(TransactionKind.TRIP, org_a, _trip())
        trip_b = await transactions.create(TransactionKind.TRIP, org_b, _trip())

        assert trip_a["trip_no"] == trip_b["trip_no"] == "1001"

    @pytest.mark.asyncio
    async def test_reports_scoped(
        self, masters: MasterService, transactions: TransactionService, reports: ReportService,
        org_a: str, org_b: str,
    ) -> None:
        await masters.create(MasterKind.VEHICLE, org_a, {"vehNo": "MH12AB1234"})
        await transactions.create(TransactionKind.TRIP, org_a, _trip())

        stats = await reports.dashboard_stats(org_b)
        report = await reports.trip_report(org_b)

        assert stats["trip_count"] == 0
        assert stats["vehicle_count"] == 0
        assert stats["total_revenue"] == Decimal("0")
        assert report["trips"] == []
