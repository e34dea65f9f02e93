"""
동시성 통합 테스트

같은 Master에 대한 동시 요청이 서로의 delta를 잃지 않는지 확인
(하나의 연결을 공유하는 경우 / 같은 DB 파일에 연결이 둘인 경우)
"""

import asyncio
from decimal import Decimal
from pathlib import Path

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.types import MasterKind, TransactionKind
from engine import MasterService, TransactionService


def _trip(fare: int) -> dict:
    return {
        "date": "2025-04-01",
        "vehNo": "MH12AB1234",
        "fromLocation": "Pune",
        "toLocation": "Mumbai",
        "tripFare": fare,
        "tripExpense": 100,
    }


class TestSharedConnection:
    """하나의 어댑터를 공유하는 동시 요청"""

    @pytest.mark.asyncio
    async def test_concurrent_creates_same_vehicle(
        self, masters: MasterService, transactions: TransactionService, org_a: str
    ) -> None:
        vehicle = await masters.create(MasterKind.VEHICLE, org_a, {"vehNo": "MH12AB1234"})
        fares = [1000 + i * 37 for i in range(20)]

        trips = await asyncio.gather(
            *(transactions.create(TransactionKind.TRIP, org_a, _trip(fare)) for fare in fares)
        )

        current = await masters.get(MasterKind.VEHICLE, org_a, vehicle["id"])
        assert current["total_trip"] == 20
        assert current["net_profit"] == Decimal(sum(fare - 100 for fare in fares))

        trip_nos = {t["trip_no"] for t in trips}
        assert trip_nos == {str(n) for n in range(1001, 1021)}

    @pytest.mark.asyncio
    async def test_concurrent_mixed_operations(
        self, masters: MasterService, transactions: TransactionService, org_a: str
    ) -> None:
        """동시 생성/수정/삭제 후에도 누적값 = 살아 있는 거래 합계"""
        driver = await masters.create(MasterKind.DRIVER, org_a, {"name": "Ravi"})
        existing = [
            await transactions.create(TransactionKind.DRIVER_ADVANCE, org_a, {
                "date": "2025-04-01", "driverName": "Ravi", "debit": 100 * (i + 1),
            })
            for i in range(6)
        ]

        await asyncio.gather(
            transactions.update(TransactionKind.DRIVER_ADVANCE, org_a, existing[0]["id"], {"debit": 5}),
            transactions.update(TransactionKind.DRIVER_ADVANCE, org_a, existing[1]["id"], {"credit": 50}),
            transactions.delete(TransactionKind.DRIVER_ADVANCE, org_a, existing[2]["id"]),
            transactions.delete(TransactionKind.DRIVER_ADVANCE, org_a, existing[3]["id"]),
            *(
                transactions.create(TransactionKind.DRIVER_ADVANCE, org_a, {
                    "date": "2025-04-02", "driverName": "Ravi", "debit": 10, "credit": 1,
                })
                for _ in range(8)
            ),
        )

        rows = await transactions.list(TransactionKind.DRIVER_ADVANCE, org_a)
        current = await masters.get(MasterKind.DRIVER, org_a, driver["id"])
        assert current["debit"] == sum((r["debit"] for r in rows), Decimal(0))
        assert current["credit"] == sum((r["credit"] for r in rows), Decimal(0))
        # 5 + 200 + 500 + 600 + 8 * 10
        assert current["debit"] == Decimal("1385")
        assert current["credit"] == Decimal("58")


class TestTwoConnections:
    """같은 DB 파일에 연결이 둘 (프로세스 두 개에 해당)"""

    @pytest.mark.asyncio
    async def test_no_lost_updates(self, db: SQLiteAdapter, db_path: Path, org_a: str) -> None:
        masters = MasterService(db)
        party = await masters.create(MasterKind.BILLING_PARTY, org_a, {"name": "ABC", "openBal": 1000})

        other = SQLiteAdapter(db_path)
        await other.connect()
        try:
            first = TransactionService(db)
            second = TransactionService(other)

            def payment(amount: int) -> dict:
                return {"date": "2025-04-01", "billingPartyName": "ABC", "receiveAmt": amount}

            await asyncio.gather(
                *(first.create(TransactionKind.PARTY_PAYMENT, org_a, payment(100)) for _ in range(10)),
                *(second.create(TransactionKind.PARTY_PAYMENT, org_a, payment(25)) for _ in range(10)),
            )
        finally:
            await other.close()

        current = await masters.get(MasterKind.BILLING_PARTY, org_a, party["id"])
        assert current["receive_amt"] == Decimal("1250")
        assert current["balance_amt"] == Decimal("-250")

    @pytest.mark.asyncio
    async def test_trip_numbers_unique(self, db: SQLiteAdapter, db_path: Path, org_a: str) -> None:
        """두 연결에서 자동 부여한 trip_no가 겹치지 않음"""
        vehicle = await MasterService(db).create(MasterKind.VEHICLE, org_a, {"vehNo": "MH12AB1234"})

        other = SQLiteAdapter(db_path)
        await other.connect()
        try:
            first = TransactionService(db)
            second = TransactionService(other)
            trips = await asyncio.gather(
                *(first.create(TransactionKind.TRIP, org_a, _trip(1000)) for _ in range(5)),
                *(second.create(TransactionKind.TRIP, org_a, _trip(2000)) for _ in range(5)),
            )
        finally:
            await other.close()

        assert len({t["trip_no"] for t in trips}) == 10
        current = await MasterService(db).get(MasterKind.VEHICLE, org_a, vehicle["id"])
        assert current["total_trip"] == 10
        assert current["net_profit"] == Decimal(5 * 900 + 5 * 1900)
