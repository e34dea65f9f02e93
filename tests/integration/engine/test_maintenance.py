"""업무 데이터 정리 통합 테스트"""

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.types import LookupKind, MasterKind, TransactionKind
from engine import MasterService, TransactionService, clear_business_data


class TestClearBusinessData:
    """clear_business_data"""

    @pytest.mark.asyncio
    async def test_clears_only_target_org(
        self,
        db: SQLiteAdapter,
        masters: MasterService,
        transactions: TransactionService,
        org_a: str,
        org_b: str,
    ) -> None:
        for org_id in (org_a, org_b):
            await masters.create(MasterKind.VEHICLE, org_id, {"vehNo": "MH12"})
            await masters.create(LookupKind.PAYMENT_MODE, org_id, {"name": "Cash"})
            await transactions.create(TransactionKind.TRIP, org_id, {
                "date": "2025-04-01", "vehNo": "MH12", "fromLocation": "A", "toLocation": "B",
            })

        deleted = await clear_business_data(db, org_a)

        assert deleted["trip"] == 1
        assert deleted["vehicle"] == 1
        assert deleted["payment_mode"] == 1
        assert sum(deleted.values()) == 3

        assert await transactions.list(TransactionKind.TRIP, org_a) == []
        assert await masters.list(MasterKind.VEHICLE, org_a) == []
        assert len(await transactions.list(TransactionKind.TRIP, org_b)) == 1
        assert len(await masters.list(MasterKind.VEHICLE, org_b)) == 1

    @pytest.mark.asyncio
    async def test_empty_org(self, db: SQLiteAdapter, org_a: str) -> None:
        deleted = await clear_business_data(db, org_a)

        assert set(deleted.values()) == {0}
