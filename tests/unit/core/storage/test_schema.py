"""
core/storage/schema.py 테스트

테이블 생성, 멱등성, generated 마감 잔액, 조직 단위 유니크 키
"""

from pathlib import Path

import aiosqlite
import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.storage.schema import (
    ALL_TABLES,
    DRIVER,
    TRIP,
    VEHICLE,
    init_schema,
    referencing_columns,
)


class TestTableDefinition:
    """Table/Column 정의"""

    def test_generated_columns_not_writable(self) -> None:
        assert "close_bal" not in DRIVER.writable
        assert "open_bal" in DRIVER.writable

    def test_create_sql_has_org_unique(self) -> None:
        sql = TRIP.create_sql()

        assert "UNIQUE(organization_id, trip_no)" in sql
        assert "vehicle_id TEXT REFERENCES vehicle(id)" in sql

    def test_column_lookup(self) -> None:
        assert VEHICLE.column("veh_no").name == "veh_no"
        with pytest.raises(KeyError):
            VEHICLE.column("missing")

    def test_referencing_columns(self) -> None:
        """billing_party를 참조하는 거래 컬럼"""
        refs = {(table.name, column) for table, column in referencing_columns("billing_party")}

        assert refs == {
            ("trip_book", "billing_party_id"),
            ("return_trip", "billing_party_id"),
            ("party_payment", "billing_party_id"),
        }


class TestInitSchema:
    """init_schema 테스트"""

    @pytest.mark.asyncio
    async def test_init_schema_creates_tables(self, tmp_path: Path) -> None:
        """스키마 초기화 - 테이블 생성"""
        async with SQLiteAdapter(tmp_path / "schema_test.db") as adapter:
            await init_schema(adapter)

            for table in ALL_TABLES:
                assert await adapter.table_exists(table.name) is True

    @pytest.mark.asyncio
    async def test_init_schema_idempotent(self, tmp_path: Path) -> None:
        """스키마 초기화 멱등성 (여러 번 실행 가능)"""
        async with SQLiteAdapter(tmp_path / "idempotent_test.db") as adapter:
            await init_schema(adapter)
            await init_schema(adapter)

            assert await adapter.table_exists("trip") is True

    @pytest.mark.asyncio
    async def test_generated_close_bal(self, tmp_path: Path) -> None:
        """마감 잔액은 저장 값에서 계산됨"""
        async with SQLiteAdapter(tmp_path / "gen_test.db") as adapter:
            await init_schema(adapter)

            await adapter.execute(
                "INSERT INTO driver (id, organization_id, name, open_bal, debit, credit, created_at, updated_at) "
                "VALUES ('d1', 'org', 'Ravi', 10000, 50000, 20000, 'now', 'now')"
            )
            row = await adapter.fetchone("SELECT close_bal FROM driver WHERE id = 'd1'")
            assert row[0] == 40000

            await adapter.execute("UPDATE driver SET debit = debit + 500 WHERE id = 'd1'")
            row = await adapter.fetchone("SELECT close_bal FROM driver WHERE id = 'd1'")
            assert row[0] == 40500

    @pytest.mark.asyncio
    async def test_unique_per_organization(self, tmp_path: Path) -> None:
        """같은 trip_no는 다른 조직에서는 허용, 같은 조직에서는 거부"""
        async with SQLiteAdapter(tmp_path / "unique_test.db") as adapter:
            await init_schema(adapter)

            insert = (
                "INSERT INTO trip (id, organization_id, trip_no, date, created_at, updated_at) "
                "VALUES (?, ?, '1001', '2025-04-01', 'now', 'now')"
            )
            await adapter.execute(insert, ("t1", "org-a"))
            await adapter.execute(insert, ("t2", "org-b"))

            with pytest.raises(aiosqlite.IntegrityError):
                await adapter.execute(insert, ("t3", "org-a"))
