"""
MasterStore - 잔액 보유 Master 저장소

RecordStore에 자연키 조회와 원자적 증감(increment)을 더한다.
증감은 항상 단일 UPDATE 문으로 실행되어 동시 요청 간 갱신 유실이 없다.
"""

import logging
from typing import Any, Mapping

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.storage.record_store import RecordStore, encode_value
from core.storage.schema import ColumnType, Table, referencing_columns
from core.utils.timezone import now_iso

logger = logging.getLogger(__name__)


class MasterStore(RecordStore):
    """Master 저장소

    Args:
        db: SQLiteAdapter 인스턴스
        table: Master 테이블 정의
        label: 오류 메시지용 엔티티 이름
        natural_key: 조직 내 유일한 표시 키 컬럼 (veh_no, name)
    """

    def __init__(self, db: SQLiteAdapter, table: Table, label: str, natural_key: str):
        super().__init__(db, table, label)
        self.natural_key = natural_key

    async def find_by_natural_key(self, org_id: str, value: str | None) -> dict[str, Any] | None:
        """자연키로 조회 (빈 값이면 None)"""
        if value is None or not str(value).strip():
            return None
        return await self.find_one(org_id, **{self.natural_key: str(value).strip()})

    async def increment(
        self,
        org_id: str,
        record_id: str,
        amounts: Mapping[str, Any],
    ) -> dict[str, Any] | None:
        """누적 컬럼 원자적 증감

        `UPDATE ... SET col = col + ?` 한 문장으로 읽기와 쓰기가 분리되지 않는다.

        Args:
            org_id: 조직 ID
            record_id: Master ID
            amounts: 컬럼별 증감량 (Decimal 또는 int)

        Returns:
            갱신된 Master (없거나 다른 조직이면 None)
        """
        assignments: list[str] = []
        params: list[Any] = []
        for column, amount in amounts.items():
            column_type = self.table.column(column).type
            if column_type not in (ColumnType.MONEY, ColumnType.INT):
                raise ValueError(f"{self.table.name}.{column} is not numeric")
            assignments.append(f"{column} = {column} + ?")
            params.append(encode_value(column_type, amount))

        if not assignments:
            return await self.get(org_id, record_id)

        assignments.append("updated_at = ?")
        params.extend([now_iso(), record_id, org_id])

        cursor = await self.db.execute(
            f"UPDATE {self.table.name} SET {', '.join(assignments)} "
            "WHERE id = ? AND organization_id = ?",
            tuple(params),
        )
        if cursor.rowcount == 0:
            return None

        logger.debug(
            "Master 증감 적용",
            extra={"org_id": org_id, "table": self.table.name, "master_id": record_id},
        )
        return await self.get(org_id, record_id)

    async def reference_count(self, org_id: str, record_id: str) -> int:
        """이 Master를 참조하는 거래 행 수"""
        total = 0
        for table, column in referencing_columns(self.table.name):
            row = await self.db.fetchone(
                f"SELECT COUNT(*) FROM {table.name} WHERE organization_id = ? AND {column} = ?",
                (org_id, record_id),
            )
            total += int(row[0]) if row else 0
        return total
