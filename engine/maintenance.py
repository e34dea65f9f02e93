"""
운영 정리 작업

조직 하나의 업무 데이터(거래 + Master)를 모두 삭제한다.
외래키 때문에 거래(자식)를 먼저, Master(부모)를 나중에 지운다.
"""

import logging

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import storage_errors
from core.storage.record_store import RecordStore
from core.storage.schema import MASTER_TABLES, TRANSACTION_TABLES

logger = logging.getLogger(__name__)


async def clear_business_data(db: SQLiteAdapter, org_id: str) -> dict[str, int]:
    """조직의 업무 데이터 전체 삭제 (단일 트랜잭션)

    다른 조직의 데이터는 건드리지 않는다.

    Args:
        db: 연결된 SQLiteAdapter
        org_id: 조직 ID

    Returns:
        테이블별 삭제 행 수
    """

    async def work() -> dict[str, int]:
        deleted: dict[str, int] = {}
        for table in (*TRANSACTION_TABLES, *MASTER_TABLES):
            deleted[table.name] = await RecordStore(db, table, table.name).delete_all(org_id)
        return deleted

    with storage_errors("clear_business_data", org_id=org_id):
        deleted = await db.run_in_transaction(work)

    logger.warning(
        "업무 데이터 삭제 완료",
        extra={"org_id": org_id, "rows": sum(deleted.values())},
    )
    return deleted
