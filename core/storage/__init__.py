"""
스토리지 모듈

테이블 스키마, 조직 단위 레코드 저장소, Master 저장소 제공
"""

from core.storage.master_store import MasterStore
from core.storage.record_store import RecordStore
from core.storage.schema import ALL_TABLES, MASTER_TABLES, TRANSACTION_TABLES, init_schema

__all__ = [
    "MasterStore",
    "RecordStore",
    "ALL_TABLES",
    "MASTER_TABLES",
    "TRANSACTION_TABLES",
    "init_schema",
]
