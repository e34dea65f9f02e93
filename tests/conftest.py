"""
pytest 공통 fixture 정의

임시 SQLite DB와 서비스 묶음 fixture
"""

import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.storage.schema import init_schema
from engine import (
    BulkImportService,
    LedgerStores,
    MasterService,
    ReportService,
    TransactionService,
)

ORG_A = "org-a"
ORG_B = "org-b"


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger.db"


@pytest_asyncio.fixture
async def db(db_path: Path) -> SQLiteAdapter:
    """스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def stores(db: SQLiteAdapter) -> LedgerStores:
    return LedgerStores(db)


@pytest.fixture
def masters(db: SQLiteAdapter, stores: LedgerStores) -> MasterService:
    return MasterService(db, stores)


@pytest.fixture
def transactions(db: SQLiteAdapter, stores: LedgerStores) -> TransactionService:
    return TransactionService(db, stores)


@pytest.fixture
def importer(db: SQLiteAdapter, stores: LedgerStores) -> BulkImportService:
    return BulkImportService(db, stores)


@pytest.fixture
def reports(db: SQLiteAdapter, stores: LedgerStores) -> ReportService:
    return ReportService(db, stores)


@pytest.fixture
def org_a() -> str:
    return ORG_A


@pytest.fixture
def org_b() -> str:
    return ORG_B


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성"""
    content = """# 테스트용 settings.yaml
db_path: data/test.db
bulk_import_timeout_sec: 5
busy_timeout_ms: 1000
log_level: debug
log_dir: logs
"""
    path = temp_dir / "settings.yaml"
    path.write_text(content, encoding="utf-8")
    return path
