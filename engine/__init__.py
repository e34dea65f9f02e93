"""
운송 장부 엔진

잔액 전파 엔진과 그 위의 서비스들.
모든 호출은 조직 ID를 명시적 인자로 받는다.

사용 예시:
```python
from adapters.db.sqlite_adapter import SQLiteAdapter
from core.storage.schema import init_schema
from engine import LedgerStores, TransactionService, MasterService, BulkImportService

async with SQLiteAdapter(db_path) as db:
    await init_schema(db)
    stores = LedgerStores(db)
    masters = MasterService(db, stores)
    transactions = TransactionService(db, stores)

    await masters.create(MasterKind.VEHICLE, org_id, {"vehNo": "MH12AB1234"})
    await transactions.create(TransactionKind.TRIP, org_id, {...})
```
"""

from engine.importer import BulkImportService
from engine.maintenance import clear_business_data
from engine.masters import MasterService
from engine.propagation import ApplyResult, BalancePropagationEngine
from engine.reports import ReportService
from engine.stores import LedgerStores
from engine.transactions import TransactionService

__all__ = [
    "ApplyResult",
    "BalancePropagationEngine",
    "BulkImportService",
    "LedgerStores",
    "MasterService",
    "ReportService",
    "TransactionService",
    "clear_business_data",
]
