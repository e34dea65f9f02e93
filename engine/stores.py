"""
종류별 저장소 묶음

하나의 SQLiteAdapter 위에 모든 Master/거래 저장소를 만들어 서비스들이 공유한다.
"""

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.ledger.kinds import MASTER_SPECS, TRANSACTION_SPECS
from core.storage.master_store import MasterStore
from core.storage.record_store import RecordStore
from core.types import LookupKind, MasterKind, TransactionKind


class LedgerStores:
    """Master/거래 저장소 레지스트리

    Args:
        db: SQLiteAdapter 인스턴스
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db
        self._masters: dict[MasterKind | LookupKind, MasterStore] = {
            kind: MasterStore(db, spec.table, spec.label, spec.natural_key)
            for kind, spec in MASTER_SPECS.items()
        }
        self._transactions: dict[TransactionKind, RecordStore] = {
            kind: RecordStore(db, spec.table, spec.label)
            for kind, spec in TRANSACTION_SPECS.items()
        }

    def master(self, kind: MasterKind | LookupKind) -> MasterStore:
        return self._masters[kind]

    def transaction(self, kind: TransactionKind) -> RecordStore:
        return self._transactions[kind]
