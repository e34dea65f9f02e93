"""
Balance Propagation Engine

거래 생성/수정/삭제를 Master 누적 컬럼에 반영.
거래 쓰기와 Master 증감은 하나의 트랜잭션(BEGIN IMMEDIATE) 안에서 일어나며,
실패하면 둘 다 롤백된다.

- CREATE: +contribution(new)
- UPDATE: contribution(new) - contribution(old), 한 번의 증감으로 적용
          (연결 Master가 바뀌면 이전 Master에 -old, 새 Master에 +new)
- DELETE: -contribution(old)

증감은 `UPDATE ... SET col = col + ?` 단일 문장이므로 같은 Master에 대한
동시 요청이 서로의 delta를 덮어쓰지 않는다.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import not_found
from core.ledger.delta import MasterDelta
from core.ledger.kinds import MASTER_SPECS, TransactionSpec, transaction_spec
from core.types import MutationOp, TransactionKind
from engine.stores import LedgerStores

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """apply() 결과

    Args:
        record: 저장된 거래 (DELETE면 삭제 전 값)
        master: 증감이 적용된 (현재 연결) Master, 연결이 없으면 None
        released_master: 연결이 바뀌어 -old가 적용된 이전 Master
    """

    record: dict[str, Any]
    master: dict[str, Any] | None = None
    released_master: dict[str, Any] | None = None


class BalancePropagationEngine:
    """거래 → Master 잔액 전파 엔진

    Args:
        db: SQLiteAdapter 인스턴스
        stores: 공유 저장소 묶음 (없으면 새로 생성)

    사용 예시:
    ```python
    engine = BalancePropagationEngine(db)

    result = await engine.apply(
        MutationOp.CREATE, TransactionKind.TRIP, org_id, new_state=values,
    )
    print(result.record["trip_no"], result.master["total_trip"])
    ```
    """

    def __init__(self, db: SQLiteAdapter, stores: LedgerStores | None = None):
        self.db = db
        self.stores = stores or LedgerStores(db)

    async def apply(
        self,
        op: MutationOp,
        kind: TransactionKind,
        org_id: str,
        new_state: Mapping[str, Any] | None = None,
        old_state: Mapping[str, Any] | None = None,
    ) -> ApplyResult:
        """거래 변경과 Master 증감을 원자적으로 적용

        호출자가 이미 트랜잭션 안에 있으면 그 트랜잭션에 합류한다.

        Args:
            op: CREATE / UPDATE / DELETE
            kind: 거래 종류
            org_id: 조직 ID
            new_state: 저장할 전체 값 (파생 필드 포함, CREATE/UPDATE)
            old_state: 저장되어 있던 거래 (UPDATE/DELETE, 반드시 같은 트랜잭션에서 읽은 값)

        Returns:
            ApplyResult

        Raises:
            NotFoundError: 명시한 Master id가 조직에 없음, 또는 거래가 없음
            ConflictError: 자연키 충돌
        """
        spec = transaction_spec(kind)

        if op in (MutationOp.UPDATE, MutationOp.DELETE) and old_state is None:
            raise ValueError(f"{op.value} requires old_state")
        if op in (MutationOp.CREATE, MutationOp.UPDATE) and new_state is None:
            raise ValueError(f"{op.value} requires new_state")

        async with self.db.transaction():
            if op == MutationOp.CREATE:
                result = await self._create(spec, org_id, dict(new_state))
            elif op == MutationOp.UPDATE:
                result = await self._update(spec, org_id, dict(new_state), old_state)
            else:
                result = await self._delete(spec, org_id, old_state)

        logger.info(
            f"{spec.label} {op.value.lower()} 적용",
            extra={
                "org_id": org_id,
                "kind": kind.value,
                "record_id": result.record.get("id"),
                "master_id": result.master.get("id") if result.master else None,
            },
        )
        return result

    # -------------------------------------------------------------------------
    # 연산별 처리
    # -------------------------------------------------------------------------

    async def _create(
        self,
        spec: TransactionSpec,
        org_id: str,
        values: dict[str, Any],
    ) -> ApplyResult:
        master = await self._link(spec, org_id, values, old_state=None)
        await self._check_references(spec, org_id, values)

        store = self.stores.transaction(spec.kind)
        record = await store.insert(org_id, values)
        assert record is not None

        updated = None
        if master is not None:
            updated = await self._increment(spec, org_id, master["id"], spec.contribution(record))
        return ApplyResult(record, updated)

    async def _update(
        self,
        spec: TransactionSpec,
        org_id: str,
        values: dict[str, Any],
        old_state: Mapping[str, Any],
    ) -> ApplyResult:
        master = await self._link(spec, org_id, values, old_state=old_state)
        await self._check_references(spec, org_id, values)

        store = self.stores.transaction(spec.kind)
        record = await store.update(org_id, old_state["id"], values)

        if spec.link is None:
            return ApplyResult(record)

        old_master_id = old_state.get(spec.link.id_field)
        new_master_id = master["id"] if master else None
        old_delta = spec.contribution(old_state)
        new_delta = spec.contribution(record)

        if old_master_id is not None and old_master_id == new_master_id:
            updated = await self._increment(spec, org_id, new_master_id, new_delta - old_delta)
            return ApplyResult(record, updated)

        released = None
        if old_master_id is not None:
            released = await self._increment(spec, org_id, old_master_id, -old_delta)
        updated = None
        if new_master_id is not None:
            updated = await self._increment(spec, org_id, new_master_id, new_delta)

        if released is not None or updated is not None:
            logger.info(
                f"{spec.label} Master 연결 변경",
                extra={
                    "org_id": org_id,
                    "record_id": record["id"],
                    "old_master_id": old_master_id,
                    "new_master_id": new_master_id,
                },
            )
        return ApplyResult(record, updated, released)

    async def _delete(
        self,
        spec: TransactionSpec,
        org_id: str,
        old_state: Mapping[str, Any],
    ) -> ApplyResult:
        store = self.stores.transaction(spec.kind)
        await store.delete(org_id, old_state["id"])

        updated = None
        if spec.link is not None:
            master_id = old_state.get(spec.link.id_field)
            if master_id is not None:
                updated = await self._increment(spec, org_id, master_id, -spec.contribution(old_state))
        return ApplyResult(dict(old_state), updated)

    # -------------------------------------------------------------------------
    # Master 연결
    # -------------------------------------------------------------------------

    async def _link(
        self,
        spec: TransactionSpec,
        org_id: str,
        values: dict[str, Any],
        old_state: Mapping[str, Any] | None,
    ) -> dict[str, Any] | None:
        """values의 Master 연결을 결정하고 id/표시 이름을 채운다

        - 새로 지정한 id: 같은 조직에 있어야 함 (없으면 NotFoundError)
        - id와 이름이 그대로: 기존 연결 유지
        - 그 외: 이름(Master 자연키)으로 조직 내에서 찾고, 없으면 연결 없음
        """
        link = spec.link
        if link is None:
            return None

        master_spec = MASTER_SPECS[link.master_kind]
        master_store = self.stores.master(link.master_kind)

        new_id = values.get(link.id_field) or None
        new_name = values.get(link.name_field)
        old_id = old_state.get(link.id_field) if old_state else None
        old_name = old_state.get(link.name_field) if old_state else None

        master = None
        if new_id and new_id != old_id:
            master = await master_store.get(org_id, new_id)
            if master is None:
                raise not_found(master_spec.label)
        elif new_id and new_name == old_name:
            master = await master_store.get(org_id, new_id)
        if master is None:
            master = await master_store.find_by_natural_key(org_id, new_name)

        if master is None:
            values[link.id_field] = None
            logger.debug(
                f"{spec.label} 연결할 {master_spec.label} 없음",
                extra={"org_id": org_id, "master_name": new_name},
            )
            return None

        values[link.id_field] = master["id"]
        values[link.name_field] = master[master_spec.natural_key]
        return master

    async def _check_references(
        self,
        spec: TransactionSpec,
        org_id: str,
        values: dict[str, Any],
    ) -> None:
        """전파 없는 참조 id가 같은 조직 소속인지 확인"""
        for id_field, master_kind in spec.references.items():
            ref_id = values.get(id_field)
            if not ref_id:
                values[id_field] = None
                continue
            master = await self.stores.master(master_kind).get(org_id, ref_id)
            if master is None:
                raise not_found(MASTER_SPECS[master_kind].label)

    async def _increment(
        self,
        spec: TransactionSpec,
        org_id: str,
        master_id: str,
        delta: MasterDelta | None,
    ) -> dict[str, Any]:
        """Master에 delta 적용 (0인 컬럼은 건너뜀)"""
        assert spec.link is not None
        store = self.stores.master(spec.link.master_kind)
        amounts = delta.nonzero() if delta is not None else {}

        if not amounts:
            master = await store.get(org_id, master_id)
        else:
            master = await store.increment(org_id, master_id, amounts)
            logger.debug(
                f"{store.label} delta 적용",
                extra={"org_id": org_id, "master_id": master_id, "delta": {k: str(v) for k, v in amounts.items()}},
            )

        if master is None:
            raise not_found(store.label)
        return master

