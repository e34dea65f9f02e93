"""
Master 서비스

Vehicle / Driver / Transporter / BillingParty / StockItem 및
조회용 ExpenseCategory / PaymentMode 의 CRUD.

누적 컬럼(total_trip, debit, paid_amt, stk_in 등)은 거래를 통해서만 바뀌며,
Master 수정으로는 개시 잔액(open_bal/open_qty)과 설명 필드만 바꿀 수 있다.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.errors import ConflictError, ErrorCodes, storage_errors
from core.ledger.kinds import TRANSACTION_SPECS, MasterSpec, check_required, master_spec
from core.ledger.payloads import parse_payload
from core.types import ExpenseCategoryMode, LookupKind, MasterKind
from core.utils.timezone import now_iso
from engine.stores import LedgerStores

logger = logging.getLogger(__name__)

Kind = MasterKind | LookupKind


class MasterService:
    """Master 서비스

    Args:
        db: SQLiteAdapter 인스턴스
        stores: 공유 저장소 묶음 (없으면 새로 생성)

    사용 예시:
    ```python
    service = MasterService(db)
    party = await service.create(MasterKind.BILLING_PARTY, org_id, {"name": "ABC Logistics", "openBal": 1000})
    await service.delete(MasterKind.BILLING_PARTY, org_id, party["id"])  # 참조 거래가 있으면 ConflictError
    ```
    """

    def __init__(self, db: SQLiteAdapter, stores: LedgerStores | None = None):
        self.db = db
        self.stores = stores or LedgerStores(db)

    async def create(self, kind: Kind, org_id: str, data: Mapping[str, Any] | Any) -> dict[str, Any]:
        """Master 생성

        Raises:
            ValidationError: 필수 필드 누락
            ConflictError: 같은 조직에 같은 이름/차량번호 존재
        """
        spec = master_spec(kind)
        values = parse_payload(spec.payload, data).values()
        check_required(spec.required, values)
        store = self.stores.master(kind)

        async def work() -> dict[str, Any]:
            await self._check_natural_key(spec, org_id, values[spec.natural_key])
            record = await store.insert(org_id, values)
            assert record is not None
            return record

        with storage_errors("create_master", org_id=org_id, kind=kind.value):
            record = await self.db.run_in_transaction(work)

        logger.info(
            f"{spec.label} 생성",
            extra={"org_id": org_id, "kind": kind.value, "record_id": record["id"]},
        )
        return record

    async def update(
        self,
        kind: Kind,
        org_id: str,
        record_id: str,
        data: Mapping[str, Any] | Any,
    ) -> dict[str, Any]:
        """Master 수정 (보낸 필드만)

        자연키(이름/차량번호)가 바뀌면 연결된 거래의 표시 이름도 함께 갱신한다.

        Raises:
            NotFoundError: 없거나 다른 조직 소유
            ConflictError: 바꾼 이름이 이미 존재
        """
        spec = master_spec(kind)
        patch = parse_payload(spec.payload, data).values()
        store = self.stores.master(kind)

        async def work() -> dict[str, Any]:
            old = await store.require(org_id, record_id)
            merged = {**old, **patch}
            check_required(spec.required, merged)

            renamed = merged[spec.natural_key] != old[spec.natural_key]
            if renamed:
                await self._check_natural_key(spec, org_id, merged[spec.natural_key])

            record = await store.update(org_id, record_id, patch)
            if renamed:
                await self._sync_display_names(kind, org_id, record_id, record[spec.natural_key])
            return record

        with storage_errors("update_master", org_id=org_id, kind=kind.value, record_id=record_id):
            return await self.db.run_in_transaction(work)

    async def delete(self, kind: Kind, org_id: str, record_id: str) -> None:
        """Master 삭제

        Raises:
            NotFoundError: 없거나 다른 조직 소유
            ConflictError: 참조 중인 거래 존재 (MASTER_IN_USE)
        """
        spec = master_spec(kind)
        store = self.stores.master(kind)

        async def work() -> None:
            await store.require(org_id, record_id)
            references = await store.reference_count(org_id, record_id)
            if references:
                raise ConflictError(
                    f"{spec.label} is referenced by {references} transaction(s)",
                    code=ErrorCodes.MASTER_IN_USE,
                )
            await store.delete(org_id, record_id)

        with storage_errors("delete_master", org_id=org_id, kind=kind.value, record_id=record_id):
            await self.db.run_in_transaction(work)

        logger.info(
            f"{spec.label} 삭제",
            extra={"org_id": org_id, "kind": kind.value, "record_id": record_id},
        )

    async def get(self, kind: Kind, org_id: str, record_id: str) -> dict[str, Any]:
        """ID로 조회 (없거나 다른 조직이면 NotFoundError)"""
        with storage_errors("get_master", org_id=org_id, kind=kind.value):
            return await self.stores.master(kind).require(org_id, record_id)

    async def list(self, kind: Kind, org_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        """조직 범위 목록 (결제 수단은 이름 오름차순, 나머지는 최근 생성 순)"""
        spec = master_spec(kind)
        with storage_errors("list_master", org_id=org_id, kind=kind.value):
            return await self.stores.master(kind).list(org_id, order_by=spec.order_by, limit=limit)

    async def find_by_name(self, kind: Kind, org_id: str, name: str) -> dict[str, Any] | None:
        """자연키(이름/차량번호)로 조회"""
        with storage_errors("find_master", org_id=org_id, kind=kind.value):
            return await self.stores.master(kind).find_by_natural_key(org_id, name)

    async def ensure_category(
        self,
        org_id: str,
        name: str,
        mode: ExpenseCategoryMode | str,
    ) -> bool:
        """비용 카테고리가 없으면 생성 (멱등)

        Returns:
            새로 만들었으면 True
        """
        store = self.stores.master(LookupKind.EXPENSE_CATEGORY)

        async def work() -> bool:
            if await store.find_by_natural_key(org_id, name) is not None:
                return False
            await store.insert(org_id, {"name": name.strip(), "mode": mode})
            return True

        with storage_errors("ensure_category", org_id=org_id):
            return await self.db.run_in_transaction(work)

    # -------------------------------------------------------------------------
    # 내부
    # -------------------------------------------------------------------------

    async def _check_natural_key(self, spec: MasterSpec, org_id: str, value: Any) -> None:
        existing = await self.stores.master(spec.kind).find_by_natural_key(org_id, value)
        if existing is not None:
            raise ConflictError(
                f"{spec.label} {value} already exists",
                field=spec.natural_key,
            )

    async def _sync_display_names(
        self,
        kind: Kind,
        org_id: str,
        master_id: str,
        display_name: str,
    ) -> None:
        """연결된 거래의 표시 이름 캐시 갱신"""
        for tx_spec in TRANSACTION_SPECS.values():
            link = tx_spec.link
            if link is None or link.master_kind != kind:
                continue
            cursor = await self.db.execute(
                f"UPDATE {tx_spec.table.name} SET {link.name_field} = ?, updated_at = ? "
                f"WHERE organization_id = ? AND {link.id_field} = ?",
                (display_name, now_iso(), org_id, master_id),
            )
            if cursor.rowcount:
                logger.debug(
                    f"{tx_spec.label} 표시 이름 갱신",
                    extra={"org_id": org_id, "master_id": master_id, "rows": cursor.rowcount},
                )
