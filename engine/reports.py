"""
리포트 서비스

조직 범위 읽기 전용 집계. 이미 일관된 잔액을 읽기만 하며, 어떤 값도 쓰거나 보정하지 않는다.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.constants import Defaults
from core.errors import storage_errors
from core.ledger.kinds import TRIP_NO_ORDER
from core.types import MasterKind, TransactionKind
from core.utils.money import ZERO, quantize
from engine.stores import LedgerStores

logger = logging.getLogger(__name__)


def _total(rows: list[dict[str, Any]], *columns: str) -> Decimal:
    return quantize(sum((row[c] for row in rows for c in columns), ZERO))


class ReportService:
    """리포트 서비스

    Args:
        db: SQLiteAdapter 인스턴스 (읽기 전용 연결 가능)
        stores: 공유 저장소 묶음 (없으면 새로 생성)
    """

    def __init__(self, db: SQLiteAdapter, stores: LedgerStores | None = None):
        self.db = db
        self.stores = stores or LedgerStores(db)

    async def trip_report(
        self,
        org_id: str,
        date_from: date | str | None = None,
        date_to: date | str | None = None,
        vehicle_no: str | None = None,
        driver_name: str | None = None,
    ) -> dict[str, Any]:
        """Trip 리포트

        Args:
            org_id: 조직 ID
            date_from: 시작일 (포함)
            date_to: 종료일 (포함)
            vehicle_no: 차량번호 부분 일치 (대소문자 무시)
            driver_name: 운전자 이름 부분 일치 (대소문자 무시)

        Returns:
            {"trips": [...], "summary": {total_trips, total_fare, total_expense, total_profit, total_km}}
        """
        contains = {}
        if vehicle_no:
            contains["veh_no"] = vehicle_no
        if driver_name:
            contains["driver_name"] = driver_name

        with storage_errors("trip_report", org_id=org_id):
            trips = await self.stores.transaction(TransactionKind.TRIP).list(
                org_id,
                contains=contains,
                date_from=date_from,
                date_to=date_to,
                order_by=TRIP_NO_ORDER,
            )

        summary = {
            "total_trips": len(trips),
            "total_fare": _total(trips, "total_trip_fare"),
            "total_expense": _total(trips, "trip_expense"),
            "total_profit": _total(trips, "profit_statement"),
            "total_km": sum(trip["trip_km"] for trip in trips),
        }
        return {"trips": trips, "summary": summary}

    async def balance_sheet(self, org_id: str) -> dict[str, Any]:
        """잔액표 (거래처 / 운전자 / 운송사 요약)"""
        with storage_errors("balance_sheet", org_id=org_id):
            parties = await self.stores.master(MasterKind.BILLING_PARTY).list(org_id, order_by="name ASC")
            drivers = await self.stores.master(MasterKind.DRIVER).list(org_id, order_by="name ASC")
            transporters = await self.stores.master(MasterKind.TRANSPORTER).list(org_id, order_by="name ASC")

        return {
            "party_summary": {
                "total_bill_amount": _total(parties, "bill_amt_trip", "bill_amt_rt"),
                "total_received": _total(parties, "receive_amt"),
                "total_balance": _total(parties, "balance_amt"),
                "parties": parties,
            },
            "driver_summary": {
                "total_debit": _total(drivers, "debit"),
                "total_credit": _total(drivers, "credit"),
                "total_balance": _total(drivers, "close_bal"),
                "drivers": drivers,
            },
            "transporter_summary": {
                "total_bill_amount": _total(transporters, "bill_amt"),
                "total_paid": _total(transporters, "paid_amt"),
                "total_balance": _total(transporters, "close_bal"),
                "transporters": transporters,
            },
        }

    async def dashboard_stats(self, org_id: str) -> dict[str, Any]:
        """대시보드 통계 (건수, 매출/비용/이익 합계, 최근 Trip)"""
        stores = self.stores
        with storage_errors("dashboard_stats", org_id=org_id):
            counts = {
                "vehicle_count": await stores.master(MasterKind.VEHICLE).count(org_id),
                "driver_count": await stores.master(MasterKind.DRIVER).count(org_id),
                "party_count": await stores.master(MasterKind.BILLING_PARTY).count(org_id),
                "transporter_count": await stores.master(MasterKind.TRANSPORTER).count(org_id),
                "trip_count": await stores.transaction(TransactionKind.TRIP).count(org_id),
            }
            totals = await stores.transaction(TransactionKind.TRIP).sum_columns(
                org_id, ("total_trip_fare", "trip_expense", "profit_statement")
            )
            recent = await stores.transaction(TransactionKind.TRIP).list(
                org_id, order_by="created_at DESC, rowid DESC", limit=Defaults.RECENT_TRIP_LIMIT
            )

        recent_trips = [
            {
                key: trip[key]
                for key in (
                    "id", "trip_no", "date", "veh_no", "from_location", "to_location",
                    "total_trip_fare", "profit_statement",
                )
            }
            for trip in recent
        ]

        return {
            **counts,
            "total_revenue": totals["total_trip_fare"],
            "total_expense": totals["trip_expense"],
            "total_profit": totals["profit_statement"],
            "recent_trips": recent_trips,
        }
