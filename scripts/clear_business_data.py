"""
조직 업무 데이터 삭제 (거래 + Master)

되돌릴 수 없으므로 --yes 없이는 실행하지 않는다.

사용법:
    python -m scripts.clear_business_data --org ORG_ID --yes
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import Settings, load_settings
from core.logging import setup_logging
from engine.maintenance import clear_business_data

logger = logging.getLogger(__name__)


async def main(settings: Settings, org_id: str) -> None:
    async with SQLiteAdapter(settings.db_path, busy_timeout_ms=settings.busy_timeout_ms) as db:
        deleted = await clear_business_data(db, org_id)

    for table, count in deleted.items():
        logger.info(f"  - {table}: {count} rows deleted")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="조직 업무 데이터 삭제")
    parser.add_argument("--org", required=True, help="조직 ID")
    parser.add_argument("--yes", action="store_true", help="삭제 확인")
    parser.add_argument("--config", type=Path, default=None, help="settings.yaml 경로")
    args = parser.parse_args()

    if not args.yes:
        print("되돌릴 수 없는 작업입니다. 계속하려면 --yes 를 붙여 다시 실행하세요.")
        sys.exit(1)

    settings = load_settings(args.config)
    setup_logging("maintenance", console_level=settings.log_level, log_dir=settings.log_dir)
    asyncio.run(main(settings, args.org))
