"""
DB 스키마 초기화

사용법:
    python -m scripts.init_db
    python -m scripts.init_db --db data/fleetledger.db
"""

import argparse
import asyncio
import logging
from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import load_settings
from core.logging import setup_logging
from core.storage.schema import ALL_TABLES, init_schema

logger = logging.getLogger(__name__)


async def main(db_path: Path, busy_timeout_ms: int) -> None:
    async with SQLiteAdapter(db_path, busy_timeout_ms=busy_timeout_ms) as db:
        await init_schema(db)
        for table in ALL_TABLES:
            exists = await db.table_exists(table.name)
            logger.info(f"  - {table.name}: {'OK' if exists else 'MISSING'}")

    logger.info(f"스키마 초기화 완료: {db_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="DB 스키마 초기화")
    parser.add_argument("--db", type=Path, default=None, help="DB 파일 경로 (기본: settings.yaml)")
    parser.add_argument("--config", type=Path, default=None, help="settings.yaml 경로")
    args = parser.parse_args()

    settings = load_settings(args.config)
    setup_logging("init_db", console_level=settings.log_level, log_dir=settings.log_dir)
    asyncio.run(main(args.db or settings.db_path, settings.busy_timeout_ms))
