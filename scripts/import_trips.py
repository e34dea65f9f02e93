"""
Trip/Expense Bulk Import

JSON 파일: {"trips": [...], "expenses": [...], "expenseCategories": [...]}

사용법:
    python -m scripts.import_trips --org ORG_ID --file batch.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import Settings, load_settings
from core.errors import LedgerError
from core.logging import setup_logging
from core.storage.schema import init_schema
from engine.importer import BulkImportService

logger = logging.getLogger(__name__)


async def main(settings: Settings, org_id: str, batch_file: Path) -> int:
    batch = json.loads(batch_file.read_text(encoding="utf-8"))

    async with SQLiteAdapter(settings.db_path, busy_timeout_ms=settings.busy_timeout_ms) as db:
        await init_schema(db)
        importer = BulkImportService(db, timeout_sec=settings.bulk_import_timeout_sec)
        try:
            result = await importer.import_batch(org_id, batch)
        except LedgerError as e:
            logger.error(f"Import 실패: {e.message}", extra={"org_id": org_id, "code": e.code})
            print(json.dumps(e.to_dict(), ensure_ascii=False, indent=2))
            return 1

    print(json.dumps(result.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Trip/Expense Bulk Import")
    parser.add_argument("--org", required=True, help="조직 ID")
    parser.add_argument("--file", type=Path, required=True, help="배치 JSON 파일")
    parser.add_argument("--config", type=Path, default=None, help="settings.yaml 경로")
    args = parser.parse_args()

    settings = load_settings(args.config)
    setup_logging("import", console_level=settings.log_level, log_dir=settings.log_dir)
    sys.exit(asyncio.run(main(settings, args.org, args.file)))
