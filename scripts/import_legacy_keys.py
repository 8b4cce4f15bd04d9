#!/usr/bin/env python3
"""
Импорт старого file_keys.json в content_records (существующие ключи пропускаются).
Запуск из корня проекта: python -m scripts.import_legacy_keys path/to/file_keys.json
"""
import argparse
import json
import sys
from pathlib import Path

from filegate.core.config import settings
from filegate.core.logging import configure_logging
from filegate.db.init_db import init_db
from filegate.db.session import SessionLocal
from filegate.services.content.legacy import import_legacy_keys
from filegate.services.content.service import ContentRegistry
from filegate.services.content.source_posts import SourcePostStore


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import legacy file_keys.json")
    parser.add_argument("path", nargs="?", default="file_keys.json")
    parser.add_argument("--create-tables", action="store_true", help="create missing tables first")
    args = parser.parse_args(argv)

    configure_logging()
    path = Path(args.path)
    if not path.exists():
        print(f"{path} не найден, импортировать нечего.")
        return 0
    data = json.loads(path.read_text(encoding="utf-8"))
    print(f"Найдено записей: {len(data)}")

    if args.create_tables:
        init_db()

    db = SessionLocal()
    try:
        result = import_legacy_keys(
            ContentRegistry(db),
            SourcePostStore(db),
            data,
            settings.source_channel_id,
        )
    finally:
        db.close()
    print(f"Импортировано: {result['migrated']}, пропущено: {result['skipped']}, ошибок: {result['failed']}")
    return 0 if result["failed"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
