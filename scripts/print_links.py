#!/usr/bin/env python3
"""
Вывести активные ключи с прямыми ссылками (имя файла, размер, скачивания, ссылка).
Запуск из корня проекта: python -m scripts.print_links
"""
from filegate.core.config import settings
from filegate.db.session import SessionLocal
from filegate.services.content.service import ContentRegistry
from filegate.services.keys.service import build_direct_link
from filegate.utils.filesize import format_file_size

PAGE_SIZE = 200


def main():
    username = (settings.telegram_bot_username or "").strip()
    if not username:
        print("TELEGRAM_BOT_USERNAME не задан в .env, ссылки недоступны.")
        return
    db = SessionLocal()
    try:
        registry = ContentRegistry(db)
        offset = 0
        printed = 0
        while True:
            records = registry.list_active(limit=PAGE_SIZE, offset=offset)
            if not records:
                break
            for r in records:
                name = r.display_name or r.kind
                print(f"  {r.key}  {name} ({format_file_size(r.size_bytes)}), downloads: {r.download_count}")
                print(f"    {build_direct_link(username, r.key)}\n")
            printed += len(records)
            offset += PAGE_SIZE
        if not printed:
            print("Активных файлов нет.")
            return
        stats = registry.stats()
        print(f"Всего активных: {stats['active_files']}, скачиваний: {stats['total_downloads']}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
