from __future__ import annotations

import importlib
import logging
from pathlib import Path

from config import get_settings_module

from classroom_checkin.database.bootstrap import apply_schema, list_tables
from classroom_checkin.database.connection import DatabaseConnection, DBConfig


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    settings = importlib.import_module(get_settings_module())
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(settings.DB_CONFIG))

    schema_path = Path(__file__).resolve().parents[1] / "database" / "schema.sql"
    count = apply_schema(conn, schema_path=schema_path)
    cfg = conn.config
    print(
        f"OK: Applied {count} statements -> {cfg.user}@{cfg.host}:{cfg.port}/{cfg.database} "
        f"(tables={len(list_tables(conn))})"
    )


if __name__ == "__main__":
    main()
