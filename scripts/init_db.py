from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.shift_attendance.shift_attendance.database.bootstrap import apply_schema, list_tables
from src.shift_attendance.shift_attendance.database.connection import DBConfig

logger = logging.getLogger("init_db")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    config = DBConfig.from_mapping(settings.DB_CONFIG)

    schema_path = REPO_ROOT / "database" / "schema.sql"
    apply_schema(config, schema_path=schema_path)
    tables = list_tables(config)
    logger.info(
        "OK: Applied schema.sql -> %s@%s:%s/%s (tables=%d)",
        config.user,
        config.host,
        config.port,
        config.database,
        len(tables),
    )


if __name__ == "__main__":
    main()
