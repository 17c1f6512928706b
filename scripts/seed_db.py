from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.shift_attendance.shift_attendance.container import build_container
from src.shift_attendance.shift_attendance.database.bootstrap import seed_state

logger = logging.getLogger("seed_db")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    container = build_container(cache_dir=settings.CACHE_DIR, db_config=db_config, remote_sync_enabled=True)
    try:
        if not seed_state(container.state):
            # Store already had data: make sure MySQL holds everything the cache does.
            container.sync.push_all()
    finally:
        container.sync.close()

    logger.info(
        "OK: Seeded database -> %s@%s:%s/%s (branches=%d, users=%d)",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
        len(container.state.branches),
        len(container.state.users),
    )


if __name__ == "__main__":
    main()
