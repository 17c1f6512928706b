from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .branches.controller import register as register_branches
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables, seed_state
from .database.connection import DBConfig
from .reconciliation.controller import register as register_reconciliation
from .reports.controller import register as register_reports
from .requests.controller import register as register_requests
from .schedules.controller import register as register_schedules
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = dict(getattr(settings, "DB_CONFIG"))
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if container is None:
        remote_sync = bool(getattr(settings, "REMOTE_SYNC_ENABLED", False))
        logger.info(
            "settings=%s db=%s@%s:%s/%s remote_sync=%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
            remote_sync,
        )

        if remote_sync and getattr(settings, "AUTO_INIT_DB", False):
            config = DBConfig.from_mapping(db_config)
            apply_schema(config, schema_path=SCHEMA_PATH)
            logger.info("schema ready (tables=%d)", len(list_tables(config)))

        container = build_container(
            cache_dir=getattr(settings, "CACHE_DIR"),
            db_config=db_config,
            remote_sync_enabled=remote_sync,
            grace_minutes=getattr(settings, "LATE_GRACE_MINUTES"),
            location_timeout=getattr(settings, "LOCATION_TIMEOUT_SECONDS"),
            verification_delay=getattr(settings, "VERIFICATION_DELAY_SECONDS"),
        )
        if getattr(settings, "AUTO_SEED_DB", False):
            seed_state(container.state)

    app.extensions["shift_attendance"] = container

    register_users(app, container)
    register_branches(app, container)
    register_attendance(app, container)
    register_reconciliation(app, container)
    register_schedules(app, container)
    register_requests(app, container)
    register_reports(app, container)

    return app
