from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .api.controller import register as register_api
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["REQUEST_TIMEOUT_SECONDS"] = float(getattr(settings, "REQUEST_TIMEOUT_SECONDS", 0) or 0)
    app.json.sort_keys = False

    backend = str(getattr(settings, "STORE_BACKEND", "mysql")).lower()
    db_config = dict(getattr(settings, "DB_CONFIG", {}))
    logger.info(
        "settings=%s backend=%s timezone=%s",
        settings_module,
        backend,
        getattr(settings, "TIMEZONE", "UTC"),
    )

    if container is None and backend == "mysql":
        logger.info(
            "db=%s@%s:%s/%s",
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")

    if container is None:
        container = build_container(settings)

    app.extensions["timekeeping"] = container
    register_api(app, container)

    return app
