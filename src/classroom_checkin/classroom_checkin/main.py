from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import Container, build_container
from .conversation.controller import register as register_conversation
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DatabaseConnection, DBConfig
from .scheduling.controller import register as register_scheduling
from .sessions.controller import register as register_sessions

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)

    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format=LOG_FORMAT)

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["LINE_CHANNEL_SECRET"] = getattr(settings, "LINE_CHANNEL_SECRET", "")
    app.config["TASK_TOKEN"] = getattr(settings, "TASK_TOKEN", "")
    app.config["TIMEZONE"] = getattr(settings, "TIMEZONE", "Asia/Taipei")

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(conn, schema_path=schema_path)
            logger.info("Schema ready (tables=%s)", len(list_tables(conn)))

        container = build_container(settings=settings)

    if not app.config["LINE_CHANNEL_SECRET"]:
        logger.warning("LINE_CHANNEL_SECRET is not set; webhook requests will be rejected")
    if container.line_client is None:
        logger.warning("LINE_CHANNEL_ACCESS_TOKEN is not set; replies and pushes are disabled")

    register_conversation(app, container)
    register_sessions(app, container)
    register_scheduling(app, container)

    return app
