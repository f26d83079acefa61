from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .activity.controller import register as register_activity
from .breaks.controller import register as register_breaks
from .common.serializers import to_jsonable
from .config import get_settings_module
from .container import Container, build_container
from .core.constants import DEFAULT_LATE_CHECKIN_EXTRA_MINUTES
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .logging_setup import configure_logging
from .sessions.controller import register as register_sessions

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[2]


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify({"ok": False, **to_jsonable(e.to_dict())}), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return (
            jsonify({"ok": False, "error": f"errors.http{e.code}", "message": e.description, "context": {}}),
            e.code,
        )

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("unhandled error")
        return (
            jsonify({"ok": False, "error": "errors.internal", "message": "Internal server error", "context": {}}),
            500,
        )


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

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
            apply_schema(db_config, schema_path=ROOT_DIR / "database" / "schema.sql")
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=ROOT_DIR / "database" / "seed.sql")
            logger.info("demo seed ready")

        container = build_container(
            db_config=db_config,
            late_checkin_extra_minutes=int(
                getattr(settings, "LATE_CHECKIN_EXTRA_MINUTES", DEFAULT_LATE_CHECKIN_EXTRA_MINUTES)
            ),
        )

    app.extensions["shift_tracker"] = container
    _register_error_handlers(app)

    register_sessions(app, container)
    register_breaks(app, container)
    register_activity(app, container)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"ok": True, "message": "ok", "data": {"status": "up"}})

    return app
