from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .common.retry import configure_retry
from .core.constants import DEFAULT_HORIZON_DAYS, DEFAULT_RETRY_BACKOFF_SECONDS, DEFAULT_ROLLUP_TTL_SECONDS
from .core.exceptions import (
    DomainError,
    InvalidTransition,
    NotFound,
    SlotConflict,
    TransientStorageFailure,
    ValidationError,
)
from .database.bootstrap import apply_schema, list_tables

from .container import Container, build_container
from .attendance.controller import register as register_attendance
from .reservations.controller import register as register_reservations
from .statistics.controller import register as register_statistics

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[2] / "database" / "schema.sql"

# Most specific first.
_STATUS_BY_ERROR = (
    (NotFound, 404),
    (ValidationError, 400),
    (SlotConflict, 409),
    (InvalidTransition, 422),
    (TransientStorageFailure, 503),
)


def status_for(error: DomainError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return code
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        code = status_for(e)
        if code >= 500:
            logger.error("Storage unavailable: %s", e)
        return jsonify({"success": False, "error": type(e).__name__, "message": str(e)}), code


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory.

    Tests pass a container wired over in-memory repositories; otherwise one is
    built against MySQL from the active settings module.
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure_retry(backoff=float(getattr(settings, "TRANSIENT_RETRY_BACKOFF", DEFAULT_RETRY_BACKOFF_SECONDS)))

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            horizon_days=int(getattr(settings, "HORIZON_DAYS", DEFAULT_HORIZON_DAYS)),
            allow_backfill=bool(getattr(settings, "ALLOW_BACKFILL", False)),
            rollup_ttl_seconds=float(getattr(settings, "ROLLUP_TTL_SECONDS", DEFAULT_ROLLUP_TTL_SECONDS)),
        )

    app.extensions["tutoring_ledger"] = container
    register_error_handlers(app)
    register_reservations(app, container)
    register_attendance(app, container)
    register_statistics(app, container)

    return app
