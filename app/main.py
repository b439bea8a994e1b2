from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - A PostgreSQL URL must resolve from DATABASE_URL, CLOUD_DATABASE_URL
      or LOCAL_DATABASE_URL.
    - INSIGHTS_PROVIDER, when set, must be a known provider, and the
      matching API key must be present for openai and gemini.
    """

    from app.config import INSIGHT_PROVIDERS
    from db.config import DatabaseURLNotConfiguredError, load_env_files, resolve_database_url

    load_env_files()

    errors: list[str] = []

    # --- Database URL ---------------------------------------------------
    try:
        resolve_database_url()
    except DatabaseURLNotConfiguredError as exc:
        errors.append(str(exc))

    # --- Insight provider -----------------------------------------------
    provider = os.getenv("INSIGHTS_PROVIDER", "").strip().lower()
    if provider and provider not in INSIGHT_PROVIDERS:
        errors.append(
            f"INSIGHTS_PROVIDER='{provider}' is not valid. "
            f"Allowed values: {sorted(INSIGHT_PROVIDERS)}."
        )
    elif provider == "openai" and not os.getenv("OPENAI_API_KEY", "").strip():
        errors.append("INSIGHTS_PROVIDER=openai requires OPENAI_API_KEY.")
    elif provider == "gemini" and not os.getenv("GOOGLE_API_KEY", "").strip():
        errors.append("INSIGHTS_PROVIDER=gemini requires GOOGLE_API_KEY.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _ensure_schema() -> None:
    """
    Create the policies and operations tables when they do not exist yet.

    Existing tables are left untouched.
    """
    import db.models  # noqa: F401 registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    Base.metadata.create_all(bind=get_engine())


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and create missing tables on boot."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _ensure_schema()
    logging.getLogger(__name__).info("Database schema ready")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Policy Ingest API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import (
        insights_router,
        operations_router,
        policies_router,
        policy_upload_router,
    )

    application.include_router(policy_upload_router)
    application.include_router(policies_router)
    application.include_router(insights_router)
    application.include_router(operations_router)

    @application.get("/health")
    def healthcheck() -> JSONResponse:
        try:
            _check_db()
        except RuntimeError:
            logging.getLogger(__name__).exception("Health check failed")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "UNAVAILABLE"},
            )
        return JSONResponse(status_code=status.HTTP_200_OK, content={"status": "OK"})

    return application


app = create_app()
