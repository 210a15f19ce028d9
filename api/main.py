from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps_script import router as apps_script_router
from auth import repository as auth_repository
from auth import router as auth_router
from core.config import Settings
from core.db import Database
from core.google import GoogleClient
from core.log import configure_logging
from core.sealing import TokenSealer
from dashboard import router as dashboard_router
from ingestion import router as ingestion_router
from ingestion.errors import IngestError
from ingestion.service import IngestService
from ingestion.store import CollectionStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Open the DB pool once per process; the users table is created on demand.
    database: Database = app.state.database
    await database.connect()
    await auth_repository.ensure_user_schema(database)
    try:
        yield
    finally:
        await database.close()


async def ingest_error_handler(_: Request, exc: IngestError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("ingest_failed error=%s", exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(lifespan=lifespan)

    # Long-lived collaborators, built once and shared by every request.
    app.state.settings = settings
    app.state.database = Database(settings.database_url)
    app.state.ingest_service = IngestService(CollectionStore(settings.data_dir))
    app.state.google = GoogleClient(settings.google_client_id, settings.google_client_secret)
    app.state.token_sealer = TokenSealer(settings.google_token_secret)

    # Allow the dashboard frontend to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(IngestError, ingest_error_handler)

    app.include_router(ingestion_router.router, tags=["ingestion"])
    app.include_router(dashboard_router.router, tags=["dashboard"])
    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(apps_script_router.router, tags=["apps-script"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    def root() -> dict:
        return {"message": "automation-keeper api"}

    return app


configure_logging()
app = create_app()
