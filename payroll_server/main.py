# payroll_server/main.py
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from payroll_server.api import backups, dashboard, employees, exports, imports, records
from payroll_server.core.backup import BackupManager
from payroll_server.core.config import ServerSettings, settings as default_settings
from payroll_server.core.importer import ImportReconciler
from payroll_server.core.storage import PayrollStore

VERSION = "1.0.0"


def configure_logging(settings: ServerSettings) -> None:
    handlers = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE, encoding="utf-8"))

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


configure_logging(default_settings)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[ServerSettings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting payroll server, data directory {settings.DATA_DIR}")

        store = PayrollStore(settings.DATA_DIR, default_user=settings.DEFAULT_USER)
        app.state.settings = settings
        app.state.store = store
        app.state.backups = BackupManager(store, settings.backups_dir)
        app.state.importer = ImportReconciler(store, preview_limit=settings.IMPORT_PREVIEW_LIMIT)
        await store.open()

        yield

        logger.info("Shutting down, closing payroll store...")
        try:
            await store.close()
        except Exception as e:
            logger.error(f"Error during shutdown: {str(e)}")

    app = FastAPI(
        title="Payroll Management API",
        description="API for managing monthly payroll records, imports and backups",
        version=VERSION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    app.include_router(employees.router)
    app.include_router(records.router)
    app.include_router(backups.router)
    app.include_router(imports.router)
    app.include_router(exports.router)
    app.include_router(dashboard.router)

    @app.get("/", tags=["health"])
    async def health_check():
        return {
            "status": "ok",
            "message": "Server is running",
            "version": VERSION
        }

    return app


app = create_app()


def run():
    import uvicorn
    uvicorn.run("payroll_server.main:app", host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    run()
