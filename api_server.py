"""
FastAPI сервер для API сертификатов
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config.settings import get_settings, setup_logging
from certengine.api import CertificateAPI
from certengine.database import get_db_manager, get_record_store
from certengine.service import CertificateService
from certengine.storage import BlobStore, build_blob_store

logger = logging.getLogger(__name__)


def make_health_probe(db_manager, blob_store: BlobStore, bucket: str):
    """Проверка БД и хранилища документов для /health"""

    async def probe() -> dict:
        components = {}

        # Проверка БД
        try:
            if await db_manager.health_check():
                components["database"] = {
                    "status": "healthy",
                    "message": "Database connection is active"
                }
            else:
                components["database"] = {
                    "status": "unhealthy",
                    "message": "Database did not answer"
                }
        except Exception as e:
            components["database"] = {
                "status": "unhealthy",
                "message": f"Database error: {str(e)}"
            }

        # Проверка хранилища документов
        try:
            buckets = await blob_store.list_buckets()
            components["storage"] = {
                "status": "healthy",
                "message": f"Bucket {bucket} " + ("exists" if bucket in buckets else "will be created on first upload")
            }
        except Exception as e:
            # Документы все равно сохранятся в запись (data URI)
            components["storage"] = {
                "status": "degraded",
                "message": f"Storage error: {str(e)}"
            }

        return components

    return probe


def create_app() -> FastAPI:
    """Создание FastAPI приложения"""
    settings = get_settings()
    settings.create_directories()
    setup_logging(settings)

    db_manager = get_db_manager()
    blob_store = build_blob_store(settings)
    service = CertificateService(get_record_store(), blob_store, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Управление жизненным циклом приложения"""
        logger.info("Запуск API сервера...")
        yield
        logger.info("Остановка API сервера...")
        await db_manager.dispose()

    certificate_api = CertificateAPI(
        service,
        api_key=settings.api_key,
        health_probe=make_health_probe(db_manager, blob_store, settings.storage_bucket),
        lifespan=lifespan
    )
    app = certificate_api.app
    app.state.certificate_api = certificate_api

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Раздача документов локального хранилища
    if settings.storage_backend == "local":
        app.mount("/files", StaticFiles(directory=str(settings.storage_path)), name="files")

    return app


if __name__ == "__main__":
    import uvicorn

    current = get_settings()
    uvicorn.run(
        create_app(),
        host=current.api_host,
        port=current.api_port,
        log_level=current.log_level.lower()
    )
