"""
API для работы с сертификатами
"""
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer
from pydantic import BaseModel

from .service import CertificateService

# Код ответа по виду ошибки
KIND_STATUS_CODES = {
    "NotFound": 404,
    "AlreadyExists": 409,
    "InvalidState": 422,
    "ValidationError": 400,
}


class IssueRequest(BaseModel):
    """Модель запроса на выдачу сертификата"""
    notes: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    """Модель запроса на смену статуса"""
    status: str


def status_code_for(result) -> int:
    """HTTP код для результата операции"""
    if result.success:
        return 200
    return KIND_STATUS_CODES.get(result.kind, 500)


class CertificateAPI:
    """API для работы с сертификатами"""

    def __init__(
            self,
            service: CertificateService,
            api_key: Optional[str] = None,
            health_probe: Optional[Callable[[], Awaitable[Dict[str, Any]]]] = None,
            lifespan=None
    ):
        self.service = service
        self.api_key = api_key
        self.health_probe = health_probe
        self.logger = logging.getLogger(__name__)

        # Создание FastAPI приложения
        self.app = FastAPI(
            title="Certificate Lifecycle API",
            description="API выдачи и хранения сертификатов персонала аэропортов",
            version="1.0.0",
            lifespan=lifespan
        )

        self._setup_routes()

    def _verify_api_key(self, token=Depends(HTTPBearer())) -> bool:
        """Проверка API ключа"""
        if self.api_key and token.credentials != self.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")
        return True

    def _respond(self, result) -> JSONResponse:
        status_code = status_code_for(result)
        if status_code >= 500:
            self.logger.error(f"Ошибка операции ({result.kind}): {result.error}")
        return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))

    def _setup_routes(self):
        """Настройка маршрутов API"""
        auth = Depends(self._verify_api_key) if self.api_key else True

        @self.app.post("/trainings/{training_id}/certificate")
        async def issue_certificate(
                training_id: str,
                request: Optional[IssueRequest] = None,
                authorized: bool = auth
        ):
            """Выдача сертификата по завершенному обучению"""
            notes = request.notes if request else None
            return self._respond(await self.service.issue_from_training(training_id, notes=notes))

        @self.app.post("/certificates")
        async def add_certificate(
                payload: Dict[str, Any] = Body(...),
                authorized: bool = auth
        ):
            """Ручное добавление ранее выданного сертификата"""
            return self._respond(await self.service.add_certificate(payload))

        @self.app.get("/certificates/{certificate_id}")
        async def get_certificate(
                certificate_id: str,
                authorized: bool = auth
        ):
            """Сертификат со связанными сущностями и статусом"""
            return self._respond(await self.service.get_certificate_details(certificate_id))

        @self.app.post("/certificates/{certificate_id}/pdf")
        async def generate_pdf(
                certificate_id: str,
                authorized: bool = auth
        ):
            """Генерация (перегенерация) документа"""
            return self._respond(await self.service.generate_certificate_pdf(certificate_id))

        @self.app.put("/certificates/{certificate_id}/pdf")
        async def upload_pdf(
                certificate_id: str,
                request: Request,
                authorized: bool = auth
        ):
            """Загрузка готового PDF (тело запроса - файл)"""
            data = await request.body()
            content_type = request.headers.get("content-type")
            return self._respond(
                await self.service.upload_existing_certificate(certificate_id, data, content_type)
            )

        @self.app.patch("/certificates/{certificate_id}/status")
        async def update_status(
                certificate_id: str,
                request: StatusUpdateRequest,
                authorized: bool = auth
        ):
            """Смена административного статуса"""
            return self._respond(
                await self.service.update_certificate_status(certificate_id, request.status)
            )

        @self.app.delete("/certificates/{certificate_id}")
        async def delete_certificate(
                certificate_id: str,
                authorized: bool = auth
        ):
            """Удаление сертификата"""
            return self._respond(await self.service.delete_certificate(certificate_id))

        @self.app.get("/personnel/{person_id}/profile")
        async def get_profile(
                person_id: str,
                authorized: bool = auth
        ):
            """Сводный профиль сотрудника"""
            return self._respond(await self.service.load_profile_bundle(person_id))

        @self.app.get("/health", tags=["monitoring"])
        async def health_check():
            """Проверка здоровья API и хранилищ"""
            health_status = {
                "status": "healthy",
                "timestamp": datetime.now().isoformat(),
                "components": {
                    "api": {"status": "healthy", "message": "API is running"}
                }
            }

            if self.health_probe:
                health_status["components"].update(await self.health_probe())

            unhealthy = [
                name for name, component in health_status["components"].items()
                if component.get("status") == "unhealthy"
            ]
            if unhealthy:
                health_status["status"] = "unhealthy"
                return JSONResponse(status_code=503, content=health_status)

            return health_status
