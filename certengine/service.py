"""
Фасад движка сертификатов.

Внутренние сервисы выбрасывают исключения, фасад превращает их
в результаты {success: false, error, kind} для API и CLI.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from config.settings import Settings, get_settings
from .artifacts import ArtifactService
from .exceptions import CertificateError, NotFoundError, ValidationError
from .generator import CertificateNumberGenerator
from .issuance import CertificateIssuanceService
from .models import (
    CertificateDetailResult, CertificateRequest, OperationResult,
    OrganizationSettings, ProfileBundleResult
)
from .profile import PersonnelProfileService
from .records import RecordStore
from .renderer import CertificateRenderer
from .storage import BlobStore, build_blob_store
from .validators import DataValidator, StatusValidator

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "InternalError"


def organization_defaults(settings: Settings) -> OrganizationSettings:
    """Оформление документа из конфигурации (если в БД нет настроек)."""
    return OrganizationSettings(
        organization_name=settings.organization_name,
        issued_by_name=settings.issued_by_name,
        signature_image_path=str(settings.signature_image_path) if settings.signature_image_path else None,
        template_type=settings.certificate_template,
    )


class CertificateService:
    """Сервис для работы с сертификатами."""

    def __init__(self, record_store: RecordStore, blob_store: BlobStore,
                 renderer: Optional[CertificateRenderer] = None,
                 settings: Optional[Settings] = None,
                 number_generator: Optional[CertificateNumberGenerator] = None):
        """
        Инициализация сервиса.

        Args:
            record_store: Хранилище записей
            blob_store: Хранилище документов
            renderer: Рендерер PDF
            settings: Настройки приложения
            number_generator: Генератор номеров сертификатов
        """
        settings = settings or get_settings()

        self.record_store = record_store
        self.issuance = CertificateIssuanceService(
            record_store, number_generator, settings.default_validity_months
        )
        self.artifacts = ArtifactService(
            record_store,
            renderer or CertificateRenderer(settings.certificate_template),
            blob_store,
            settings.storage_bucket,
            organization_defaults=organization_defaults(settings),
            template_type=settings.certificate_template,
        )
        self.profiles = PersonnelProfileService(record_store)
        self.status_validator = StatusValidator()
        self.data_validator = DataValidator()

    async def issue_from_training(self, training_id: str, notes: Optional[str] = None,
                                  now: Optional[datetime] = None) -> OperationResult:
        """
        Выдает сертификат и сразу генерирует его документ.

        Ошибка генерации документа не отменяет выдачу: результат
        остается успешным, а причина попадает в message.
        """
        try:
            certificate = await self.issuance.issue_from_training(training_id, notes=notes, now=now)
        except Exception as e:
            return self._failure(OperationResult, e, f"Ошибка выдачи сертификата по обучению {training_id}")

        try:
            _, location = await self.artifacts.generate_and_store(certificate.id)
        except Exception as e:
            logger.warning(f"Сертификат {certificate.certificate_number} выдан, но документ не создан: {e}")
            return OperationResult(
                success=True,
                certificate_id=certificate.id,
                certificate_number=certificate.certificate_number,
                message=f"Сертификат выдан, но документ не создан: {e}",
            )

        return OperationResult(
            success=True,
            certificate_id=certificate.id,
            certificate_number=certificate.certificate_number,
            message="Сертификат выдан",
            pdf_url=location.pdf_url,
            used_fallback=not location.is_durable,
        )

    async def generate_certificate_pdf(self, certificate_id: str) -> OperationResult:
        """Генерирует (или перегенерирует) документ сертификата."""
        try:
            certificate, location = await self.artifacts.generate_and_store(certificate_id)
        except Exception as e:
            return self._failure(OperationResult, e, f"Ошибка генерации документа {certificate_id}")

        message = "Документ создан"
        if not location.is_durable:
            message = "Документ создан и сохранен в запись (хранилище недоступно)"

        return OperationResult(
            success=True,
            certificate_id=certificate.id,
            certificate_number=certificate.certificate_number,
            message=message,
            pdf_url=location.pdf_url,
            used_fallback=not location.is_durable,
        )

    async def upload_existing_certificate(self, certificate_id: str, data: bytes,
                                          content_type: Optional[str]) -> OperationResult:
        """Сохраняет готовый PDF, загруженный пользователем."""
        try:
            certificate, location = await self.artifacts.upload_existing(certificate_id, data, content_type)
        except Exception as e:
            return self._failure(OperationResult, e, f"Ошибка загрузки документа {certificate_id}")

        return OperationResult(
            success=True,
            certificate_id=certificate.id,
            certificate_number=certificate.certificate_number,
            message="Документ загружен",
            pdf_url=location.pdf_url,
            used_fallback=not location.is_durable,
        )

    async def get_certificate_details(self, certificate_id: str,
                                      now: Optional[datetime] = None) -> CertificateDetailResult:
        """Возвращает сертификат со связанными сущностями и производным статусом."""
        try:
            view = await self.record_store.get_certificate_view(certificate_id)
            if view is None:
                raise NotFoundError(f"Сертификат {certificate_id} не найден")
        except Exception as e:
            return self._failure(CertificateDetailResult, e, f"Ошибка получения сертификата {certificate_id}")

        return CertificateDetailResult(success=True, certificate=view, status_info=view.status_info(now))

    async def update_certificate_status(self, certificate_id: str, status: str) -> OperationResult:
        """Меняет хранимый (административный) статус сертификата."""
        try:
            normalized = self.status_validator.validate(status)
            certificate = await self.record_store.update_certificate(certificate_id, {"status": normalized})
        except Exception as e:
            return self._failure(OperationResult, e, f"Ошибка смены статуса сертификата {certificate_id}")

        logger.info(f"Статус сертификата {certificate.certificate_number} изменен на {normalized}")
        return OperationResult(
            success=True,
            certificate_id=certificate.id,
            certificate_number=certificate.certificate_number,
            message=f"Статус изменен на {normalized}",
            pdf_url=certificate.pdf_url,
        )

    async def delete_certificate(self, certificate_id: str) -> OperationResult:
        """
        Удаляет сертификат и, по возможности, его документ.

        Ошибка удаления документа из хранилища не мешает удалению записи.
        """
        try:
            certificate = await self.record_store.get_certificate(certificate_id)
            if certificate is None:
                raise NotFoundError(f"Сертификат {certificate_id} не найден")

            if not await self.record_store.delete_certificate(certificate_id):
                raise NotFoundError(f"Сертификат {certificate_id} не найден")
        except Exception as e:
            return self._failure(OperationResult, e, f"Ошибка удаления сертификата {certificate_id}")

        artifact_deleted = await self.artifacts.delete_artifact(certificate)
        logger.info(f"Сертификат {certificate.certificate_number} удален")

        message = "Сертификат удален"
        if not artifact_deleted:
            message = "Сертификат удален, но документ не удалось удалить из хранилища"

        return OperationResult(
            success=True,
            certificate_id=certificate.id,
            certificate_number=certificate.certificate_number,
            message=message,
        )

    async def add_certificate(self, request: Union[CertificateRequest, dict]) -> OperationResult:
        """Создает сертификат по данным, введенным вручную."""
        try:
            if isinstance(request, dict):
                request = self._parse_request(request)
            certificate = await self.issuance.create_from_request(request)
        except Exception as e:
            return self._failure(OperationResult, e, "Ошибка ручного создания сертификата")

        return OperationResult(
            success=True,
            certificate_id=certificate.id,
            certificate_number=certificate.certificate_number,
            message="Сертификат добавлен",
        )

    async def load_profile_bundle(self, person_id: str,
                                  now: Optional[datetime] = None) -> ProfileBundleResult:
        """Загружает сводный профиль сотрудника."""
        try:
            bundle = await self.profiles.load_profile_bundle(person_id, now=now)
        except Exception as e:
            return self._failure(ProfileBundleResult, e, f"Ошибка загрузки профиля {person_id}")

        return ProfileBundleResult(success=True, profile_bundle=bundle)

    def _parse_request(self, data: dict) -> CertificateRequest:
        errors = self.data_validator.validate_all(
            data.get("training_id"),
            data.get("certificate_number"),
            data.get("issue_date"),
            data.get("expiry_date"),
            data.get("status", "valid"),
        )
        if errors:
            raise ValidationError("; ".join(errors))
        return CertificateRequest(**data)

    def _failure(self, result_cls, error: Exception, context: str):
        if isinstance(error, CertificateError):
            kind = error.kind
            logger.error(f"{context}: {error}")
        elif isinstance(error, PydanticValidationError):
            kind = ValidationError.kind
            logger.error(f"{context}: {error}")
        else:
            kind = INTERNAL_ERROR
            logger.exception(f"{context}: {error}")

        return result_cls(success=False, error=str(error), kind=kind)


def build_certificate_service(settings: Optional[Settings] = None) -> CertificateService:
    """Собирает сервис с хранилищами по настройкам."""
    from .database import get_record_store

    settings = settings or get_settings()
    return CertificateService(get_record_store(), build_blob_store(settings), settings=settings)


# Глобальный экземпляр сервиса создается при первом обращении
_certificate_service: Optional[CertificateService] = None


def get_certificate_service() -> CertificateService:
    """Возвращает экземпляр сервиса сертификатов."""
    global _certificate_service
    if _certificate_service is None:
        _certificate_service = build_certificate_service()
    return _certificate_service
