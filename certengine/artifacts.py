"""
Генерация и сохранение документов сертификатов.

Документ сохраняется через цепочку приемников: сначала долговременное
хранилище объектов, при любой его ошибке - встраивание документа прямо
в запись сертификата в виде data: строки.
"""

import logging
from abc import ABC, abstractmethod
from functools import reduce
from typing import Callable, Optional, Tuple

from .exceptions import CertificateError, NotFoundError, PersistenceError, StorageError
from .generator import artifact_object_name
from .models import ArtifactLocation, Certificate, OrganizationSettings
from .records import RecordStore
from .renderer import CertificateRenderer, build_payload
from .storage import BlobStore
from .validators import PDF_CONTENT_TYPE, UploadValidator

logger = logging.getLogger(__name__)


class ArtifactSink(ABC):
    """Приемник готового документа."""

    name = "sink"

    @abstractmethod
    async def store(self, object_name: str, data: bytes,
                    content_type: str = PDF_CONTENT_TYPE) -> ArtifactLocation:
        """Сохраняет документ и возвращает ссылку на него."""


class BlobArtifactSink(ArtifactSink):
    """Долговременное хранение в бакете с перезаписью по имени."""

    name = "durable"

    def __init__(self, blob_store: BlobStore, bucket: str):
        self.blob_store = blob_store
        self.bucket = bucket
        self._bucket_checked = False

    async def store(self, object_name: str, data: bytes,
                    content_type: str = PDF_CONTENT_TYPE) -> ArtifactLocation:
        if not self._bucket_checked:
            await self.blob_store.ensure_bucket(self.bucket)
            self._bucket_checked = True

        path = await self.blob_store.upload(
            self.bucket, object_name, data, overwrite=True, content_type=content_type
        )
        url = await self.blob_store.get_public_url(self.bucket, path)
        return ArtifactLocation(pdf_url=url, pdf_storage_path=path)


class InlineArtifactSink(ArtifactSink):
    """Встраивание документа в запись; pdf_storage_path не заполняется."""

    name = "inline"

    def __init__(self, encoder: Callable[[bytes], str]):
        self.encoder = encoder

    async def store(self, object_name: str, data: bytes,
                    content_type: str = PDF_CONTENT_TYPE) -> ArtifactLocation:
        return ArtifactLocation(pdf_url=self.encoder(data), pdf_storage_path=None)


class FallbackArtifactSink(ArtifactSink):
    """Пробует основной приемник, при любой ошибке - запасной."""

    def __init__(self, primary: ArtifactSink, secondary: ArtifactSink):
        self.primary = primary
        self.secondary = secondary
        self.name = f"{primary.name}->{secondary.name}"

    async def store(self, object_name: str, data: bytes,
                    content_type: str = PDF_CONTENT_TYPE) -> ArtifactLocation:
        try:
            return await self.primary.store(object_name, data, content_type)
        except Exception as e:
            logger.warning(
                f"Приемник {self.primary.name} недоступен для {object_name}: {e}. "
                f"Используем {self.secondary.name}"
            )

        try:
            return await self.secondary.store(object_name, data, content_type)
        except Exception as e:
            raise StorageError(f"Не удалось сохранить документ {object_name}: {e}")


def chain_sinks(*sinks: ArtifactSink) -> ArtifactSink:
    """Собирает приемники в цепочку: каждый следующий - запасной для предыдущего."""
    if not sinks:
        raise ValueError("Нужен хотя бы один приемник")
    return reduce(lambda secondary, primary: FallbackArtifactSink(primary, secondary), reversed(sinks))


class ArtifactService:
    """Сервис генерации и хранения документов сертификатов."""

    def __init__(self, record_store: RecordStore, renderer: CertificateRenderer,
                 blob_store: BlobStore, bucket: str,
                 organization_defaults: Optional[OrganizationSettings] = None,
                 template_type: str = "standard",
                 sink: Optional[ArtifactSink] = None):
        self.record_store = record_store
        self.renderer = renderer
        self.blob_store = blob_store
        self.bucket = bucket
        self.organization_defaults = organization_defaults or OrganizationSettings()
        self.template_type = template_type
        self.upload_validator = UploadValidator()
        self.sink = sink or chain_sinks(
            BlobArtifactSink(blob_store, bucket),
            InlineArtifactSink(renderer.to_inline_data_uri),
        )

    async def generate_and_store(self, certificate_id: str) -> Tuple[Certificate, ArtifactLocation]:
        """
        Генерирует документ сертификата и сохраняет ссылку на него.

        Повторный вызов перезаписывает тот же объект и ссылку в записи.

        Args:
            certificate_id: ID сертификата

        Returns:
            Tuple[Certificate, ArtifactLocation]: Обновленный сертификат и место хранения

        Raises:
            NotFoundError: Если сертификат не найден
            GenerationError: Если документ не удалось построить
            StorageError: Если не сработал ни один приемник
            PersistenceError: Если не удалось обновить запись
        """
        logger.info(f"Генерация документа для сертификата {certificate_id}")

        view = await self.record_store.get_certificate_view(certificate_id)
        if view is None:
            raise NotFoundError(f"Сертификат {certificate_id} не найден")

        organization = await self._organization_settings()
        payload = build_payload(view, organization)
        data = self.renderer.render(payload, organization.template_type or self.template_type)

        object_name = artifact_object_name(view.id, view.certificate_number, "generated")
        location = await self.sink.store(object_name, data, PDF_CONTENT_TYPE)

        certificate = await self._replace_location(certificate_id, view.pdf_storage_path, location)

        if location.is_durable:
            logger.info(f"Документ сертификата {view.certificate_number} сохранен: {location.pdf_storage_path}")
        else:
            logger.warning(f"Документ сертификата {view.certificate_number} сохранен в запись (data URI)")

        return certificate, location

    async def upload_existing(self, certificate_id: str, data: bytes,
                              content_type: Optional[str]) -> Tuple[Certificate, ArtifactLocation]:
        """
        Сохраняет готовый PDF, загруженный пользователем, вместо генерации.

        Raises:
            UploadValidationError: Неверный тип или размер файла
            NotFoundError: Если сертификат не найден
        """
        logger.info(f"Загрузка документа для сертификата {certificate_id} ({len(data or b'')} байт)")

        self.upload_validator.validate(data, content_type)

        certificate = await self.record_store.get_certificate(certificate_id)
        if certificate is None:
            raise NotFoundError(f"Сертификат {certificate_id} не найден")

        object_name = artifact_object_name(certificate.id, certificate.certificate_number, "uploaded")
        location = await self.sink.store(object_name, data, PDF_CONTENT_TYPE)

        certificate = await self._replace_location(certificate_id, certificate.pdf_storage_path, location)
        return certificate, location

    async def delete_artifact(self, certificate: Certificate) -> bool:
        """
        Удаляет документ из хранилища. Ошибки хранилища не пробрасываются.

        Returns:
            bool: True если объект удален или удалять было нечего
        """
        if not certificate.pdf_storage_path:
            return True
        return await self._delete_object(certificate.pdf_storage_path)

    async def _delete_object(self, path: str) -> bool:
        try:
            await self.blob_store.delete(self.bucket, [path])
            logger.info(f"Документ {path} удален из хранилища")
            return True
        except Exception as e:
            logger.warning(f"Не удалось удалить документ {path}: {e}")
            return False

    async def _organization_settings(self) -> OrganizationSettings:
        """Настройки из хранилища, недостающие поля - из конфигурации."""
        stored = await self.record_store.get_organization_settings()
        if stored is None:
            return self.organization_defaults

        defaults = self.organization_defaults.model_dump()
        merged = {key: value if value is not None else defaults.get(key)
                  for key, value in stored.model_dump().items()}
        return OrganizationSettings(**merged)

    async def _replace_location(self, certificate_id: str, previous_path: Optional[str],
                                location: ArtifactLocation) -> Certificate:
        """Сохраняет новое место документа и удаляет прежний объект, если он больше не используется."""
        certificate = await self._save_location(certificate_id, location)
        if previous_path and previous_path != location.pdf_storage_path:
            await self._delete_object(previous_path)
        return certificate

    async def _save_location(self, certificate_id: str, location: ArtifactLocation) -> Certificate:
        try:
            return await self.record_store.update_certificate(certificate_id, {
                "pdf_url": location.pdf_url,
                "pdf_storage_path": location.pdf_storage_path,
            })
        except CertificateError:
            logger.error(f"Документ создан, но запись сертификата {certificate_id} не обновлена")
            raise
        except Exception as e:
            logger.error(f"Документ создан, но запись сертификата {certificate_id} не обновлена: {e}")
            raise PersistenceError(f"Ошибка обновления сертификата {certificate_id}: {e}")
