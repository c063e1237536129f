"""
Модуль для работы с хранилищем документов сертификатов
"""
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import httpx

from .exceptions import StorageError
from .validators import PDF_CONTENT_TYPE

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Долговременное хранилище именованных объектов"""

    @abstractmethod
    async def upload(self, bucket: str, path: str, data: bytes,
                     overwrite: bool = True, content_type: str = PDF_CONTENT_TYPE) -> str:
        """Загружает объект и возвращает его путь в бакете"""

    @abstractmethod
    async def get_public_url(self, bucket: str, path: str) -> str:
        """Возвращает публичный URL объекта"""

    @abstractmethod
    async def delete(self, bucket: str, paths: List[str]) -> None:
        """Удаляет объекты"""

    @abstractmethod
    async def list_buckets(self) -> List[str]:
        """Возвращает имена бакетов"""

    @abstractmethod
    async def create_bucket(self, bucket: str) -> None:
        """Создает бакет"""

    async def ensure_bucket(self, bucket: str) -> None:
        """Создает бакет, если его еще нет"""
        if bucket not in await self.list_buckets():
            logger.info(f"Бакет {bucket} не найден, создаем")
            await self.create_bucket(bucket)


class LocalBlobStore(BlobStore):
    """Хранилище в локальной файловой системе: один каталог на бакет"""

    def __init__(self, base_path: str = "storage",
                 public_base_url: str = "http://localhost:8000/files"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _object_path(self, bucket: str, path: str) -> Path:
        bucket_dir = (self.base_path / bucket).resolve()
        file_path = (bucket_dir / path).resolve()
        if bucket_dir not in file_path.parents:
            raise StorageError(f"Недопустимый путь объекта: {path}")
        return file_path

    async def upload(self, bucket: str, path: str, data: bytes,
                     overwrite: bool = True, content_type: str = PDF_CONTENT_TYPE) -> str:
        """
        Сохранение объекта в файл

        Args:
            bucket: Имя бакета
            path: Путь объекта внутри бакета
            data: Содержимое
            overwrite: Перезаписывать существующий объект
            content_type: MIME тип (для локального хранилища не сохраняется)

        Returns:
            Путь объекта внутри бакета
        """
        if not (self.base_path / bucket).is_dir():
            raise StorageError(f"Бакет {bucket} не существует")

        file_path = self._object_path(bucket, path)
        if file_path.exists() and not overwrite:
            raise StorageError(f"Объект {bucket}/{path} уже существует")

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(data)

            # Установка прав доступа
            os.chmod(file_path, 0o644)

        except OSError as e:
            raise StorageError(f"Ошибка сохранения файла: {e}")

        return path

    async def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{quote(bucket)}/{quote(path)}"

    async def delete(self, bucket: str, paths: List[str]) -> None:
        for path in paths:
            try:
                self._object_path(bucket, path).unlink(missing_ok=True)
            except OSError as e:
                raise StorageError(f"Ошибка удаления файла {path}: {e}")

    async def list_buckets(self) -> List[str]:
        return sorted(entry.name for entry in self.base_path.iterdir() if entry.is_dir())

    async def create_bucket(self, bucket: str) -> None:
        try:
            (self.base_path / bucket).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Ошибка создания бакета {bucket}: {e}")

    def read(self, bucket: str, path: str) -> Optional[bytes]:
        """Чтение объекта (используется для раздачи файлов API сервером)"""
        file_path = self._object_path(bucket, path)
        if not file_path.is_file():
            return None
        return file_path.read_bytes()


class SupabaseBlobStore(BlobStore):
    """Клиент Supabase Storage REST API"""

    def __init__(self, url: str, service_key: str, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        if not url:
            raise StorageError("Не указан SUPABASE_URL")
        if not service_key:
            raise StorageError("Не указан SUPABASE_SERVICE_KEY")

        self.url = url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.url}/storage/v1",
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
            },
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(self, method: str, url: str, action: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StorageError(f"Ошибка соединения с хранилищем ({action}): {e}")

        if response.status_code >= 400:
            raise StorageError(f"Хранилище вернуло HTTP {response.status_code} ({action}): {response.text}")

        return response

    async def upload(self, bucket: str, path: str, data: bytes,
                     overwrite: bool = True, content_type: str = PDF_CONTENT_TYPE) -> str:
        await self._request(
            "POST",
            f"/object/{bucket}/{quote(path)}",
            "upload",
            content=data,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if overwrite else "false",
            },
        )
        return path

    async def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{bucket}/{quote(path)}"

    async def delete(self, bucket: str, paths: List[str]) -> None:
        await self._request("DELETE", f"/object/{bucket}", "delete", json={"prefixes": paths})

    async def list_buckets(self) -> List[str]:
        response = await self._request("GET", "/bucket", "list buckets")
        try:
            return [item.get("name") or item.get("id") for item in response.json()]
        except (ValueError, AttributeError) as e:
            raise StorageError(f"Некорректный ответ хранилища: {e}")

    async def create_bucket(self, bucket: str) -> None:
        await self._request(
            "POST", "/bucket", "create bucket",
            json={"id": bucket, "name": bucket, "public": True},
        )


def build_blob_store(settings) -> BlobStore:
    """Создает хранилище документов по настройкам"""
    if settings.storage_backend == "supabase":
        return SupabaseBlobStore(
            settings.supabase_url,
            settings.supabase_service_key,
            timeout=settings.storage_timeout,
        )
    return LocalBlobStore(str(settings.storage_path), settings.storage_public_url)
