"""
Модуль валидации входных данных для сертификатов.
"""

from datetime import date
from typing import List, Optional

from .exceptions import UploadValidationError, ValidationError

PDF_CONTENT_TYPE = "application/pdf"

# Максимальный размер загружаемого документа (10 МиБ)
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

STORED_STATUSES = ("valid", "expired", "suspended", "revoked")


class UploadValidator:
    """Валидатор загружаемых вручную документов сертификатов."""

    def __init__(self, max_bytes: int = MAX_UPLOAD_BYTES,
                 content_type: str = PDF_CONTENT_TYPE):
        self.max_bytes = max_bytes
        self.content_type = content_type

    def validate(self, data: bytes, content_type: Optional[str]) -> None:
        """
        Проверяет тип и размер файла.

        Args:
            data: Содержимое файла
            content_type: MIME тип файла

        Raises:
            UploadValidationError: Если файл не прошел проверку
        """
        normalized = (content_type or "").split(";")[0].strip().lower()
        if normalized != self.content_type:
            raise UploadValidationError(
                f"Допускаются только PDF файлы, получен {content_type or 'неизвестный тип'}"
            )

        if not data:
            raise UploadValidationError("Загруженный файл пуст")

        if len(data) > self.max_bytes:
            raise UploadValidationError(
                f"Размер файла превышает {self.max_bytes // (1024 * 1024)} МБ"
            )


class StatusValidator:
    """Валидатор хранимого статуса сертификата."""

    def validate(self, status: str) -> str:
        """
        Проверяет и нормализует статус.

        Raises:
            ValidationError: Если статус неизвестен
        """
        normalized = status.strip().lower() if isinstance(status, str) else None
        if normalized not in STORED_STATUSES:
            raise ValidationError(
                f"Недопустимый статус сертификата: {status}. "
                f"Допустимые значения: {', '.join(STORED_STATUSES)}"
            )
        return normalized


class DataValidator:
    """Общий валидатор данных сертификата."""

    def __init__(self):
        self.status_validator = StatusValidator()

    def validate_all(self, training_id: Optional[str], certificate_number: Optional[str],
                     issue_date: Optional[date], expiry_date: Optional[date],
                     status: Optional[str]) -> List[str]:
        """
        Валидирует все поля ручного создания сертификата.

        Returns:
            List[str]: Список ошибок валидации
        """
        errors = []

        if training_id is not None and not isinstance(training_id, str):
            errors.append("ID обучения должен быть строкой")
        elif not training_id or not training_id.strip():
            errors.append("Не указано обучение (training_id)")

        if certificate_number is not None and not isinstance(certificate_number, str):
            errors.append("Номер сертификата должен быть строкой")
        elif not certificate_number or not certificate_number.strip():
            errors.append("Не указан номер сертификата")

        if issue_date is None:
            errors.append("Не указана дата выдачи")

        if expiry_date is None:
            errors.append("Не указана дата окончания действия")

        # строковые даты проверяет модель запроса после разбора
        if isinstance(issue_date, date) and isinstance(expiry_date, date) and expiry_date <= issue_date:
            errors.append("Дата окончания должна быть позже даты выдачи")

        try:
            self.status_validator.validate(status)
        except ValidationError as e:
            errors.append(str(e))

        return errors
