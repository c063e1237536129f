"""
Кастомные исключения движка жизненного цикла сертификатов.
"""


class CertificateError(Exception):
    """Базовое исключение для всех ошибок сертификатов."""
    kind = "CertificateError"


class ValidationError(CertificateError):
    """Ошибка валидации входных данных."""
    kind = "ValidationError"


class UploadValidationError(ValidationError):
    """Некорректный тип или размер загружаемого файла."""
    pass


class NotFoundError(CertificateError):
    """Обучение, сертификат или профиль не найден."""
    kind = "NotFound"


class InvalidStateError(CertificateError):
    """Обучение не находится в статусе completed."""
    kind = "InvalidState"


class AlreadyExistsError(CertificateError):
    """Для обучения уже выдан сертификат."""
    kind = "AlreadyExists"


class PersistenceError(CertificateError):
    """Ошибка записи в хранилище записей."""
    kind = "PersistenceFailure"


class StorageError(CertificateError):
    """Ошибка работы с хранилищем файлов."""
    kind = "StorageFailure"


class GenerationError(CertificateError):
    """Ошибка генерации документа сертификата."""
    kind = "GenerationFailure"
