"""
Настройки приложения, загружаемые из переменных окружения.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings(BaseSettings):
    """Настройки приложения."""

    # Настройки базы данных
    database_url: Optional[str] = Field(default=None, description="Полный URL БД (перекрывает db_*)")
    db_host: str = Field(default="localhost", description="Хост базы данных")
    db_port: int = Field(default=5432, description="Порт базы данных")
    db_name: str = Field(default="training_tracker", description="Имя базы данных")
    db_user: str = Field(default="postgres", description="Пользователь базы данных")
    db_password: str = Field(default="postgres", description="Пароль базы данных")

    # Настройки файлового хранилища
    storage_backend: str = Field(default="local", description="Хранилище документов: local или supabase")
    storage_bucket: str = Field(default="certificates", description="Имя бакета документов")
    storage_path: Path = Field(default=Path("./storage"), description="Корень локального хранилища")
    storage_public_url: str = Field(
        default="http://localhost:8000/files",
        description="Публичный префикс URL для локального хранилища"
    )
    storage_timeout: float = Field(default=30.0, description="Таймаут запросов к хранилищу, сек")
    supabase_url: Optional[str] = Field(default=None, description="URL проекта Supabase")
    supabase_service_key: Optional[str] = Field(default=None, description="Service role ключ Supabase")

    # Оформление сертификата
    certificate_template: str = Field(default="standard", description="Шаблон: standard, premium, simple")
    organization_name: str = Field(default="Airport Training Center", description="Название организации")
    issued_by_name: str = Field(default="Training Director", description="Подписант сертификатов")
    signature_image_path: Optional[Path] = Field(default=None, description="Изображение подписи (PNG)")

    # Выдача сертификатов
    default_validity_months: int = Field(default=24, ge=1, description="Срок действия по умолчанию, мес")

    # Настройки API
    api_key: Optional[str] = Field(default=None, description="Bearer ключ API")
    api_host: str = Field(default="0.0.0.0", description="Хост API сервера")
    api_port: int = Field(default=8000, description="Порт API сервера")

    # Настройки логирования
    log_level: str = Field(default="INFO", description="Уровень логирования")
    log_file: Path = Field(default=Path("./logs/certengine.log"), description="Путь к файлу логов")

    # Настройки приложения
    debug: bool = Field(default=False, description="Режим отладки")

    @property
    def async_database_url(self) -> str:
        """Возвращает URL подключения к базе данных для драйвера asyncpg."""
        if self.database_url:
            url = self.database_url
            if url.startswith("postgresql://"):
                url = "postgresql+asyncpg://" + url[len("postgresql://"):]
            elif url.startswith("postgres://"):
                url = "postgresql+asyncpg://" + url[len("postgres://"):]
            return url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @field_validator('storage_backend')
    @classmethod
    def validate_storage_backend(cls, v):
        """Валидация типа хранилища."""
        backend = v.strip().lower()
        if backend not in ("local", "supabase"):
            raise ValueError("STORAGE_BACKEND должен быть local или supabase")
        return backend

    @field_validator('certificate_template')
    @classmethod
    def validate_template(cls, v):
        """Валидация шаблона сертификата."""
        template = v.strip().lower()
        if template not in ("standard", "premium", "simple"):
            raise ValueError("CERTIFICATE_TEMPLATE должен быть standard, premium или simple")
        return template

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Неизвестный уровень логирования: {v}")
        return level

    def create_directories(self):
        """Создает необходимые директории."""
        try:
            if self.storage_backend == "local":
                self.storage_path.mkdir(parents=True, exist_ok=True)
                logger.info(f"Директория хранилища: {self.storage_path}")

            self.log_file.parent.mkdir(parents=True, exist_ok=True)

            if not os.access(self.log_file.parent, os.W_OK):
                logger.warning(f"Нет прав записи в {self.log_file.parent}")

        except OSError as e:
            logger.error(f"Ошибка создания директорий: {e}")

    class Config:
        """Конфигурация настроек."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Игнорировать дополнительные поля из .env


# Глобальная переменная с настройками
settings = Settings()


def get_settings() -> Settings:
    """Возвращает объект настроек."""
    return settings


def load_settings_from_file(env_file: str = ".env") -> Settings:
    """
    Загружает настройки из указанного файла.

    Args:
        env_file: Путь к файлу с переменными окружения

    Returns:
        Settings: Объект настроек
    """
    return Settings(_env_file=env_file)


def setup_logging(current: Settings = None) -> None:
    """Настраивает логирование в файл и в консоль."""
    current = current or get_settings()
    current.log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, current.log_level),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(current.log_file),
            logging.StreamHandler()
        ]
    )


def create_env_example():
    """Создает пример файла .env."""
    env_example_content = """# Настройки базы данных PostgreSQL
DB_HOST=localhost
DB_PORT=5432
DB_NAME=training_tracker
DB_USER=postgres
DB_PASSWORD=your_password_here

# Хранилище документов: local или supabase
STORAGE_BACKEND=local
STORAGE_BUCKET=certificates
STORAGE_PATH=./storage
STORAGE_PUBLIC_URL=http://localhost:8000/files
SUPABASE_URL=
SUPABASE_SERVICE_KEY=

# Оформление сертификата
CERTIFICATE_TEMPLATE=standard
ORGANIZATION_NAME=Airport Training Center
ISSUED_BY_NAME=Training Director

# API
API_KEY=

# Настройки логирования
LOG_LEVEL=INFO
LOG_FILE=./logs/certengine.log
"""

    with open(".env.example", "w", encoding="utf-8") as f:
        f.write(env_example_content)

    logger.info("Создан файл .env.example с примером конфигурации")
