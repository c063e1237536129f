"""
Модели SQLAlchemy и реализация хранилища записей поверх PostgreSQL.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Date, Boolean, Text,
    ForeignKey, Index, UniqueConstraint, select, text
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base, relationship, selectinload
from sqlalchemy.sql import func

from config.settings import get_settings
from . import models as schemas
from .exceptions import AlreadyExistsError, NotFoundError, PersistenceError
from .records import RecordStore

logger = logging.getLogger(__name__)

# Базовый класс для моделей
Base = declarative_base()

TRAINING_UNIQUE_CONSTRAINT = "uq_certificates_training_id"


def _uuid_column(**kwargs):
    return Column(UUID(as_uuid=False), default=lambda: str(uuid.uuid4()), **kwargs)


class Profile(Base):
    """Профиль сотрудника."""

    __tablename__ = "profiles"

    id = _uuid_column(primary_key=True)
    full_name = Column(String(255))
    email = Column(String(255), unique=True)
    employee_id = Column(String(64))
    nationality = Column(String(64))
    role = Column(String(32))
    job_category_id = Column(UUID(as_uuid=False), ForeignKey("job_categories.id"), nullable=True)
    is_active = Column(Boolean, default=True, server_default=text('true'), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Profile(id={self.id}, full_name={self.full_name})>"


class JobCategory(Base):
    """Категория должности."""

    __tablename__ = "job_categories"

    id = _uuid_column(primary_key=True)
    code = Column(String(32), index=True)
    name_en = Column(String(255))
    name_me = Column(String(255))


class Airport(Base):
    """Аэропорт."""

    __tablename__ = "airports"

    id = _uuid_column(primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(8), index=True)
    location = Column(String(255))


class EmployeeAirport(Base):
    """Назначение сотрудника в аэропорт."""

    __tablename__ = "employee_airports"

    id = _uuid_column(primary_key=True)
    employee_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    airport_id = Column(UUID(as_uuid=False), ForeignKey("airports.id"), nullable=False)
    is_primary = Column(Boolean, default=False, server_default=text('false'), nullable=False)
    start_date = Column(Date)

    airport = relationship("Airport")


class TrainingProgram(Base):
    """Программа обучения."""

    __tablename__ = "training_programs"

    id = _uuid_column(primary_key=True)
    code = Column(String(32), index=True)
    title = Column(String(255))
    description = Column(Text)
    validity_months = Column(Integer)
    total_hours = Column(Float)


class Training(Base):
    """Обучение сотрудника."""

    __tablename__ = "trainings"

    id = _uuid_column(primary_key=True)
    trainee_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False, index=True)
    program_id = Column(UUID(as_uuid=False), ForeignKey("training_programs.id"))
    airport_id = Column(UUID(as_uuid=False), ForeignKey("airports.id"))
    instructor_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"))
    status = Column(String(20), nullable=False, default="scheduled", index=True)
    start_date = Column(Date, index=True)
    end_date = Column(Date)

    program = relationship("TrainingProgram")
    instructor = relationship("Profile", foreign_keys=[instructor_id])

    @property
    def instructor_name(self) -> Optional[str]:
        return self.instructor.full_name if self.instructor else None


class Examination(Base):
    """Экзамен по обучению."""

    __tablename__ = "examinations"

    id = _uuid_column(primary_key=True)
    training_id = Column(UUID(as_uuid=False), ForeignKey("trainings.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_type = Column(String(20), nullable=False)
    exam_date = Column(Date, index=True)
    score = Column(Float)
    max_score = Column(Float)
    passed = Column(Boolean, default=False, server_default=text('false'), nullable=False)
    status = Column(String(20))
    notes = Column(Text)


class SkillCheck(Base):
    """Проверка навыков сотрудника."""

    __tablename__ = "skill_checks"

    id = _uuid_column(primary_key=True)
    person_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    check_type = Column(String(64))
    check_date = Column(Date, index=True)
    passed = Column(Boolean, default=False, server_default=text('false'), nullable=False)
    notes = Column(Text)


class Certificate(Base):
    """Модель сертификата."""

    __tablename__ = "certificates"

    # Основные поля
    id = _uuid_column(primary_key=True)
    certificate_number = Column(String(64), unique=True, nullable=False, index=True)
    trainee_id = Column(UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False, index=True)
    training_id = Column(UUID(as_uuid=False), ForeignKey("trainings.id"), nullable=False)
    job_category_id = Column(UUID(as_uuid=False), ForeignKey("job_categories.id"))
    airport_id = Column(UUID(as_uuid=False), ForeignKey("airports.id"))
    theoretical_exam_id = Column(UUID(as_uuid=False), ForeignKey("examinations.id", ondelete="SET NULL"))
    practical_exam_id = Column(UUID(as_uuid=False), ForeignKey("examinations.id", ondelete="SET NULL"))
    issue_date = Column(Date, nullable=False, index=True)
    expiry_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="valid", server_default=text("'valid'"))

    # Документ
    pdf_url = Column(Text)
    pdf_storage_path = Column(String(512))

    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    trainee = relationship("Profile", foreign_keys=[trainee_id])
    job_category = relationship("JobCategory")
    airport = relationship("Airport")
    training = relationship("Training")
    theoretical_exam = relationship("Examination", foreign_keys=[theoretical_exam_id])
    practical_exam = relationship("Examination", foreign_keys=[practical_exam_id])

    # Один сертификат на обучение обеспечивается на уровне БД
    __table_args__ = (
        UniqueConstraint('training_id', name=TRAINING_UNIQUE_CONSTRAINT),
        Index('idx_certificate_trainee_status', 'trainee_id', 'status'),
        Index('idx_certificate_validity', 'issue_date', 'expiry_date'),
    )

    def __repr__(self):
        return f"<Certificate(number={self.certificate_number}, training={self.training_id})>"


class OrganizationSettings(Base):
    """Настройки организации для оформления сертификатов."""

    __tablename__ = "organization_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_name = Column(String(255))
    issued_by_name = Column(String(255))
    signature_image_path = Column(String(512))
    certificate_title = Column(String(255))
    template_type = Column(String(20))


def _certificate_view_options():
    """Жадная загрузка всех связей сертификата (ленивая загрузка в asyncio недоступна)."""
    return (
        selectinload(Certificate.trainee),
        selectinload(Certificate.job_category),
        selectinload(Certificate.airport),
        selectinload(Certificate.training).selectinload(Training.program),
        selectinload(Certificate.training).selectinload(Training.instructor),
        selectinload(Certificate.theoretical_exam),
        selectinload(Certificate.practical_exam),
    )


def _training_options():
    return (selectinload(Training.program), selectinload(Training.instructor))


def is_training_conflict(error: IntegrityError) -> bool:
    """Проверяет, что нарушено ограничение "один сертификат на обучение"."""
    details = str(error.orig) if getattr(error, "orig", None) is not None else ""
    if not details:
        details = str(error)
    lowered = details.lower()
    return TRAINING_UNIQUE_CONSTRAINT in lowered or "certificates.training_id" in lowered


class DatabaseManager:
    """Менеджер для работы с базой данных."""

    def __init__(self, database_url: str = None, echo: bool = False):
        """
        Инициализация менеджера БД.

        Args:
            database_url: URL подключения к БД (драйвер asyncpg)
            echo: Логировать SQL запросы
        """
        if database_url is None:
            settings = get_settings()
            database_url = settings.async_database_url

        self.engine = create_async_engine(
            database_url,
            pool_pre_ping=True,
            pool_recycle=3600,
            echo=echo
        )

        self.SessionLocal = async_sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    async def create_tables(self):
        """Создает все таблицы в базе данных."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Таблицы базы данных созданы успешно")

    async def drop_tables(self):
        """Удаляет все таблицы из базы данных."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Таблицы базы данных удалены")

    def get_session(self) -> AsyncSession:
        """Возвращает новую сессию для работы с БД."""
        return self.SessionLocal()

    async def health_check(self) -> bool:
        """Проверяет подключение к базе данных."""
        try:
            async with self.get_session() as session:
                await session.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error(f"Ошибка подключения к БД: {e}")
            return False

    async def dispose(self):
        """Закрывает пул соединений."""
        await self.engine.dispose()


class SQLAlchemyRecordStore(RecordStore):
    """Хранилище записей на SQLAlchemy (asyncio + asyncpg)."""

    def __init__(self, db_manager: DatabaseManager):
        """
        Инициализация хранилища.

        Args:
            db_manager: Менеджер базы данных
        """
        self.db_manager = db_manager

    async def get_training(self, training_id: str) -> Optional[schemas.Training]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(Training).options(*_training_options()).where(Training.id == training_id)
            )
            row = result.scalars().first()
            return schemas.Training.model_validate(row) if row else None

    async def get_profile(self, person_id: str) -> Optional[schemas.Profile]:
        async with self.db_manager.get_session() as session:
            row = await session.get(Profile, person_id)
            return schemas.Profile.model_validate(row) if row else None

    async def get_job_category(self, job_category_id: str) -> Optional[schemas.JobCategory]:
        async with self.db_manager.get_session() as session:
            row = await session.get(JobCategory, job_category_id)
            return schemas.JobCategory.model_validate(row) if row else None

    async def get_organization_settings(self) -> Optional[schemas.OrganizationSettings]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(OrganizationSettings).order_by(OrganizationSettings.id).limit(1)
            )
            row = result.scalars().first()
            return schemas.OrganizationSettings.model_validate(row) if row else None

    async def list_examinations_for_training(self, training_id: str) -> List[schemas.Examination]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(Examination)
                .where(Examination.training_id == training_id)
                .order_by(Examination.exam_date.desc().nullslast())
            )
            return [schemas.Examination.model_validate(row) for row in result.scalars().all()]

    async def find_certificate_by_training(self, training_id: str) -> Optional[schemas.Certificate]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(Certificate).where(Certificate.training_id == training_id).limit(1)
            )
            row = result.scalars().first()
            return schemas.Certificate.model_validate(row) if row else None

    async def insert_certificate(self, data: dict) -> schemas.Certificate:
        async with self.db_manager.get_session() as session:
            row = Certificate(**data)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if is_training_conflict(e):
                    raise AlreadyExistsError(
                        f"Сертификат по обучению {data.get('training_id')} уже выдан"
                    )
                raise PersistenceError(f"Ошибка сохранения сертификата: {e.orig or e}")
            except SQLAlchemyError as e:
                await session.rollback()
                raise PersistenceError(f"Ошибка сохранения сертификата: {e}")

            await session.refresh(row)
            return schemas.Certificate.model_validate(row)

    async def get_certificate(self, certificate_id: str) -> Optional[schemas.Certificate]:
        async with self.db_manager.get_session() as session:
            row = await session.get(Certificate, certificate_id)
            return schemas.Certificate.model_validate(row) if row else None

    async def get_certificate_view(self, certificate_id: str) -> Optional[schemas.CertificateView]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(Certificate)
                .options(*_certificate_view_options())
                .where(Certificate.id == certificate_id)
            )
            row = result.scalars().first()
            return schemas.CertificateView.model_validate(row) if row else None

    async def update_certificate(self, certificate_id: str, changes: dict) -> schemas.Certificate:
        async with self.db_manager.get_session() as session:
            row = await session.get(Certificate, certificate_id)
            if row is None:
                raise NotFoundError(f"Сертификат {certificate_id} не найден")

            for field, value in changes.items():
                setattr(row, field, value)

            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise PersistenceError(f"Ошибка обновления сертификата {certificate_id}: {e}")

            return schemas.Certificate.model_validate(row)

    async def delete_certificate(self, certificate_id: str) -> bool:
        async with self.db_manager.get_session() as session:
            row = await session.get(Certificate, certificate_id)
            if row is None:
                return False

            try:
                await session.delete(row)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise PersistenceError(f"Ошибка удаления сертификата {certificate_id}: {e}")

            return True

    async def list_airport_assignments(self, person_id: str) -> List[schemas.AirportAssignment]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(EmployeeAirport)
                .options(selectinload(EmployeeAirport.airport))
                .where(EmployeeAirport.employee_id == person_id)
                .order_by(EmployeeAirport.is_primary.desc())
            )
            return [schemas.AirportAssignment.model_validate(row) for row in result.scalars().all()]

    async def list_trainings_for_person(self, person_id: str) -> List[schemas.Training]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(Training)
                .options(*_training_options())
                .where(Training.trainee_id == person_id)
                .order_by(Training.start_date.desc().nullslast())
            )
            return [schemas.Training.model_validate(row) for row in result.scalars().all()]

    async def list_certificates_for_person(self, person_id: str) -> List[schemas.CertificateView]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(Certificate)
                .options(*_certificate_view_options())
                .where(Certificate.trainee_id == person_id)
                .order_by(Certificate.issue_date.desc())
            )
            return [schemas.CertificateView.model_validate(row) for row in result.scalars().all()]

    async def list_examinations_for_person(self, person_id: str) -> List[schemas.Examination]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(Examination)
                .join(Training, Examination.training_id == Training.id)
                .where(Training.trainee_id == person_id)
                .order_by(Examination.exam_date.desc().nullslast())
            )
            return [schemas.Examination.model_validate(row) for row in result.scalars().all()]

    async def list_skill_checks_for_person(self, person_id: str) -> List[schemas.SkillCheck]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(
                select(SkillCheck)
                .where(SkillCheck.person_id == person_id)
                .order_by(SkillCheck.check_date.desc().nullslast())
            )
            return [schemas.SkillCheck.model_validate(row) for row in result.scalars().all()]


# Глобальный менеджер БД создается при первом обращении
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Возвращает менеджер БД."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def get_record_store() -> SQLAlchemyRecordStore:
    """Возвращает хранилище записей поверх глобального менеджера БД."""
    return SQLAlchemyRecordStore(get_db_manager())
