"""
Интерфейс хранилища записей.

Каждый метод - отдельная операция без транзакций между вызовами.
Реализации выбрасывают AlreadyExistsError при нарушении уникальности
training_id и PersistenceError при прочих ошибках записи.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import (
    AirportAssignment, Certificate, CertificateView, Examination, JobCategory,
    OrganizationSettings, Profile, SkillCheck, Training
)


class RecordStore(ABC):
    """Асинхронный клиент хранилища записей."""

    # Обучения и справочники

    @abstractmethod
    async def get_training(self, training_id: str) -> Optional[Training]:
        """Возвращает обучение вместе с программой или None."""

    @abstractmethod
    async def get_profile(self, person_id: str) -> Optional[Profile]:
        """Возвращает профиль сотрудника или None."""

    @abstractmethod
    async def get_job_category(self, job_category_id: str) -> Optional[JobCategory]:
        """Возвращает категорию должности или None."""

    @abstractmethod
    async def get_organization_settings(self) -> Optional[OrganizationSettings]:
        """Возвращает настройки подписанта и оформления или None."""

    @abstractmethod
    async def list_examinations_for_training(self, training_id: str) -> List[Examination]:
        """Экзамены обучения, новые первыми."""

    # Сертификаты

    @abstractmethod
    async def find_certificate_by_training(self, training_id: str) -> Optional[Certificate]:
        """Возвращает сертификат, выданный по обучению, или None."""

    @abstractmethod
    async def insert_certificate(self, data: dict) -> Certificate:
        """Создает сертификат и возвращает сохраненную запись."""

    @abstractmethod
    async def get_certificate(self, certificate_id: str) -> Optional[Certificate]:
        """Возвращает сертификат или None."""

    @abstractmethod
    async def get_certificate_view(self, certificate_id: str) -> Optional[CertificateView]:
        """Возвращает сертификат со всеми связанными сущностями или None."""

    @abstractmethod
    async def update_certificate(self, certificate_id: str, changes: dict) -> Certificate:
        """Обновляет поля сертификата и возвращает обновленную запись."""

    @abstractmethod
    async def delete_certificate(self, certificate_id: str) -> bool:
        """Удаляет сертификат. False, если записи не было."""

    # Выборки по сотруднику

    @abstractmethod
    async def list_airport_assignments(self, person_id: str) -> List[AirportAssignment]:
        """Назначения сотрудника в аэропорты."""

    @abstractmethod
    async def list_trainings_for_person(self, person_id: str) -> List[Training]:
        """Обучения сотрудника, новые по дате начала первыми."""

    @abstractmethod
    async def list_certificates_for_person(self, person_id: str) -> List[CertificateView]:
        """Сертификаты сотрудника со связанными сущностями, новые по дате выдачи первыми."""

    @abstractmethod
    async def list_examinations_for_person(self, person_id: str) -> List[Examination]:
        """Экзамены по всем обучениям сотрудника, новые первыми."""

    @abstractmethod
    async def list_skill_checks_for_person(self, person_id: str) -> List[SkillCheck]:
        """Проверки навыков сотрудника, новые первыми."""
