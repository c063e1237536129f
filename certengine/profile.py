"""
Сводный профиль сотрудника: сертификаты, обучения, экзамены и проверки навыков.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import List, Optional, Union

from .exceptions import NotFoundError
from .models import (
    CertificateView, Examination, ProfileBundle, ProfileSummary, SkillCheck,
    Training, TrainingStatus
)
from .records import RecordStore
from .validity import derive_status, is_expiring_soon, usable_now

logger = logging.getLogger(__name__)


def sort_certificates(certificates: List[CertificateView],
                      now: Optional[Union[date, datetime]] = None) -> List[CertificateView]:
    """
    Сортировка для отображения: сначала действующие, затем остальные;
    внутри каждой группы - по ближайшей дате окончания.
    """
    return sorted(certificates, key=lambda cert: (not usable_now(cert, now), cert.expiry_date))


def completion_rate(completed: int, total: int) -> int:
    """Процент завершенных обучений, половина округляется вверх (0 при пустом списке)."""
    if not total:
        return 0
    return int(completed * 100 / total + 0.5)


def summarize(trainings: List[Training], certificates: List[CertificateView],
              examinations: List[Examination], skill_checks: List[SkillCheck],
              now: Optional[Union[date, datetime]] = None) -> ProfileSummary:
    """Считает сводную статистику по уже загруженным спискам."""
    total_trainings = len(trainings)
    completed = sum(1 for t in trainings if t.status == TrainingStatus.COMPLETED)
    usable = [cert for cert in certificates if usable_now(cert, now)]

    return ProfileSummary(
        total_trainings=total_trainings,
        in_progress_trainings=sum(1 for t in trainings if t.status == TrainingStatus.IN_PROGRESS),
        completed_trainings=completed,
        total_certificates=len(certificates),
        active_certificates=len(usable),
        expiring_certificates=sum(1 for cert in usable if is_expiring_soon(cert.expiry_date, now)),
        total_exams=len(examinations),
        passed_exams=sum(1 for exam in examinations if exam.passed),
        total_skill_checks=len(skill_checks),
        passed_skill_checks=sum(1 for check in skill_checks if check.passed),
        completion_rate=completion_rate(completed, total_trainings),
    )


class PersonnelProfileService:
    """Сервис чтения сводного профиля сотрудника."""

    def __init__(self, record_store: RecordStore):
        self.record_store = record_store

    async def load_profile_bundle(self, person_id: str,
                                  now: Optional[datetime] = None) -> ProfileBundle:
        """
        Загружает всю историю сотрудника одним пакетом.

        Выборки независимы и выполняются параллельно.

        Args:
            person_id: ID сотрудника
            now: Момент, на который считаются статусы

        Returns:
            ProfileBundle: Профиль со списками и статистикой

        Raises:
            NotFoundError: Сотрудник не найден
        """
        now = now or datetime.now()
        logger.info(f"Загрузка профиля сотрудника {person_id}")

        profile = await self.record_store.get_profile(person_id)
        if profile is None:
            raise NotFoundError(f"Сотрудник {person_id} не найден")

        job_category_fetch = (
            self.record_store.get_job_category(profile.job_category_id)
            if profile.job_category_id else _none()
        )

        job_category, airports, trainings, certificates, examinations, skill_checks = await asyncio.gather(
            job_category_fetch,
            self.record_store.list_airport_assignments(person_id),
            self.record_store.list_trainings_for_person(person_id),
            self.record_store.list_certificates_for_person(person_id),
            self.record_store.list_examinations_for_person(person_id),
            self.record_store.list_skill_checks_for_person(person_id),
        )

        certificates = sort_certificates(certificates, now)
        primary = next((a for a in airports if a.is_primary), None)

        bundle = ProfileBundle(
            profile=profile,
            job_category=job_category,
            airports=airports,
            primary_airport=primary.airport if primary else None,
            certificates=certificates,
            certificate_statuses={cert.id: derive_status(cert, now) for cert in certificates},
            trainings=trainings,
            examinations=examinations,
            skill_checks=skill_checks,
            summary=summarize(trainings, certificates, examinations, skill_checks, now),
            generated_at=now if isinstance(now, datetime) else datetime.combine(now, datetime.min.time()),
        )

        logger.info(
            f"Профиль {person_id}: {bundle.summary.total_certificates} сертификатов, "
            f"{bundle.summary.active_certificates} действующих"
        )
        return bundle


async def _none():
    return None
