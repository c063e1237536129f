"""
Выдача сертификатов по завершенным обучениям.
"""

import logging
from datetime import datetime
from typing import List, Optional

from .exceptions import AlreadyExistsError, CertificateError, InvalidStateError, NotFoundError, PersistenceError
from .generator import CertificateNumberGenerator
from .models import Certificate, CertificateRequest, CertificateStatus, Examination, ExamType, Training
from .records import RecordStore
from .validity import DEFAULT_VALIDITY_MONTHS, add_months

logger = logging.getLogger(__name__)


def default_notes(training: Training) -> str:
    """Текст обоснования выдачи, если вызывающий не передал свой."""
    program = training.program
    title = (program.title if program else None) or "Training Program"
    hours = program.total_hours if program and program.total_hours is not None else 0
    return f"Issued upon successful completion of {title} ({hours:g} hours)."


def pick_exam(examinations: List[Examination], exam_type: ExamType) -> Optional[Examination]:
    """Возвращает первый (самый новый) экзамен указанного типа или None."""
    for exam in examinations:
        if exam.exam_type == exam_type:
            return exam
    return None


class CertificateIssuanceService:
    """Сервис выдачи сертификатов."""

    def __init__(self, record_store: RecordStore,
                 number_generator: Optional[CertificateNumberGenerator] = None,
                 default_validity_months: int = DEFAULT_VALIDITY_MONTHS):
        self.record_store = record_store
        self.number_generator = number_generator or CertificateNumberGenerator()
        self.default_validity_months = default_validity_months

    async def issue_from_training(self, training_id: str, notes: Optional[str] = None,
                                  now: Optional[datetime] = None) -> Certificate:
        """
        Выдает сертификат по завершенному обучению.

        Проверки выполняются в порядке: обучение существует, обучение
        завершено, сертификат по нему еще не выдан.

        Args:
            training_id: ID обучения
            notes: Примечание к сертификату
            now: Момент выдачи (по умолчанию текущее время)

        Returns:
            Certificate: Созданный сертификат

        Raises:
            NotFoundError: Обучение или профиль сотрудника не найдены
            InvalidStateError: Обучение не завершено
            AlreadyExistsError: Сертификат по обучению уже выдан
            PersistenceError: Ошибка записи
        """
        now = now or datetime.now()
        logger.info(f"Выдача сертификата по обучению {training_id}")

        training = await self.record_store.get_training(training_id)
        if training is None:
            raise NotFoundError(f"Обучение {training_id} не найдено")

        if not training.is_completed:
            raise InvalidStateError(
                f"Обучение {training_id} не завершено (статус: {training.status.value})"
            )

        await self._ensure_not_issued(training_id)

        profile = await self.record_store.get_profile(training.trainee_id)
        if profile is None:
            raise NotFoundError(f"Профиль сотрудника {training.trainee_id} не найден")

        examinations = await self.record_store.list_examinations_for_training(training_id)
        theoretical = pick_exam(examinations, ExamType.THEORETICAL)
        practical = pick_exam(examinations, ExamType.PRACTICAL)

        program = training.program
        validity_months = (program.validity_months if program else None) or self.default_validity_months
        issue_date = now.date()

        data = {
            "certificate_number": self.number_generator.generate(program.code if program else None, now),
            "trainee_id": training.trainee_id,
            "training_id": training.id,
            "job_category_id": profile.job_category_id,
            "airport_id": training.airport_id,
            "theoretical_exam_id": theoretical.id if theoretical else None,
            "practical_exam_id": practical.id if practical else None,
            "issue_date": issue_date,
            "expiry_date": add_months(issue_date, validity_months),
            "status": CertificateStatus.VALID.value,
            "notes": notes or default_notes(training),
        }

        certificate = await self._insert(data)
        logger.info(
            f"Сертификат {certificate.certificate_number} выдан по обучению {training_id}, "
            f"действует до {certificate.expiry_date}"
        )
        return certificate

    async def create_from_request(self, request: CertificateRequest) -> Certificate:
        """
        Создает сертификат по данным, введенным вручную.

        Сотрудник, аэропорт и экзамены берутся из обучения. Статус
        обучения не проверяется: так заносятся ранее выданные документы.

        Raises:
            NotFoundError: Обучение не найдено
            AlreadyExistsError: Сертификат по обучению уже выдан
        """
        logger.info(f"Ручное создание сертификата {request.certificate_number} по обучению {request.training_id}")

        training = await self.record_store.get_training(request.training_id)
        if training is None:
            raise NotFoundError(f"Обучение {request.training_id} не найдено")

        await self._ensure_not_issued(request.training_id)

        if not self.number_generator.validate_number_format(request.certificate_number):
            logger.info(f"Номер {request.certificate_number} не в формате CERT-..., сохраняется как есть")

        profile = await self.record_store.get_profile(training.trainee_id)
        examinations = await self.record_store.list_examinations_for_training(training.id)
        theoretical = pick_exam(examinations, ExamType.THEORETICAL)
        practical = pick_exam(examinations, ExamType.PRACTICAL)

        data = {
            "certificate_number": request.certificate_number,
            "trainee_id": training.trainee_id,
            "training_id": training.id,
            "job_category_id": profile.job_category_id if profile else None,
            "airport_id": training.airport_id,
            "theoretical_exam_id": theoretical.id if theoretical else None,
            "practical_exam_id": practical.id if practical else None,
            "issue_date": request.issue_date,
            "expiry_date": request.expiry_date,
            "status": request.status.value,
            "notes": request.notes,
        }

        certificate = await self._insert(data)
        logger.info(f"Сертификат {certificate.certificate_number} создан вручную")
        return certificate

    async def _ensure_not_issued(self, training_id: str) -> None:
        existing = await self.record_store.find_certificate_by_training(training_id)
        if existing is not None:
            raise AlreadyExistsError(
                f"Сертификат {existing.certificate_number} по обучению {training_id} уже выдан"
            )

    async def _insert(self, data: dict) -> Certificate:
        try:
            return await self.record_store.insert_certificate(data)
        except CertificateError:
            raise
        except Exception as e:
            logger.error(f"Ошибка сохранения сертификата {data.get('certificate_number')}: {e}")
            raise PersistenceError(f"Ошибка сохранения сертификата: {e}")
