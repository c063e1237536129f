"""
Pydantic модели для валидации и сериализации данных сертификатов,
обучений, экзаменов и профилей персонала.
"""

from datetime import datetime, date
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from . import validity
from .exceptions import ValidationError


class TrainingStatus(str, Enum):
    """Статус обучения."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CertificateStatus(str, Enum):
    """Хранимый административный статус сертификата."""
    VALID = "valid"
    EXPIRED = "expired"
    SUSPENDED = "suspended"
    REVOKED = "revoked"


class ExamType(str, Enum):
    """Тип экзамена."""
    THEORETICAL = "theoretical"
    PRACTICAL = "practical"


class JobCategory(BaseModel):
    """Категория должности."""
    id: str
    code: Optional[str] = None
    name_en: Optional[str] = None
    name_me: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        return self.name_en or self.name_me or self.code

    class Config:
        from_attributes = True


class Airport(BaseModel):
    """Аэропорт."""
    id: str
    name: Optional[str] = None
    code: Optional[str] = None
    location: Optional[str] = None

    class Config:
        from_attributes = True


class AirportAssignment(BaseModel):
    """Назначение сотрудника в аэропорт (основное или дополнительное)."""
    airport_id: str
    is_primary: bool = False
    start_date: Optional[date] = None
    airport: Optional[Airport] = None

    class Config:
        from_attributes = True


class Profile(BaseModel):
    """Профиль сотрудника (обучаемого)."""
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    employee_id: Optional[str] = None
    nationality: Optional[str] = None
    role: Optional[str] = None
    job_category_id: Optional[str] = None
    is_active: bool = True

    class Config:
        from_attributes = True


class TrainingProgram(BaseModel):
    """Программа обучения."""
    id: str
    code: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    validity_months: Optional[int] = None
    total_hours: Optional[float] = None

    class Config:
        from_attributes = True


class Training(BaseModel):
    """Обучение конкретного сотрудника по программе."""
    id: str
    trainee_id: str
    program_id: Optional[str] = None
    airport_id: Optional[str] = None
    instructor_id: Optional[str] = None
    status: TrainingStatus = TrainingStatus.SCHEDULED
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    program: Optional[TrainingProgram] = None
    instructor_name: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TrainingStatus.COMPLETED

    class Config:
        from_attributes = True


class Examination(BaseModel):
    """Экзамен, привязанный к обучению."""
    id: str
    training_id: str
    exam_type: ExamType
    exam_date: Optional[date] = None
    score: Optional[float] = None
    max_score: Optional[float] = None
    passed: bool = False
    status: Optional[str] = None
    notes: Optional[str] = None

    @property
    def score_display(self) -> Optional[str]:
        """Возвращает оценку в формате 90/100."""
        if self.score is None:
            return None
        score = f"{self.score:g}"
        if self.max_score is None:
            return score
        return f"{score}/{self.max_score:g}"

    class Config:
        from_attributes = True


class SkillCheck(BaseModel):
    """Проверка практических навыков сотрудника."""
    id: str
    person_id: str
    check_type: Optional[str] = None
    check_date: Optional[date] = None
    passed: bool = False
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class Certificate(BaseModel):
    """Модель сертификата."""
    id: str
    certificate_number: str = Field(..., min_length=1, description="Номер сертификата")
    trainee_id: str
    training_id: str
    job_category_id: Optional[str] = None
    airport_id: Optional[str] = None
    theoretical_exam_id: Optional[str] = None
    practical_exam_id: Optional[str] = None
    issue_date: date = Field(..., description="Дата выдачи")
    expiry_date: date = Field(..., description="Дата окончания действия")
    status: CertificateStatus = Field(default=CertificateStatus.VALID, description="Хранимый статус")
    pdf_url: Optional[str] = None
    pdf_storage_path: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def validity_period(self) -> str:
        """Возвращает период действия в формате DD.MM.YYYY-DD.MM.YYYY."""
        return f"{self.issue_date.strftime('%d.%m.%Y')}-{self.expiry_date.strftime('%d.%m.%Y')}"

    @property
    def has_durable_artifact(self) -> bool:
        return bool(self.pdf_storage_path)

    def status_info(self, now=None) -> dict:
        return validity.status_info(self, now)

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "5b0f3c62-8d9a-4a36-9c1e-3f3d2b8c1a10",
                "certificate_number": "CERT-FRS-202506-482913",
                "trainee_id": "0c7d2a2e-1e5b-4b9c-a2b1-7f0a1c2d3e4f",
                "training_id": "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d",
                "issue_date": "2025-06-01",
                "expiry_date": "2027-06-01",
                "status": "valid"
            }
        }


class CertificateView(Certificate):
    """Сертификат вместе со связанными сущностями для отображения и печати."""
    trainee: Optional[Profile] = None
    job_category: Optional[JobCategory] = None
    airport: Optional[Airport] = None
    training: Optional[Training] = None
    theoretical_exam: Optional[Examination] = None
    practical_exam: Optional[Examination] = None

    @property
    def program(self) -> Optional[TrainingProgram]:
        return self.training.program if self.training else None


class OrganizationSettings(BaseModel):
    """Настройки организации: подписант и оформление документа."""
    organization_name: Optional[str] = None
    issued_by_name: Optional[str] = None
    signature_image_path: Optional[str] = None
    certificate_title: Optional[str] = None
    template_type: Optional[str] = None

    class Config:
        from_attributes = True


class CertificatePayload(BaseModel):
    """Данные для рендеринга документа. Ни одно поле не может быть пустым."""
    certificate_number: str
    trainee_name: str
    employee_id: str
    training_program: str
    program_code: str
    job_category: str
    airport_name: str
    airport_code: str
    issue_date: str
    expiry_date: str
    theoretical_score: str
    practical_score: str
    total_hours: str
    issued_by_name: str
    organization_name: str
    certificate_title: str
    notes: str
    signature_image_path: Optional[str] = None


class CertificateRequest(BaseModel):
    """Модель запроса на ручное создание сертификата."""
    training_id: str = Field(..., min_length=1, description="ID обучения")
    certificate_number: str = Field(..., min_length=1, max_length=64, description="Номер сертификата")
    issue_date: date = Field(..., description="Дата выдачи")
    expiry_date: date = Field(..., description="Дата окончания действия")
    status: CertificateStatus = Field(default=CertificateStatus.VALID, description="Статус")
    notes: Optional[str] = None

    @field_validator('certificate_number')
    @classmethod
    def validate_certificate_number(cls, v):
        """Нормализация номера сертификата."""
        number = v.strip()
        if not number:
            raise ValidationError("Номер сертификата не может быть пустым")
        return number

    @field_validator('expiry_date')
    @classmethod
    def validate_period(cls, v, info):
        """Дата окончания должна быть позже даты выдачи."""
        issue_date = info.data.get('issue_date')
        if issue_date and v <= issue_date:
            raise ValidationError("Дата окончания должна быть позже даты выдачи")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "training_id": "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d",
                "certificate_number": "CERT-FRS-202506-482913",
                "issue_date": "2025-06-01",
                "expiry_date": "2027-06-01",
                "status": "valid"
            }
        }


class ArtifactLocation(BaseModel):
    """Куда был сохранен документ сертификата."""
    pdf_url: str
    pdf_storage_path: Optional[str] = None

    @property
    def is_durable(self) -> bool:
        return self.pdf_storage_path is not None


class ProfileSummary(BaseModel):
    """Сводная статистика по сотруднику."""
    total_trainings: int = 0
    in_progress_trainings: int = 0
    completed_trainings: int = 0
    total_certificates: int = 0
    active_certificates: int = 0
    expiring_certificates: int = 0
    total_exams: int = 0
    passed_exams: int = 0
    total_skill_checks: int = 0
    passed_skill_checks: int = 0
    completion_rate: int = 0


class ProfileBundle(BaseModel):
    """Агрегированная история сотрудника: сертификаты, обучения, экзамены."""
    profile: Profile
    job_category: Optional[JobCategory] = None
    airports: List[AirportAssignment] = Field(default_factory=list)
    primary_airport: Optional[Airport] = None
    certificates: List[CertificateView] = Field(default_factory=list)
    certificate_statuses: Dict[str, str] = Field(default_factory=dict)
    trainings: List[Training] = Field(default_factory=list)
    examinations: List[Examination] = Field(default_factory=list)
    skill_checks: List[SkillCheck] = Field(default_factory=list)
    summary: ProfileSummary = Field(default_factory=ProfileSummary)
    generated_at: datetime = Field(default_factory=datetime.now)


class OperationResult(BaseModel):
    """Результат выдачи сертификата или генерации документа."""
    success: bool
    certificate_id: Optional[str] = None
    certificate_number: Optional[str] = None
    message: Optional[str] = None
    pdf_url: Optional[str] = None
    used_fallback: bool = False
    error: Optional[str] = None
    kind: Optional[str] = None


class CertificateDetailResult(BaseModel):
    """Результат получения одного сертификата."""
    success: bool
    certificate: Optional[CertificateView] = None
    status_info: Optional[dict] = None
    error: Optional[str] = None
    kind: Optional[str] = None


class ProfileBundleResult(BaseModel):
    """Результат загрузки профиля сотрудника."""
    success: bool
    profile_bundle: Optional[ProfileBundle] = None
    error: Optional[str] = None
    kind: Optional[str] = None
