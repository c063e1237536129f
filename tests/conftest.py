"""
Общие фикстуры для тестов
"""
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

import pytest

from config.settings import Settings
from certengine.exceptions import AlreadyExistsError, NotFoundError, StorageError
from certengine.models import (
    Airport, AirportAssignment, Certificate, CertificateView, Examination, ExamType,
    JobCategory, OrganizationSettings, Profile, SkillCheck, Training, TrainingProgram,
    TrainingStatus
)
from certengine.records import RecordStore
from certengine.renderer import CertificateRenderer
from certengine.service import CertificateService
from certengine.storage import BlobStore


class InMemoryRecordStore(RecordStore):
    """Хранилище записей в памяти с тем же ограничением уникальности training_id"""

    def __init__(self):
        self.profiles: Dict[str, Profile] = {}
        self.job_categories: Dict[str, JobCategory] = {}
        self.airports: Dict[str, Airport] = {}
        self.assignments: Dict[str, List[AirportAssignment]] = {}
        self.trainings: Dict[str, Training] = {}
        self.examinations: Dict[str, Examination] = {}
        self.skill_checks: Dict[str, SkillCheck] = {}
        self.certificates: Dict[str, Certificate] = {}
        self.organization: Optional[OrganizationSettings] = None
        self.fail_updates = False

    async def get_training(self, training_id):
        return self.trainings.get(training_id)

    async def get_profile(self, person_id):
        return self.profiles.get(person_id)

    async def get_job_category(self, job_category_id):
        return self.job_categories.get(job_category_id)

    async def get_organization_settings(self):
        return self.organization

    async def list_examinations_for_training(self, training_id):
        exams = [e for e in self.examinations.values() if e.training_id == training_id]
        return sorted(exams, key=lambda e: e.exam_date or date.min, reverse=True)

    async def find_certificate_by_training(self, training_id):
        return next((c for c in self.certificates.values() if c.training_id == training_id), None)

    async def insert_certificate(self, data):
        if any(c.training_id == data["training_id"] for c in self.certificates.values()):
            raise AlreadyExistsError(f"Certificate already exists for training {data['training_id']}")
        certificate = Certificate(id=str(uuid.uuid4()), created_at=datetime.now(), **data)
        self.certificates[certificate.id] = certificate
        return certificate

    async def get_certificate(self, certificate_id):
        return self.certificates.get(certificate_id)

    async def get_certificate_view(self, certificate_id):
        certificate = self.certificates.get(certificate_id)
        return self._view(certificate) if certificate else None

    async def update_certificate(self, certificate_id, changes):
        if self.fail_updates:
            raise RuntimeError("connection reset")
        certificate = self.certificates.get(certificate_id)
        if certificate is None:
            raise NotFoundError(f"Certificate {certificate_id} not found")
        updated = Certificate.model_validate({**certificate.model_dump(), **changes})
        self.certificates[certificate_id] = updated
        return updated

    async def delete_certificate(self, certificate_id):
        return self.certificates.pop(certificate_id, None) is not None

    async def list_airport_assignments(self, person_id):
        return list(self.assignments.get(person_id, []))

    async def list_trainings_for_person(self, person_id):
        trainings = [t for t in self.trainings.values() if t.trainee_id == person_id]
        return sorted(trainings, key=lambda t: t.start_date or date.min, reverse=True)

    async def list_certificates_for_person(self, person_id):
        certificates = [c for c in self.certificates.values() if c.trainee_id == person_id]
        certificates.sort(key=lambda c: c.issue_date, reverse=True)
        return [self._view(c) for c in certificates]

    async def list_examinations_for_person(self, person_id):
        training_ids = {t.id for t in self.trainings.values() if t.trainee_id == person_id}
        exams = [e for e in self.examinations.values() if e.training_id in training_ids]
        return sorted(exams, key=lambda e: e.exam_date or date.min, reverse=True)

    async def list_skill_checks_for_person(self, person_id):
        checks = [s for s in self.skill_checks.values() if s.person_id == person_id]
        return sorted(checks, key=lambda s: s.check_date or date.min, reverse=True)

    def _view(self, certificate: Certificate) -> CertificateView:
        return CertificateView(
            **certificate.model_dump(),
            trainee=self.profiles.get(certificate.trainee_id),
            job_category=self.job_categories.get(certificate.job_category_id),
            airport=self.airports.get(certificate.airport_id),
            training=self.trainings.get(certificate.training_id),
            theoretical_exam=self.examinations.get(certificate.theoretical_exam_id),
            practical_exam=self.examinations.get(certificate.practical_exam_id),
        )


class InMemoryBlobStore(BlobStore):
    """Хранилище объектов в памяти; fail_uploads имитирует недоступность"""

    def __init__(self, buckets=("certificates",)):
        self.objects: Dict[str, Dict[str, bytes]] = {name: {} for name in buckets}
        self.fail_uploads = False
        self.fail_deletes = False

    async def upload(self, bucket, path, data, overwrite=True, content_type="application/pdf"):
        if self.fail_uploads:
            raise StorageError("storage is unavailable")
        if bucket not in self.objects:
            raise StorageError(f"Bucket {bucket} not found")
        if path in self.objects[bucket] and not overwrite:
            raise StorageError(f"Object {path} already exists")
        self.objects[bucket][path] = data
        return path

    async def get_public_url(self, bucket, path):
        return f"https://storage.test/{bucket}/{path}"

    async def delete(self, bucket, paths):
        if self.fail_deletes:
            raise StorageError("delete failed")
        for path in paths:
            self.objects.get(bucket, {}).pop(path, None)

    async def list_buckets(self):
        return list(self.objects)

    async def create_bucket(self, bucket):
        self.objects.setdefault(bucket, {})


PERSON_ID = "person-1"
TRAINING_ID = "training-1"


@pytest.fixture
def now():
    """Фиксированный момент выдачи"""
    return datetime(2025, 6, 1, 10, 30)


@pytest.fixture
def record_store():
    """Хранилище с одним сотрудником и завершенным обучением по программе FRS"""
    store = InMemoryRecordStore()

    store.job_categories["cat-1"] = JobCategory(id="cat-1", code="RFF", name_en="Rescue and Firefighting")
    store.airports["apt-1"] = Airport(id="apt-1", name="Podgorica Airport", code="TGD")
    store.profiles[PERSON_ID] = Profile(
        id=PERSON_ID, full_name="Marko Petrovic", employee_id="EMP-001", job_category_id="cat-1"
    )
    store.assignments[PERSON_ID] = [
        AirportAssignment(airport_id="apt-1", is_primary=True, airport=store.airports["apt-1"])
    ]
    store.trainings[TRAINING_ID] = Training(
        id=TRAINING_ID,
        trainee_id=PERSON_ID,
        program_id="prog-1",
        airport_id="apt-1",
        status=TrainingStatus.COMPLETED,
        start_date=date(2025, 5, 1),
        end_date=date(2025, 5, 30),
        program=TrainingProgram(id="prog-1", code="FRS", title="Fire Rescue Service",
                                validity_months=24, total_hours=40),
    )
    store.examinations["exam-t"] = Examination(
        id="exam-t", training_id=TRAINING_ID, exam_type=ExamType.THEORETICAL,
        exam_date=date(2025, 5, 20), score=90, max_score=100, passed=True
    )
    store.examinations["exam-p"] = Examination(
        id="exam-p", training_id=TRAINING_ID, exam_type=ExamType.PRACTICAL,
        exam_date=date(2025, 5, 25), score=85, max_score=100, passed=True
    )
    return store


@pytest.fixture
def blob_store():
    """Хранилище объектов в памяти"""
    return InMemoryBlobStore()


@pytest.fixture
def settings(tmp_path):
    """Настройки без чтения .env"""
    return Settings(
        _env_file=None,
        storage_bucket="certificates",
        storage_path=tmp_path / "storage",
        log_file=tmp_path / "logs" / "test.log",
        organization_name="Airports of Montenegro",
        issued_by_name="Chief Instructor",
    )


@pytest.fixture
def renderer():
    return CertificateRenderer()


@pytest.fixture
def service(record_store, blob_store, settings, renderer):
    """Фасад поверх хранилищ в памяти"""
    return CertificateService(record_store, blob_store, renderer=renderer, settings=settings)
