"""
Тесты фасада сервиса сертификатов
"""
from datetime import date, datetime
from unittest.mock import AsyncMock

import pytest

from certengine.models import CertificateRequest, TrainingStatus

TRAINING_ID = "training-1"


class TestIssueFromTraining:
    """Выдача через фасад"""

    @pytest.mark.asyncio
    async def test_issue_generates_pdf(self, service, record_store, blob_store, now):
        result = await service.issue_from_training(TRAINING_ID, now=now)

        assert result.success is True
        assert result.certificate_number.startswith("CERT-FRS-202506-")
        assert result.used_fallback is False
        assert result.pdf_url.startswith("https://storage.test/certificates/")
        assert len(blob_store.objects["certificates"]) == 1
        assert record_store.certificates[result.certificate_id].pdf_url == result.pdf_url

    @pytest.mark.asyncio
    async def test_issue_with_storage_down(self, service, blob_store, now):
        blob_store.fail_uploads = True

        result = await service.issue_from_training(TRAINING_ID, now=now)

        assert result.success is True
        assert result.used_fallback is True
        assert result.pdf_url.startswith("data:application/pdf;base64,")

    @pytest.mark.asyncio
    async def test_artifact_failure_does_not_fail_issuance(self, service, record_store, now):
        service.artifacts.generate_and_store = AsyncMock(side_effect=RuntimeError("renderer crashed"))

        result = await service.issue_from_training(TRAINING_ID, now=now)

        assert result.success is True
        assert "renderer crashed" in result.message
        assert result.pdf_url is None
        assert result.certificate_id in record_store.certificates

    @pytest.mark.asyncio
    async def test_failure_kinds(self, service, record_store, now):
        result = await service.issue_from_training("missing", now=now)
        assert (result.success, result.kind) == (False, "NotFound")

        await service.issue_from_training(TRAINING_ID, now=now)
        result = await service.issue_from_training(TRAINING_ID, now=now)
        assert (result.success, result.kind) == (False, "AlreadyExists")

        record_store.trainings["training-2"] = record_store.trainings[TRAINING_ID].model_copy(
            update={"id": "training-2", "status": TrainingStatus.SCHEDULED}
        )
        result = await service.issue_from_training("training-2", now=now)
        assert (result.success, result.kind) == (False, "InvalidState")

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal(self, service, record_store, now):
        record_store.get_training = AsyncMock(side_effect=RuntimeError("pool exhausted"))

        result = await service.issue_from_training(TRAINING_ID, now=now)

        assert result.success is False
        assert result.kind == "InternalError"
        assert "pool exhausted" in result.error


class TestCertificateOperations:
    """Операции над выданным сертификатом"""

    @pytest.mark.asyncio
    async def test_details(self, service, now):
        issued = (await service.issue_from_training(TRAINING_ID, now=now)).certificate_id

        result = await service.get_certificate_details(issued, now=datetime(2027, 5, 1))

        assert result.success is True
        assert result.certificate.trainee.full_name == "Marko Petrovic"
        assert result.certificate.program.title == "Fire Rescue Service"
        assert result.certificate.practical_exam.score_display == "85/100"
        assert result.status_info["status"] == "expiring_soon"
        assert result.status_info["days_left"] == 31

    @pytest.mark.asyncio
    async def test_details_not_found(self, service):
        result = await service.get_certificate_details("missing")
        assert result.kind == "NotFound"

    @pytest.mark.asyncio
    async def test_regenerate_pdf(self, service, blob_store, now):
        issued = (await service.issue_from_training(TRAINING_ID, now=now)).certificate_id

        result = await service.generate_certificate_pdf(issued)

        assert result.success is True
        assert len(blob_store.objects["certificates"]) == 1

    @pytest.mark.asyncio
    async def test_upload_validation(self, service, blob_store, now):
        issued = (await service.issue_from_training(TRAINING_ID, now=now)).certificate_id

        result = await service.upload_existing_certificate(issued, b"text", "text/plain")
        assert (result.success, result.kind) == (False, "ValidationError")

        result = await service.upload_existing_certificate(issued, b"%PDF-1.4", "application/pdf")
        assert result.success is True
        assert result.pdf_url.endswith("_uploaded.pdf")
        assert list(blob_store.objects["certificates"]) == [result.pdf_url.rsplit("/", 1)[-1]]

    @pytest.mark.asyncio
    async def test_update_status(self, service, record_store, now):
        issued = (await service.issue_from_training(TRAINING_ID, now=now)).certificate_id

        result = await service.update_certificate_status(issued, "suspended")
        assert result.success is True
        assert record_store.certificates[issued].status.value == "suspended"

        details = await service.get_certificate_details(issued, now=now)
        assert details.status_info["status"] == "suspended"
        assert details.status_info["is_usable"] is False

        result = await service.update_certificate_status(issued, "expiring_soon")
        assert (result.success, result.kind) == (False, "ValidationError")

        result = await service.update_certificate_status("missing", "valid")
        assert result.kind == "NotFound"

    @pytest.mark.asyncio
    async def test_delete_removes_artifact(self, service, record_store, blob_store, now):
        issued = (await service.issue_from_training(TRAINING_ID, now=now)).certificate_id

        result = await service.delete_certificate(issued)

        assert result.success is True
        assert issued not in record_store.certificates
        assert blob_store.objects["certificates"] == {}

        result = await service.delete_certificate(issued)
        assert result.kind == "NotFound"

    @pytest.mark.asyncio
    async def test_delete_tolerates_storage_failure(self, service, record_store, blob_store, now):
        issued = (await service.issue_from_training(TRAINING_ID, now=now)).certificate_id
        blob_store.fail_deletes = True

        result = await service.delete_certificate(issued)

        assert result.success is True
        assert "не удалось удалить из хранилища" in result.message
        assert issued not in record_store.certificates


class TestAddCertificate:
    """Ручное добавление"""

    @pytest.mark.asyncio
    async def test_add_from_dict(self, service, record_store):
        result = await service.add_certificate({
            "training_id": TRAINING_ID,
            "certificate_number": "LEGACY-2019-07",
            "issue_date": "2019-07-01",
            "expiry_date": "2021-07-01",
            "status": "expired",
        })

        assert result.success is True
        assert record_store.certificates[result.certificate_id].issue_date == date(2019, 7, 1)

    @pytest.mark.asyncio
    async def test_add_from_request(self, service):
        request = CertificateRequest(
            training_id=TRAINING_ID,
            certificate_number="LEGACY-2019-07",
            issue_date=date(2019, 7, 1),
            expiry_date=date(2021, 7, 1),
        )

        result = await service.add_certificate(request)

        assert result.success is True

    @pytest.mark.asyncio
    async def test_add_invalid(self, service, record_store):
        result = await service.add_certificate({
            "training_id": TRAINING_ID,
            "certificate_number": "",
            "issue_date": "2021-07-01",
        })

        assert (result.success, result.kind) == (False, "ValidationError")
        assert record_store.certificates == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value", [
        ("certificate_number", 12345),
        ("status", 12345),
        ("training_id", 7),
    ])
    async def test_add_non_string_field(self, service, record_store, field, value):
        body = {
            "training_id": TRAINING_ID,
            "certificate_number": "LEGACY-1",
            "issue_date": "2019-07-01",
            "expiry_date": "2021-07-01",
            "status": "expired",
        }
        body[field] = value

        result = await service.add_certificate(body)

        assert (result.success, result.kind) == (False, "ValidationError")
        assert record_store.certificates == {}

    @pytest.mark.asyncio
    async def test_add_expiry_before_issue(self, service):
        result = await service.add_certificate({
            "training_id": TRAINING_ID,
            "certificate_number": "LEGACY-1",
            "issue_date": "2021-07-01",
            "expiry_date": "2020-07-01",
        })

        assert result.kind == "ValidationError"

    @pytest.mark.asyncio
    async def test_add_unknown_training(self, service):
        result = await service.add_certificate({
            "training_id": "missing",
            "certificate_number": "LEGACY-1",
            "issue_date": "2019-07-01",
            "expiry_date": "2021-07-01",
        })

        assert result.kind == "NotFound"


class TestProfileBundle:
    """Профиль через фасад"""

    @pytest.mark.asyncio
    async def test_load(self, service, now):
        await service.issue_from_training(TRAINING_ID, now=now)

        result = await service.load_profile_bundle("person-1", now=now)

        assert result.success is True
        assert result.profile_bundle.summary.active_certificates == 1
        assert result.profile_bundle.summary.expiring_certificates == 0

    @pytest.mark.asyncio
    async def test_unknown_person(self, service):
        result = await service.load_profile_bundle("missing")
        assert (result.success, result.kind) == (False, "NotFound")
