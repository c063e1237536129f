"""
Тесты для модуля валидации
"""
from datetime import date

import pytest

from certengine.exceptions import UploadValidationError, ValidationError
from certengine.models import CertificateRequest, CertificateStatus
from certengine.validators import (
    MAX_UPLOAD_BYTES, DataValidator, StatusValidator, UploadValidator
)


class TestUploadValidator:
    """Тесты проверки загружаемых файлов"""

    @pytest.fixture
    def validator(self):
        return UploadValidator()

    def test_valid_pdf(self, validator):
        validator.validate(b"%PDF-1.4 test", "application/pdf")
        validator.validate(b"%PDF-1.4 test", "application/pdf; charset=binary")

    def test_wrong_content_type(self, validator):
        with pytest.raises(UploadValidationError, match="Допускаются только PDF файлы"):
            validator.validate(b"\x89PNG", "image/png")

    def test_missing_content_type(self, validator):
        with pytest.raises(UploadValidationError):
            validator.validate(b"%PDF-1.4", None)

    def test_empty_file(self, validator):
        with pytest.raises(UploadValidationError):
            validator.validate(b"", "application/pdf")

    def test_size_limit(self, validator):
        validator.validate(b"0" * MAX_UPLOAD_BYTES, "application/pdf")

        with pytest.raises(UploadValidationError, match="Размер файла превышает 10 МБ"):
            validator.validate(b"0" * (MAX_UPLOAD_BYTES + 1), "application/pdf")

    def test_upload_error_is_validation_error(self):
        assert issubclass(UploadValidationError, ValidationError)
        assert UploadValidationError.kind == "ValidationError"


class TestStatusValidator:
    """Тесты проверки статуса"""

    @pytest.mark.parametrize("status", ["valid", "expired", "suspended", "revoked", " Revoked "])
    def test_known_statuses(self, status):
        assert StatusValidator().validate(status) == status.strip().lower()

    @pytest.mark.parametrize("status", ["", "expiring_soon", "active", None, 1, ["valid"]])
    def test_unknown_statuses(self, status):
        with pytest.raises(ValidationError):
            StatusValidator().validate(status)


class TestDataValidator:
    """Тесты общей валидации ручного создания"""

    def test_valid_data(self):
        errors = DataValidator().validate_all(
            "t-1", "CERT-FRS-202506-482913", date(2025, 6, 1), date(2027, 6, 1), "valid"
        )
        assert errors == []

    def test_collects_all_errors(self):
        errors = DataValidator().validate_all(None, " ", None, None, "unknown")
        assert len(errors) == 5

    def test_expiry_before_issue(self):
        errors = DataValidator().validate_all(
            "t-1", "CERT-1", date(2025, 6, 1), date(2025, 6, 1), "valid"
        )
        assert errors == ["Дата окончания должна быть позже даты выдачи"]

    def test_non_string_fields(self):
        errors = DataValidator().validate_all(
            42, 12345, date(2025, 6, 1), date(2027, 6, 1), 7
        )

        assert "ID обучения должен быть строкой" in errors
        assert "Номер сертификата должен быть строкой" in errors
        assert len(errors) == 3


class TestCertificateRequest:
    """Тесты модели запроса ручного создания"""

    def test_parses_iso_dates(self):
        request = CertificateRequest(
            training_id="t-1",
            certificate_number=" LEGACY-2019-07 ",
            issue_date="2019-07-01",
            expiry_date="2021-07-01",
        )
        assert request.certificate_number == "LEGACY-2019-07"
        assert request.issue_date == date(2019, 7, 1)
        assert request.status == CertificateStatus.VALID

    def test_expiry_must_follow_issue(self):
        with pytest.raises(ValidationError):
            CertificateRequest(
                training_id="t-1",
                certificate_number="CERT-1",
                issue_date="2025-06-01",
                expiry_date="2025-05-01",
            )
