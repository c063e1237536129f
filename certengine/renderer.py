"""
Рендеринг PDF документа сертификата.
"""

import base64
import logging
from io import BytesIO
from typing import Optional

from reportlab.lib.colors import Color, white
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .exceptions import GenerationError
from .models import CertificatePayload, CertificateView, OrganizationSettings
from .validators import PDF_CONTENT_TYPE

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "CERTIFICATE OF COMPLETION"
DEFAULT_NOTES = "This certificate confirms successful completion of the required training."
NOT_AVAILABLE = "N/A"

# Цветовые схемы шаблонов: (акцент, фон)
TEMPLATES = {
    "standard": (Color(41 / 255, 128 / 255, 185 / 255), Color(240 / 255, 240 / 255, 245 / 255)),
    "premium": (Color(160 / 255, 124 / 255, 38 / 255), Color(250 / 255, 246 / 255, 235 / 255)),
    "simple": (Color(60 / 255, 60 / 255, 60 / 255), white),
}


def _text(value, fallback: str = NOT_AVAILABLE) -> str:
    if value is None:
        return fallback
    value = str(value).strip()
    return value or fallback


def _format_date(value) -> str:
    return value.strftime("%d %B %Y") if value else NOT_AVAILABLE


def _format_hours(value) -> str:
    if value is None:
        return "0"
    return f"{value:g}"


def build_payload(view: CertificateView, organization: OrganizationSettings) -> CertificatePayload:
    """
    Собирает данные для документа из сертификата и связанных сущностей.

    Для каждого необязательного поля подставляется значение по умолчанию,
    чтобы рендерер никогда не получал None.
    """
    program = view.program
    trainee = view.trainee
    theoretical = view.theoretical_exam
    practical = view.practical_exam

    return CertificatePayload(
        certificate_number=view.certificate_number,
        trainee_name=_text(trainee.full_name if trainee else None, "Unknown"),
        employee_id=_text(trainee.employee_id if trainee else None),
        training_program=_text(program.title if program else None, "Training Program"),
        program_code=_text(program.code if program else None),
        job_category=_text(view.job_category.display_name if view.job_category else None),
        airport_name=_text(view.airport.name if view.airport else None),
        airport_code=_text(view.airport.code if view.airport else None),
        issue_date=_format_date(view.issue_date),
        expiry_date=_format_date(view.expiry_date),
        theoretical_score=_text(theoretical.score_display if theoretical else None),
        practical_score=_text(practical.score_display if practical else None),
        total_hours=_format_hours(program.total_hours if program else None),
        issued_by_name=_text(organization.issued_by_name, "Training Director"),
        organization_name=_text(organization.organization_name, "Training Center"),
        certificate_title=_text(organization.certificate_title, DEFAULT_TITLE),
        notes=_text(view.notes, DEFAULT_NOTES),
        signature_image_path=organization.signature_image_path,
    )


class CertificateRenderer:
    """Рендерер сертификатов в PDF (альбомная A4)."""

    def __init__(self, default_template: str = "standard"):
        self.default_template = default_template

    def render(self, payload: CertificatePayload, template_type: Optional[str] = None) -> bytes:
        """
        Генерирует PDF сертификата.

        Args:
            payload: Данные сертификата
            template_type: standard, premium или simple

        Returns:
            bytes: Содержимое PDF

        Raises:
            GenerationError: При неизвестном шаблоне или ошибке рендеринга
        """
        template_type = template_type or self.default_template
        if template_type not in TEMPLATES:
            raise GenerationError(f"Неизвестный шаблон сертификата: {template_type}")

        try:
            return self._draw(payload, template_type)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Ошибка рендеринга сертификата {payload.certificate_number}: {e}")

    def _draw(self, payload: CertificatePayload, template_type: str) -> bytes:
        accent, background = TEMPLATES[template_type]
        width, height = landscape(A4)

        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(width, height))
        c.setTitle(f"Certificate {payload.certificate_number}")
        c.setAuthor(payload.organization_name)

        # фон и рамка
        c.setFillColor(background)
        c.rect(0, 0, width, height, stroke=0, fill=1)
        c.setStrokeColor(accent)
        c.setLineWidth(2 if template_type == "premium" else 1)
        c.rect(56, 42, width - 112, height - 84, stroke=1, fill=0)
        if template_type == "premium":
            c.rect(64, 50, width - 128, height - 100, stroke=1, fill=0)

        # заголовок
        c.setFillColor(accent)
        c.setFont("Helvetica-Bold", 30)
        c.drawCentredString(width / 2, height - 110, payload.certificate_title)

        c.setFillColorRGB(0.4, 0.4, 0.4)
        c.setFont("Helvetica", 15)
        c.drawCentredString(width / 2, height - 160, "This certifies that")

        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 26)
        c.drawCentredString(width / 2, height - 205, payload.trainee_name.upper())

        c.setFillColorRGB(0.4, 0.4, 0.4)
        c.setFont("Helvetica", 13)
        c.drawCentredString(
            width / 2, height - 235,
            f"has successfully completed the {payload.training_program} ({payload.program_code})"
        )

        # детали
        details = [
            ("Job Category:", payload.job_category),
            ("Airport:", f"{payload.airport_name} ({payload.airport_code})"),
            ("Certificate Number:", payload.certificate_number),
            ("Issue Date:", payload.issue_date),
            ("Valid Until:", payload.expiry_date),
            ("Theoretical Exam:", payload.theoretical_score),
            ("Practical Exam:", payload.practical_score),
            ("Total Hours:", payload.total_hours),
        ]

        y = height - 280
        for label, value in details:
            c.setFont("Helvetica-Bold", 11)
            c.setFillColorRGB(0.4, 0.4, 0.4)
            c.drawString(width / 2 - 200, y, label)
            c.setFont("Helvetica", 11)
            c.setFillColorRGB(0.2, 0.2, 0.2)
            c.drawString(width / 2 - 60, y, value)
            y -= 17

        c.setFont("Helvetica-Oblique", 9)
        c.setFillColorRGB(0.4, 0.4, 0.4)
        c.drawCentredString(width / 2, y - 6, payload.notes[:160])

        # подпись
        footer_y = 110
        c.setFont("Helvetica", 11)
        c.drawString(120, footer_y + 30, "Issued By:")
        c.setFont("Helvetica-Bold", 13)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(120, footer_y + 14, payload.issued_by_name)
        self._draw_signature(c, payload.signature_image_path, 110, footer_y - 40)

        # печать
        if template_type != "simple":
            seal_x = width - 180
            c.setStrokeColor(accent)
            c.setFillColor(white)
            c.circle(seal_x, footer_y + 10, 48, stroke=1, fill=1)
            c.setFillColor(accent)
            c.setFont("Helvetica-Bold", 14)
            c.drawCentredString(seal_x, footer_y + 14, "CERTIFIED")
            c.setFont("Helvetica", 8)
            c.drawCentredString(seal_x, footer_y - 2, payload.organization_name[:28])

        c.showPage()
        c.save()
        buf.seek(0)
        return buf.getvalue()

    def _draw_signature(self, c, image_path: Optional[str], x: float, y: float) -> None:
        if image_path:
            try:
                c.drawImage(ImageReader(image_path), x, y, width=140, height=45, mask='auto')
                return
            except Exception as e:
                logger.warning(f"Не удалось загрузить изображение подписи {image_path}: {e}")

        c.setFont("Helvetica-Oblique", 10)
        c.setFillColorRGB(0.4, 0.4, 0.4)
        c.drawString(x, y + 25, "_________________________")
        c.drawString(x + 10, y + 10, "Director Signature")

    def to_inline_data_uri(self, data: bytes) -> str:
        """Кодирует документ в самодостаточную data: строку."""
        encoded = base64.b64encode(data).decode("ascii")
        return f"data:{PDF_CONTENT_TYPE};base64,{encoded}"
