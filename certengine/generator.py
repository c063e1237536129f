"""
Генератор номеров сертификатов и имен файлов документов.
"""

import re
from datetime import datetime
from typing import Optional

from .exceptions import GenerationError

DEFAULT_PROGRAM_CODE = "TNG"


class CertificateNumberGenerator:
    """Генератор номеров сертификатов."""

    def __init__(self, prefix: str = "CERT"):
        self.prefix = prefix
        self.number_pattern = re.compile(
            rf'^{re.escape(prefix)}-(?P<code>\S+)-(?P<year>\d{{4}})(?P<month>\d{{2}})-(?P<suffix>\d{{6}})$'
        )

    def generate(self, program_code: Optional[str], now: Optional[datetime] = None) -> str:
        """
        Генерирует номер сертификата.

        Формат: CERT-{код программы|TNG}-{YYYYMM}-{6 последних цифр epoch-ms}

        Уникальность практическая, а не криптографическая: настоящую
        уникальность обеспечивает ограничение "один сертификат на обучение".

        Args:
            program_code: Код программы обучения
            now: Момент выдачи

        Returns:
            str: Номер сертификата
        """
        if now is None:
            now = datetime.now()

        code = (program_code or "").strip() or DEFAULT_PROGRAM_CODE
        code = re.sub(r'\s+', '', code)

        epoch_ms = int(now.timestamp() * 1000)
        suffix = f"{epoch_ms % 1_000_000:06d}"

        return f"{self.prefix}-{code}-{now.year:04d}{now.month:02d}-{suffix}"

    def validate_number_format(self, certificate_number: str) -> bool:
        """
        Проверяет корректность формата номера сертификата.

        Args:
            certificate_number: Номер для проверки

        Returns:
            bool: True если формат корректен, False иначе
        """
        if not certificate_number:
            return False

        match = self.number_pattern.match(certificate_number)
        if not match:
            return False

        return 1 <= int(match.group('month')) <= 12


def artifact_object_name(certificate_id: str, certificate_number: str,
                         variant: str = "generated") -> str:
    """
    Возвращает имя объекта документа в хранилище.

    Имя детерминировано, поэтому повторная генерация перезаписывает
    тот же объект: {id}_{номер, пробелы заменены на _}_{variant}.pdf
    """
    if variant not in ("generated", "uploaded"):
        raise GenerationError(f"Неизвестный вариант документа: {variant}")

    safe_number = re.sub(r'\s+', '_', certificate_number)
    return f"{certificate_id}_{safe_number}_{variant}.pdf"
