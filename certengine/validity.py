"""
Расчет срока действия и производного статуса сертификата.

Все функции чистые: текущее время передается явно через параметр ``now``
(``date`` или ``datetime``; ``None`` означает сегодняшний день).
Сравнение идет по календарным датам, время суток не учитывается.
"""

from datetime import date, datetime
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

# Окно "скоро истекает" в днях, общее для выдачи, профиля и API
EXPIRING_SOON_DAYS = 90

DEFAULT_VALIDITY_MONTHS = 24

DateLike = Union[date, datetime]


def _as_date(value: Optional[DateLike]) -> date:
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def add_months(start: date, months: int) -> date:
    """
    Прибавляет календарные месяцы к дате.

    День месяца сохраняется, а если в целевом месяце его нет,
    берется последний день месяца: 2025-01-31 + 1 = 2025-02-28.

    Args:
        start: Исходная дата
        months: Количество месяцев

    Returns:
        date: Новая дата
    """
    return _as_date(start) + relativedelta(months=months)


def days_remaining(expiry_date: DateLike, now: Optional[DateLike] = None) -> int:
    """
    Возвращает количество дней до окончания действия.

    Отрицательное значение означает, что срок уже истек.
    """
    return (_as_date(expiry_date) - _as_date(now)).days


def is_currently_valid(expiry_date: DateLike, now: Optional[DateLike] = None) -> bool:
    """Проверяет, что срок действия еще не истек (день окончания включительно)."""
    return _as_date(now) <= _as_date(expiry_date)


def is_expiring_soon(expiry_date: DateLike, now: Optional[DateLike] = None,
                     window_days: int = EXPIRING_SOON_DAYS) -> bool:
    """Проверяет, что до окончания осталось от 0 до window_days дней."""
    return 0 <= days_remaining(expiry_date, now) <= window_days


def usable_now(certificate, now: Optional[DateLike] = None) -> bool:
    """
    Проверяет, можно ли пользоваться сертификатом сейчас.

    Хранимый статус должен быть valid, а срок действия не истекшим.
    """
    status = getattr(certificate.status, "value", certificate.status)
    return status == "valid" and is_currently_valid(certificate.expiry_date, now)


def derive_status(certificate, now: Optional[DateLike] = None) -> str:
    """
    Возвращает производный статус: revoked, suspended, expired,
    expiring_soon или valid.

    Административный статус (отозван, приостановлен) имеет приоритет
    над сроком действия.
    """
    status = getattr(certificate.status, "value", certificate.status)
    if status in ("revoked", "suspended"):
        return status
    if status == "expired" or not is_currently_valid(certificate.expiry_date, now):
        return "expired"
    if is_expiring_soon(certificate.expiry_date, now):
        return "expiring_soon"
    return "valid"


def status_info(certificate, now: Optional[DateLike] = None) -> dict:
    """Возвращает детальную информацию о статусе сертификата."""
    derived = derive_status(certificate, now)
    days_left = days_remaining(certificate.expiry_date, now)

    texts = {
        "revoked": "Revoked",
        "suspended": "Suspended",
        "expired": f"Expired ({-days_left} days ago)" if days_left < 0 else "Expired",
        "expiring_soon": f"Expires in {days_left} days",
        "valid": f"Valid ({days_left} days remaining)",
    }

    return {
        "status": derived,
        "stored_status": getattr(certificate.status, "value", certificate.status),
        "text": texts[derived],
        "is_usable": usable_now(certificate, now),
        "is_expired": not is_currently_valid(certificate.expiry_date, now),
        "is_expiring_soon": derived == "expiring_soon",
        "days_left": days_left,
    }
