# FILE: dental_clinic/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date
from zoneinfo import ZoneInfo

from dental_clinic.core.config import settings

CLINIC_TZ = ZoneInfo(settings.CLINIC_TIMEZONE)


def now_clinic() -> datetime:
    """
    Returns a *naive* datetime in clinic local time.
    DateTime columns are naive, so tzinfo is stripped before storing.
    """
    return datetime.now(CLINIC_TZ).replace(tzinfo=None)


def today_clinic() -> date:
    return now_clinic().date()
