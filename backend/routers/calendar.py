"""
Sleep calendar: per-day totals for a month and the detail of a single day.
"""
from datetime import date

from fastapi import APIRouter, Path

from config import settings
from deps import ManagerDep, NowDep
from models import DaySummary, MonthSummary

router = APIRouter(prefix=settings.API_PREFIX, tags=["calendar"])


@router.get("/days/{day}", response_model=DaySummary)
def get_day(day: date, manager: ManagerDep, now: NowDep):
    """Sessions that started on this day and their total."""
    return manager.day_summary(day, now)


@router.get("/calendar/{year}/{month}", response_model=MonthSummary)
def get_month(
    manager: ManagerDep,
    now: NowDep,
    year: int = Path(ge=1, le=9999),
    month: int = Path(ge=1, le=12),
):
    """Total sleep for every day of the month, for the calendar grid."""
    return manager.month_summary(year, month, now)
