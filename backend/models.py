from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field as PydanticField
from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field

from sleep_calendar import as_utc


def _new_id() -> str:
    return str(uuid.uuid4())


class SleepSession(SQLModel, table=True):
    __tablename__ = "sleep_sessions"

    id: str = Field(default_factory=_new_id, primary_key=True, index=True)
    start_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False, index=True))
    end_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_manually: bool = Field(default=False)

    @property
    def is_active(self) -> bool:
        return self.end_date is None

    @property
    def duration(self) -> Optional[float]:
        """Length in seconds, or None while the session is still running."""
        if self.end_date is None:
            return None
        return (as_utc(self.end_date) - as_utc(self.start_date)).total_seconds()

    def elapsed(self, now: datetime) -> float:
        """Seconds slept so far: the full duration if closed, else time since start."""
        if self.end_date is not None:
            return self.duration
        return max(0.0, (as_utc(now) - as_utc(self.start_date)).total_seconds())

    def copy_with(self, **changes) -> SleepSession:
        """Detached copy of this record with some fields replaced."""
        values = {
            "id": self.id,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "created_manually": self.created_manually,
        }
        values.update(changes)
        return SleepSession(**values)


# --- API schemas ---


class SleepSessionRead(BaseModel):
    id: str
    start_date: datetime
    end_date: Optional[datetime] = None
    created_manually: bool
    is_active: bool
    duration_seconds: Optional[float] = None

    @classmethod
    def from_session(cls, session: SleepSession) -> SleepSessionRead:
        return cls(
            id=session.id,
            start_date=as_utc(session.start_date),
            end_date=as_utc(session.end_date) if session.end_date else None,
            created_manually=session.created_manually,
            is_active=session.is_active,
            duration_seconds=session.duration,
        )


class ManualSessionRequest(BaseModel):
    start_date: datetime
    end_date: datetime


@dataclass
class AddSessionResult:
    """Outcome of a manual entry: either the stored session or the reason it was refused."""

    ok: bool
    session: Optional[SleepSession] = None
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


class DayTotal(BaseModel):
    day: date
    total_seconds: float
    session_count: int


class DaySummary(DayTotal):
    sessions: list[SleepSessionRead] = PydanticField(default_factory=list)


class MonthSummary(BaseModel):
    year: int
    month: int
    total_seconds: float
    days: list[DayTotal]


class SleepStatus(BaseModel):
    is_sleeping: bool
    active_session: Optional[SleepSessionRead] = None
    elapsed_seconds: Optional[float] = None
    last_completed_session: Optional[SleepSessionRead] = None
    today: date
    today_total_seconds: float
    today_session_count: int
    recent_sessions: list[SleepSessionRead] = PydanticField(default_factory=list)
