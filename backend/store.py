"""
Session storage: the load-all / save contract the session manager depends on,
a SQLModel implementation for real use and an in-memory one for tests.
"""
import logging
import threading
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from errors import StoreUnavailable
from models import SleepSession
from sleep_calendar import as_utc

logger = logging.getLogger(__name__)

StoreListener = Callable[[SleepSession], None]


class SessionStore(Protocol):
    def load_all(self) -> list[SleepSession]:
        """Every stored session, most recent start first."""
        ...

    def save(self, session: SleepSession) -> SleepSession:
        """Insert or update a session by id. Durable once this returns."""
        ...

    def add_listener(self, listener: StoreListener) -> None:
        ...


def _normalized(session: SleepSession) -> SleepSession:
    # SQLite drops tz info; everything leaving a store is aware UTC
    return session.copy_with(
        start_date=as_utc(session.start_date),
        end_date=as_utc(session.end_date) if session.end_date else None,
    )


class _ListenerMixin:
    def __init__(self):
        self._listeners: list[StoreListener] = []

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def _notify(self, session: SleepSession) -> None:
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Store listener %r failed", listener)


class SQLModelSessionStore(_ListenerMixin):
    def __init__(self, engine: Engine):
        super().__init__()
        self.engine = engine

    def load_all(self) -> list[SleepSession]:
        statement = select(SleepSession).order_by(SleepSession.start_date.desc())
        try:
            with Session(self.engine, expire_on_commit=False) as db:
                rows = db.exec(statement).all()
                return [_normalized(row) for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Could not load sleep sessions: {e}") from e
        except (ValueError, TypeError) as e:
            # a row whose stored values cannot be decoded
            raise StoreUnavailable(f"Corrupt sleep session record: {e}") from e

    def save(self, session: SleepSession) -> SleepSession:
        record = _normalized(session)
        with Session(self.engine, expire_on_commit=False) as db:
            try:
                merged = db.merge(record)
                db.commit()
                db.refresh(merged)
                saved = _normalized(merged)
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreUnavailable(f"Could not save sleep session {session.id}: {e}") from e
        self._notify(saved)
        return saved


class InMemorySessionStore(_ListenerMixin):
    """List-backed store. Set fail_loads / fail_saves to simulate an outage."""

    def __init__(self, sessions: list[SleepSession] | None = None):
        super().__init__()
        self._lock = threading.Lock()
        self._records: dict[str, SleepSession] = {}
        self.fail_loads = False
        self.fail_saves = False
        self.save_count = 0
        for s in sessions or []:
            self._records[s.id] = _normalized(s)

    def load_all(self) -> list[SleepSession]:
        if self.fail_loads:
            raise StoreUnavailable("in-memory store is offline")
        with self._lock:
            records = [r.copy_with() for r in self._records.values()]
        return sorted(records, key=lambda r: r.start_date, reverse=True)

    def save(self, session: SleepSession) -> SleepSession:
        if self.fail_saves:
            raise StoreUnavailable("in-memory store is offline")
        record = _normalized(session)
        with self._lock:
            self._records[record.id] = record
            self.save_count += 1
        self._notify(record.copy_with())
        return record.copy_with()
