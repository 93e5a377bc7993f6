"""
Sleep session lifecycle and the queries the display layer needs.

The manager keeps every known session in an in-memory tuple, newest start
first, reloaded from the store after each write. Mutations and reloads are
serialised by one re-entrant lock per manager; queries read the current
tuple without locking.
"""
import logging
import threading
from datetime import date, datetime, timezone, tzinfo
from typing import Callable, Optional

from errors import InvariantViolation, StoreUnavailable, ValidationFailure
from models import (
    AddSessionResult,
    DaySummary,
    DayTotal,
    MonthSummary,
    SleepSession,
    SleepSessionRead,
    SleepStatus,
)
from sleep_calendar import as_utc, day_of, days_in_month
from store import SessionStore

logger = logging.getLogger(__name__)

ChangeListener = Callable[["SessionManager"], None]


class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        tz: tzinfo = timezone.utc,
        *,
        follow_store_changes: bool = True,
    ):
        self.store = store
        self.tz = tz
        self.invariant_violations = 0
        self._lock = threading.RLock()
        self._sessions: tuple[SleepSession, ...] = ()
        self._listeners: list[ChangeListener] = []
        self._mutating = False
        self._stale = False
        if follow_store_changes:
            store.add_listener(self._on_store_changed)

    # --- Cache ---

    @property
    def sessions(self) -> tuple[SleepSession, ...]:
        """Snapshot of every session, most recent start first."""
        return self._sessions

    def refresh(self) -> None:
        """Reload all sessions from the store. A failing store leaves the cache empty."""
        with self._lock:
            self._stale = False
            try:
                self._sessions = self._load()
            except StoreUnavailable:
                logger.exception("Failed to fetch sleep sessions")
                self._sessions = ()

    def _load(self) -> tuple[SleepSession, ...]:
        loaded = self.store.load_all()
        return tuple(sorted(loaded, key=lambda s: as_utc(s.start_date), reverse=True))

    def _resync(self) -> None:
        try:
            self._sessions = self._load()
        except StoreUnavailable:
            logger.exception("Resync after failed save also failed; keeping previous sessions")

    def _on_store_changed(self, _saved: SleepSession) -> None:
        # A save in flight here refreshes once it returns, which covers this write too
        if self._mutating:
            return
        # Mark first, then try the lock: a holder that blocks us re-checks the flag on release
        self._stale = True
        self._refresh_if_stale()

    def _refresh_if_stale(self) -> None:
        while self._stale and self._lock.acquire(blocking=False):
            try:
                self.refresh()
            finally:
                self._lock.release()
            self._emit()

    # --- Change notifications ---

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call `listener(manager)` after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Sessions-changed listener %r failed", listener)

    def _persist(self, session: SleepSession) -> SleepSession:
        """Save under the lock, then reload. On failure the cache is left as it was."""
        self._mutating = True
        try:
            saved = self.store.save(session)
        except StoreUnavailable:
            logger.exception("Failed to save sleep session %s", session.id)
            self._resync()
            raise
        finally:
            self._mutating = False
        self.refresh()
        return saved

    # --- Lifecycle ---

    def active_session(self) -> Optional[SleepSession]:
        """The session in progress, if any. Never more than one."""
        active = [s for s in self._sessions if s.is_active]
        if not active:
            return None
        if len(active) > 1:
            self.invariant_violations += 1
            logger.error(
                "Found %d active sleep sessions (%s); using the most recent",
                len(active),
                ", ".join(s.id for s in active),
            )
            return max(active, key=lambda s: as_utc(s.start_date))
        return active[0]

    def check_invariants(self) -> None:
        """Raise InvariantViolation if the cached sessions break the data model rules."""
        sessions = self._sessions
        active = [s for s in sessions if s.is_active]
        if len(active) > 1:
            raise InvariantViolation(f"{len(active)} sessions are active at once")
        for s in sessions:
            if s.end_date is not None and as_utc(s.end_date) <= as_utc(s.start_date):
                raise InvariantViolation(f"Session {s.id} ends before it starts")
        ids = [s.id for s in sessions]
        if len(ids) != len(set(ids)):
            raise InvariantViolation("Duplicate session ids")

    def _start(self, now: datetime) -> Optional[SleepSession]:
        if self.active_session() is not None:
            logger.debug("start_session ignored: a session is already active")
            return None
        session = SleepSession(start_date=as_utc(now), end_date=None, created_manually=False)
        saved = self._persist(session)
        logger.info("Started sleep session %s at %s", saved.id, saved.start_date.isoformat())
        return saved

    def _stop(self, now: datetime) -> Optional[SleepSession]:
        active = self.active_session()
        if active is None:
            logger.debug("stop_session ignored: no active session")
            return None
        end = as_utc(now)
        if end <= as_utc(active.start_date):
            raise ValidationFailure("End time must be after the session's start time")
        saved = self._persist(active.copy_with(end_date=end))
        logger.info("Stopped sleep session %s after %.0fs", saved.id, saved.duration)
        return saved

    def _run(self, command: Callable[[], Optional[SleepSession]]) -> Optional[SleepSession]:
        with self._lock:
            result = command()
        if result is not None:
            self._emit()
        self._refresh_if_stale()
        return result

    def start_session(self, now: datetime) -> Optional[SleepSession]:
        """Begin a session at `now`. Does nothing and returns None if one is already running."""
        return self._run(lambda: self._start(now))

    def ensure_started(self, now: datetime) -> tuple[SleepSession, bool]:
        """The running session and whether this call created it, decided under one lock hold."""
        with self._lock:
            active = self.active_session()
            created = active is None
            if created:
                active = self._start(now)
        if created:
            self._emit()
        self._refresh_if_stale()
        return active, created

    def stop_session(self, now: datetime) -> Optional[SleepSession]:
        """Close the active session at `now`. Does nothing and returns None if nothing is running."""
        return self._run(lambda: self._stop(now))

    def toggle_session(self, now: datetime) -> Optional[SleepSession]:
        """Stop the running session, or start one if the baby is awake."""
        return self._run(lambda: self._stop(now) if self.active_session() is not None else self._start(now))

    def add_session(self, start: datetime, end: datetime, now: datetime) -> AddSessionResult:
        """Record a finished session after the fact. Future times are refused."""
        start, end, now = as_utc(start), as_utc(end), as_utc(now)
        if end <= start:
            return AddSessionResult(ok=False, reason="End time must be after start time")
        if start > now or end > now:
            return AddSessionResult(ok=False, reason="Sessions cannot be in the future")

        def add() -> SleepSession:
            saved = self._persist(SleepSession(start_date=start, end_date=end, created_manually=True))
            logger.info("Added manual sleep session %s (%s - %s)", saved.id, start.isoformat(), end.isoformat())
            return saved

        return AddSessionResult(ok=True, session=self._run(add))

    # --- Queries ---

    def recent_sessions(self, limit: Optional[int] = None) -> list[SleepSession]:
        sessions = list(self._sessions)
        return sessions if limit is None else sessions[: max(0, limit)]

    def last_completed_session(self) -> Optional[SleepSession]:
        return next((s for s in self._sessions if not s.is_active), None)

    def sessions_on(self, day: date | datetime, tz: Optional[tzinfo] = None) -> list[SleepSession]:
        """Sessions that started on `day`, oldest first. The end date is ignored."""
        zone = tz or self.tz
        target = day_of(day, zone)
        matching = [s for s in self._sessions if day_of(s.start_date, zone) == target]
        return sorted(matching, key=lambda s: as_utc(s.start_date))

    def total_sleep_duration(self, day: date | datetime, now: datetime, tz: Optional[tzinfo] = None) -> float:
        """Seconds slept on `day`; a running session counts up to `now`."""
        return sum((s.elapsed(now) for s in self.sessions_on(day, tz)), 0.0)

    def day_summary(self, day: date | datetime, now: datetime) -> DaySummary:
        sessions = self.sessions_on(day)
        return DaySummary(
            day=day_of(day, self.tz),
            total_seconds=sum((s.elapsed(now) for s in sessions), 0.0),
            session_count=len(sessions),
            sessions=[SleepSessionRead.from_session(s) for s in sessions],
        )

    def month_summary(self, year: int, month: int, now: datetime) -> MonthSummary:
        days = []
        for day in days_in_month(year, month):
            sessions = self.sessions_on(day)
            days.append(
                DayTotal(
                    day=day,
                    total_seconds=sum((s.elapsed(now) for s in sessions), 0.0),
                    session_count=len(sessions),
                )
            )
        return MonthSummary(
            year=year,
            month=month,
            total_seconds=sum(d.total_seconds for d in days),
            days=days,
        )

    def status(self, now: datetime, recent_limit: int = 3) -> SleepStatus:
        active = self.active_session()
        last = self.last_completed_session()
        today = self.sessions_on(now)
        return SleepStatus(
            is_sleeping=active is not None,
            active_session=SleepSessionRead.from_session(active) if active else None,
            elapsed_seconds=active.elapsed(now) if active else None,
            last_completed_session=SleepSessionRead.from_session(last) if last else None,
            today=day_of(now, self.tz),
            today_total_seconds=sum((s.elapsed(now) for s in today), 0.0),
            today_session_count=len(today),
            recent_sessions=[SleepSessionRead.from_session(s) for s in self.recent_sessions(recent_limit)],
        )
