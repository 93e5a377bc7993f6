"""
Sleep sessions: live start/stop, manual entries, recent history
and the landing-screen status.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException, Response, status

from config import settings
from deps import ManagerDep, NowDep
from models import ManualSessionRequest, SleepSessionRead, SleepStatus

router = APIRouter(prefix=settings.API_PREFIX, tags=["sessions"])


def _read(session) -> Optional[SleepSessionRead]:
    return SleepSessionRead.from_session(session) if session is not None else None


@router.get("/status", response_model=SleepStatus)
def get_status(manager: ManagerDep, now: NowDep, recent: int = settings.RECENT_SESSIONS_LIMIT):
    """Is the baby asleep, for how long, and how much sleep so far today."""
    return manager.status(now, recent_limit=recent)


@router.get("/sessions", response_model=list[SleepSessionRead])
def list_sessions(manager: ManagerDep, limit: int = 20):
    """List recent sessions (newest first)."""
    return [SleepSessionRead.from_session(s) for s in manager.recent_sessions(limit)]


@router.get("/sessions/active", response_model=Optional[SleepSessionRead])
def get_active_session(manager: ManagerDep):
    """The session in progress, or null when the baby is awake."""
    return _read(manager.active_session())


@router.post("/sessions/start", response_model=SleepSessionRead, status_code=status.HTTP_201_CREATED)
def start_session(manager: ManagerDep, now: NowDep, response: Response):
    """
    Start a sleep session now.
    Starting twice is harmless: the running session is returned with 200.
    """
    session, created = manager.ensure_started(now)
    if not created:
        response.status_code = status.HTTP_200_OK
    return SleepSessionRead.from_session(session)


@router.post("/sessions/stop", response_model=Optional[SleepSessionRead])
def stop_session(manager: ManagerDep, now: NowDep):
    """End the running session now. Returns null if nothing was running."""
    return _read(manager.stop_session(now))


@router.post("/sessions/toggle", response_model=Optional[SleepSessionRead])
def toggle_session(manager: ManagerDep, now: NowDep):
    """The sleep button: stop if sleeping, otherwise start."""
    return _read(manager.toggle_session(now))


@router.post("/sessions", response_model=SleepSessionRead, status_code=status.HTTP_201_CREATED)
def add_session(req: ManualSessionRequest, manager: ManagerDep, now: NowDep):
    """Register an earlier nap with explicit start and end times."""
    result = manager.add_session(req.start_date, req.end_date, now)
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.reason)
    return SleepSessionRead.from_session(result.session)


@router.post("/sessions/refresh")
def refresh_sessions(manager: ManagerDep):
    """Reload sessions from the database."""
    manager.refresh()
    return {"count": len(manager.sessions)}
