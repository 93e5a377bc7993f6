from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, Request

from session_manager import SessionManager


def get_manager(request: Request) -> SessionManager:
    return request.app.state.manager


def get_now() -> datetime:
    return datetime.now(timezone.utc)


ManagerDep = Annotated[SessionManager, Depends(get_manager)]
NowDep = Annotated[datetime, Depends(get_now)]
