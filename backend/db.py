from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from config import settings


def make_engine(url: str = settings.DATABASE_URL, echo: bool = settings.SQL_ECHO):
    if url.startswith("sqlite"):
        # FastAPI serves sync routes from a thread pool
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo)


engine = make_engine()


def init_db(bind=engine) -> None:
    # models must be imported so their tables are registered on SQLModel.metadata
    import models  # noqa: F401

    SQLModel.metadata.create_all(bind)
