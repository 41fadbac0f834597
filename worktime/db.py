from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from worktime.settings import get_settings


class Base(DeclarativeBase):
    pass


engine = create_engine(get_settings().database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_all(bind: Engine | None = None) -> None:
    # Schema migrations are owned by the deployment; this is for local runs and tests.
    import worktime.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
