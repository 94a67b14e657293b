from collections.abc import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from waste_portal.config import settings

engine = create_engine(settings.database_url_normalized, echo=settings.database_echo, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    with SessionLocal() as db:
        yield db


def create_schema() -> None:
    from waste_portal.models import Base

    Base.metadata.create_all(bind=engine)
