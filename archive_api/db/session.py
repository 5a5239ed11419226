from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ..config import settings


def _connect_args(url: str) -> dict:
    # sqlite connections are shared across the request threadpool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_engine():
    return engine
