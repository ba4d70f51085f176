import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .errors import StoreError, STORE_FAILURE

logger = logging.getLogger(__name__)

Base = declarative_base()

def database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    db = os.getenv("POSTGRES_DB")
    if not db:
        # single-file variant, no server needed
        return "sqlite:///signals.db"
    user = os.getenv("POSTGRES_USER")
    pwd = os.getenv("POSTGRES_PASSWORD")
    host = os.getenv("POSTGRES_HOST", "postgres")
    port = os.getenv("POSTGRES_PORT", "5432")
    return f"postgresql+psycopg://{user}:{pwd}@{host}:{port}/{db}"

def make_engine(url: str | None = None):
    url = url or database_url()
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)

def make_session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

@contextmanager
def transaction(db: Session):
    """Commit on success, roll back on any error.

    Store failures come out as a single StoreError carrying a generic message,
    the driver detail goes to the log; domain errors raised inside
    the block pass through unchanged after the rollback.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("transaction rolled back: %s", e)
        raise StoreError(STORE_FAILURE) from e
    except Exception:
        db.rollback()
        raise

def as_utc(dt: datetime | None) -> datetime | None:
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
