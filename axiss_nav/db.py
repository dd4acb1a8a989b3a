# axiss_nav/db.py

import logging
from datetime import datetime, timezone
from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from axiss_nav.config import DB_URL, IS_SQLITE

connect_args = {"check_same_thread": False} if IS_SQLITE else {}
engine = create_engine(DB_URL, future=True, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()

logger = logging.getLogger("axiss_nav.db")


def get_db() -> Generator[Session, None, None]:
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def init_db():
    # models must be imported so their tables register on Base.metadata
    from axiss_nav import models  # noqa: F401
    Base.metadata.create_all(engine)


def check_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("database connection check failed")
        return False
