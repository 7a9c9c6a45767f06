import logging
import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from models import Base

logger = logging.getLogger(__name__)

settings = get_settings()

if settings.reset_database:
    database_path = make_url(settings.database_url).database
    if database_path and os.path.exists(database_path):
        os.remove(database_path)

engine = create_engine(settings.database_url, echo=settings.database_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except Exception:
        logger.warning("Rolling back transaction")
        db.rollback()
        raise
