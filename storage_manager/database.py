import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from storage_manager.config import DATABASE_URL
from storage_manager.errors import AppError, InternalError

logger = logging.getLogger(__name__)


def make_engine(url: str, **kwargs):
	if url.startswith("sqlite"):
		connect_args = kwargs.pop("connect_args", {})
		connect_args.setdefault("check_same_thread", False)
		return create_engine(url, connect_args=connect_args, **kwargs)
	return create_engine(url, pool_pre_ping=True, **kwargs)


# One process-wide engine and session factory; every request gets its session through get_db.
engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine)
Base = declarative_base()


def init_db(bind=None):
	# models must be imported so their tables are registered on Base.metadata
	from storage_manager import models  # noqa: F401

	Base.metadata.create_all(bind=bind or engine)
	logger.info("Database ready at %s", (bind or engine).url.render_as_string(hide_password=True))


def close_db(bind=None):
	(bind or engine).dispose()
	logger.info("Database connections closed")


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


@contextmanager
def atomic(db: Session, action: str):
	"""Commit everything done inside the block as one unit, or roll all of it back.

	Domain errors propagate untouched. Store failures are logged with their
	traceback and surfaced as ``InternalError`` without leaking the driver message.
	"""
	try:
		yield db
		db.commit()
	except AppError:
		db.rollback()
		raise
	except SQLAlchemyError as e:
		db.rollback()
		logger.exception("Store failure during %s", action)
		raise InternalError(f"Failed to {action}") from e
