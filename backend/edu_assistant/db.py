from __future__ import annotations
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url or "sqlite:///./edu_assistant.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
	# SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
	if type(dbapi_connection).__module__.startswith("sqlite3"):
		cursor = dbapi_connection.cursor()
		cursor.execute("PRAGMA foreign_keys=ON")
		cursor.close()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


def init_db(bind: Engine | None = None) -> None:
	# Models must be imported so their tables are registered on Base.metadata
	from . import models  # noqa: F401

	target = bind or engine
	Base.metadata.create_all(bind=target)
	logger.info("Database schema ready (%s)", target.url.render_as_string(hide_password=True))
