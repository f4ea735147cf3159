from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL, SQL_ECHO
from errors import translate_integrity_error
from logger import get_logger
from models_sqlalchemy import Base

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(url: Optional[str] = None) -> Engine:
    """
    SQLite only enforces foreign keys when asked to on each connection, so a
    connect listener turns them on. In-memory SQLite shares one connection
    so every session sees the same database.
    """
    url = url or DATABASE_URL
    kwargs = {"echo": SQL_ECHO}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine = engine) -> None:
    Base.metadata.create_all(bind=bind)
    logger.info("Database schema created on %s", bind.url.render_as_string(hide_password=True))


def drop_db(bind: Engine = engine) -> None:
    Base.metadata.drop_all(bind=bind)
    logger.info("Database schema dropped")


# Dependency to get a DB session
def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    # all or nothing; IntegrityError surfaces as the matching ConstraintViolation
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Transaction rolled back: %s", e.orig)
        raise translate_integrity_error(e) from e
    except Exception as e:
        db.rollback()
        logger.error("Transaction rolled back: %s", e)
        raise
