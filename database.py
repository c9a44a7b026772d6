from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from config import get_settings
from errors import StoreFailure


def make_engine(url: str, poolclass: Optional[type] = None) -> Engine:
    connect_args: dict[str, object] = {}
    options: dict[str, object] = {}
    sqlite = url.startswith("sqlite")
    if sqlite:
        connect_args["check_same_thread"] = False
    if poolclass is not None:
        options["poolclass"] = poolclass
    eng = create_engine(url, connect_args=connect_args, **options)
    if sqlite:
        event.listen(eng, "connect", _enable_sqlite_pragmas)
    return eng


def _enable_sqlite_pragmas(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    # In-memory databases ignore WAL and stay in "memory" journal mode.
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


def make_session_factory(eng: Engine) -> sessionmaker:
    return sessionmaker(bind=eng, autoflush=False, expire_on_commit=False)


engine = make_engine(get_settings().database_url)
SessionLocal = make_session_factory(engine)


class Base(DeclarativeBase):
    pass


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """Commit on success, roll back on any error.

    Store errors surface as StoreFailure so that callers only deal with the
    ledger error taxonomy.
    """
    session: Session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StoreFailure("Record store operation failed") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
