"""
SQLite engine and session management for the quiz pipeline.

Every physical database (the registry, one question store per category, the
tracking index) is wrapped in a SQLiteStore that is constructed once at process
start and closed explicitly. The store provides:
- Session-per-operation pattern through `SQLiteStore.session()`
- NullPool connection pooling to avoid SQLite locking issues
- Durability settings on every connection (WAL, synchronous=FULL, busy timeout)

Concurrent writers from several processes are NOT coordinated here: safety
relies entirely on SQLite's own file locking (WAL plus a 30s busy timeout).
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from quiz_pipeline.logger import setup_logging


db_logger = setup_logging(logger_name="database")

BUSY_TIMEOUT_MS = 30000


def optimize_sqlite_connection(dbapi_connection, connection_record):
    """Apply SQLite durability settings when a connection is created."""
    cursor = dbapi_connection.cursor()

    # WAL lets readers proceed while a writer holds the lock
    cursor.execute("PRAGMA journal_mode=WAL")

    # Commit returns only once the row is on disk
    cursor.execute("PRAGMA synchronous=FULL")

    cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
    cursor.execute("PRAGMA foreign_keys=ON")

    cursor.close()


def create_sqlite_engine(db_path: Union[str, Path]) -> Engine:
    """
    Create a SQLAlchemy engine for a SQLite file, creating parent directories.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        Engine with the durability PRAGMAs applied on every connection
    """
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        f"sqlite:///{path}",
        poolclass=NullPool,  # Avoid connection pooling issues with SQLite
        echo=False,
        connect_args={"timeout": BUSY_TIMEOUT_MS / 1000},
    )
    event.listen(engine, "connect", optimize_sqlite_connection)
    return engine


class SQLiteStore:
    """
    One physical SQLite database, opened once per process.

    Usage:
        store = SQLiteStore("data/registry.db", metadata=RegistryBase.metadata)
        with store.session() as session:
            session.add(Category(slug="tv-shows", name="TV Shows"))
            session.commit()
        store.close()
    """

    def __init__(self, db_path: Union[str, Path], metadata=None, name: str = "database"):
        self.path = Path(db_path)
        self.name = name
        self.engine = create_sqlite_engine(self.path)
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        if metadata is not None:
            metadata.create_all(bind=self.engine)
        db_logger.info(f"Opened {name} store at {self.path}")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions (session-per-operation pattern).

        Rolls back on any error and translates the common SQLite failures into
        messages that point at the cause.
        """
        session = self._session_factory()
        try:
            yield session

        except OperationalError as e:
            db_logger.error(f"Database operational error on {self.name}: {e}")
            session.rollback()

            error_msg = str(e.orig) if getattr(e, "orig", None) else str(e)
            if "database is locked" in error_msg.lower():
                raise OperationalError(
                    f"Database {self.path} is locked. Another process is writing to it; "
                    "this pipeline assumes a single writer at a time.",
                    None,
                    e.orig,
                ) from e
            raise

        except SQLAlchemyError as e:
            db_logger.error(f"Database error on {self.name}: {e}")
            session.rollback()
            raise

        except Exception:
            session.rollback()
            raise

        finally:
            session.close()

    def check_connection(self) -> bool:
        try:
            with self.session() as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            db_logger.error(f"Connection test failed for {self.path}: {e}")
            return False

    def close(self) -> None:
        self.engine.dispose()
        db_logger.info(f"Closed {self.name} store at {self.path}")
