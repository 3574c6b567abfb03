"""
Database handle and session management for the label analyzer.

One Database is built at process start (see main.lifespan) and handed to
every component that needs the store, instead of a module-level engine.
"""

import threading
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.pool import StaticPool

from logger_manager import log_info, log_error

# Base class for declarative models
Base = declarative_base()


class ReadWriteLock:
    """Many concurrent readers or one writer, writers preferred."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class Database:
    def __init__(self, url: str, echo: bool = False):
        self.url = url
        connect_args = {}
        engine_kwargs = {"echo": echo}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            # in-memory databases only exist on one connection
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                engine_kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, connect_args=connect_args, **engine_kwargs)

        if url.startswith("sqlite"):
            @event.listens_for(self.engine, "connect")
            def _enable_foreign_keys(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.lock = ReadWriteLock()

    def init(self):
        """Create or upgrade the schema."""
        # Import models to ensure they're registered
        from db import models  # noqa: F401
        from db.migrations import run_migrations, verify_database

        log_info(f"Initializing database at {self.url}")
        run_migrations(self.engine)
        verify_database(self.engine)

    def close(self):
        log_info("Disposing database engine")
        try:
            self.engine.dispose()
        except Exception as e:
            log_error(f"Error disposing database engine: {e}", e)

    @contextmanager
    def session(self):
        """Context manager for database session outside FastAPI routes."""
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    @contextmanager
    def reading(self):
        with self.lock.read():
            with self.session() as db:
                yield db

    @contextmanager
    def writing(self):
        with self.lock.write():
            with self.session() as db:
                yield db

