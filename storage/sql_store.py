"""SQLite engine and transactional session scope for plan persistence."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storage.schemas import Base


class SQLStore:
    """Owns the engine; ``db_path=None`` keeps the database in memory."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path
        if db_path is None:
            # One shared connection, or every session would see a fresh empty database.
            self.engine = create_engine(
                "sqlite+pysqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(f"sqlite+pysqlite:///{db_path}")
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Commit on clean exit, roll back and re-raise otherwise."""
        with self._sessions() as sess:
            with sess.begin():
                yield sess

    def dispose(self) -> None:
        self.engine.dispose()
