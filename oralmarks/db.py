"""Database engine and session helpers."""

from collections.abc import Generator

from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy import text

from oralmarks.settings import settings


engine = create_engine(settings.sqlite_url, connect_args={"check_same_thread": False})


def create_db_and_tables() -> None:
    """Create all SQLModel tables if they do not exist."""
    SQLModel.metadata.create_all(engine)
    with engine.begin() as conn:
        columns = {row[1] for row in conn.exec_driver_sql("PRAGMA table_info('submission')") if len(row) > 1}
        if "scoring_started_at" not in columns:
            conn.execute(text("ALTER TABLE submission ADD COLUMN scoring_started_at DATETIME"))
        if "scored_at" not in columns:
            conn.execute(text("ALTER TABLE submission ADD COLUMN scored_at DATETIME"))
        if "scoring_error" not in columns:
            conn.execute(text("ALTER TABLE submission ADD COLUMN scoring_error VARCHAR"))


def get_session() -> Generator[Session, None, None]:
    """Yield a database session for request-scoped dependency injection."""
    with Session(engine) as session:
        yield session
