"""Database connection and session management."""

from typing import Generator, List, Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config import config
from .models import Base


class Database:
    """Database connection manager."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database connection."""
        self.database_url = database_url or config.DATABASE_URL

        # Special handling for SQLite so background history reads can share the connection
        if "sqlite" in self.database_url:
            self.engine = create_engine(
                self.database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False,
            )
        else:
            self.engine = create_engine(self.database_url, echo=False)

        # Loaded rows are handed to services after the session closes
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        """Drop all database tables."""
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def migrate_schema(self) -> List[str]:
        """Apply schema migrations for columns added after the first release.

        Returns:
            Names of the columns that were added
        """
        columns = [col["name"] for col in inspect(self.engine).get_columns("workout_exercises")]
        added = []

        with self.engine.begin() as conn:
            if "is_using_enhanced_tracking" not in columns:
                conn.execute(text(
                    "ALTER TABLE workout_exercises ADD COLUMN is_using_enhanced_tracking BOOLEAN DEFAULT 0"
                ))
                added.append("is_using_enhanced_tracking")
            if "set_data" not in columns:
                conn.execute(text("ALTER TABLE workout_exercises ADD COLUMN set_data TEXT"))
                added.append("set_data")

        return added

    def close(self):
        """Close database connection."""
        self.engine.dispose()


# Global database instance
_db: Optional[Database] = None


def get_db() -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database()
        _db.create_tables()
        _db.migrate_schema()
    return _db


def close_db():
    """Close the global database connection."""
    global _db
    if _db is not None:
        _db.close()
        _db = None
