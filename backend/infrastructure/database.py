"""
Database configuration and session management for Repurpose
SQLAlchemy models for users, their integration settings and training videos
"""

import logging
import os
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import ForeignKey, Integer, String, Text, create_engine, event
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import text

from core.config import settings
from core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models"""

    pass


class DatabaseConfig:
    """Database configuration and setup"""

    def __init__(self, database_url: Optional[str] = None) -> None:
        self.database_url = database_url or settings.database_url
        self.pool_size = settings.database_pool_size

        # Convert relative SQLite paths to absolute
        if self.database_url.startswith("sqlite:///") and not self.database_url.startswith(
            "sqlite:////"
        ):
            db_path = self.database_url.replace("sqlite:///", "")
            if db_path != ":memory:" and not os.path.isabs(db_path):
                project_root = Path(__file__).parent.parent.parent
                self.database_url = f"sqlite:///{project_root / db_path}"
                logger.info(f"Converted database URL to: {self.database_url}")

        if self.database_url.startswith("sqlite"):
            self.engine = create_engine(
                self.database_url,
                echo=False,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False, "timeout": 20},
            )
            event.listen(self.engine, "connect", self._set_sqlite_pragma)
        else:
            # PostgreSQL in production
            self.engine = create_engine(
                self.database_url,
                echo=False,
                pool_size=self.pool_size,
                max_overflow=self.pool_size * 2,
                pool_pre_ping=True,
                pool_recycle=3600,
            )

        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

        logger.info("Database configured", extra={"dialect": self.engine.dialect.name})

    def _set_sqlite_pragma(self, dbapi_connection: Any, connection_record: Any) -> None:
        """Enable foreign keys and WAL for SQLite connections"""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created/verified")

    def get_session(self) -> Session:
        return self.SessionLocal()


# Global database configuration
db_config = DatabaseConfig()


class User(Base):
    """Local account"""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255))
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    profile_image_url: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow)

    settings = relationship(
        "UserSettings", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class UserSettings(Base):
    """Per-user integration settings; API keys hold encrypted envelopes only"""

    __tablename__ = "user_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True
    )
    webhook_url: Mapped[Optional[str]] = mapped_column(String(2048))
    airtable_api_key: Mapped[Optional[str]] = mapped_column(Text)
    airtable_base_id: Mapped[Optional[str]] = mapped_column(String(100))
    airtable_table_name: Mapped[Optional[str]] = mapped_column(String(255))
    openai_api_key: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="settings")


class TrainingVideo(Base):
    """Tutorial video shown to all users"""

    __tablename__ = "training_videos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)
    video_url: Mapped[str] = mapped_column(String(2048))
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(2048))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, index=True)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions with transaction management

    Yields:
        Database session; committed on success, rolled back on error
    """
    session = db_config.get_session()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed successfully")
    except Exception as e:
        session.rollback()
        logger.error(f"Database transaction rolled back due to error: {e}")
        raise
    finally:
        session.close()


def init_database() -> None:
    """Create tables on startup"""
    try:
        settings.create_required_directories()
        db_config.create_tables()
        logger.info("Database initialization completed successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise DatabaseError(f"Database initialization failed: {e}") from e


def check_database_health() -> Dict[str, Any]:
    """
    Check database connectivity

    Returns:
        Health status dictionary
    """
    health_status: Dict[str, Any] = {
        "database": "unknown",
        "connection": False,
        "error": None,
    }

    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1"))
            health_status["connection"] = True
            health_status["database"] = "healthy"

    except Exception as e:
        health_status["database"] = "unhealthy"
        health_status["error"] = str(e)
        logger.error(f"Database health check failed: {e}")

    return health_status
