"""Database management using SQLAlchemy"""

import os
import shutil
from pathlib import Path
from typing import Optional
from sqlalchemy import create_engine, Column, String, DateTime, Text, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from loguru import logger

from ...utils.paths import get_data_dir

Base = declarative_base()

MEMORY_DB = ':memory:'


class KeyValueDB(Base):
    """Key/value records for persisted history and settings"""
    __tablename__ = 'settings'

    key = Column(String(100), primary_key=True)
    value = Column(Text)
    updated_at = Column(DateTime)


class DatabaseManager:
    """Manages database connections and operations"""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize database manager

        Args:
            db_path: Path to database file, ``:memory:`` for a transient
                database (defaults to the app data directory)
        """
        if db_path is None:
            db_path = str(get_data_dir() / 'clipstash.db')

        self.db_path = db_path
        self.engine = None
        self.SessionLocal = None

        self._initialize_database()

    def _initialize_database(self):
        """Initialize database connection and create tables"""
        try:
            if self.db_path == MEMORY_DB:
                # one shared connection, otherwise each session sees an empty database
                self.engine = create_engine(
                    'sqlite://',
                    connect_args={'check_same_thread': False},
                    poolclass=StaticPool
                )
            else:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self.engine = create_engine(
                    f'sqlite:///{self.db_path}',
                    connect_args={'check_same_thread': False}
                )

            Base.metadata.create_all(bind=self.engine)

            self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

            logger.info(f"Database initialized at: {self.db_path}")

        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def get_session(self) -> Session:
        """
        Get database session

        Returns:
            SQLAlchemy session
        """
        if self.SessionLocal is None:
            raise RuntimeError("Database not initialized")

        return self.SessionLocal()

    def close(self):
        """Close database connection"""
        if self.engine:
            self.engine.dispose()
            logger.info("Database connection closed")

    def backup(self, backup_path: str):
        """
        Create database backup

        Args:
            backup_path: Path for backup file
        """
        if self.db_path == MEMORY_DB:
            raise RuntimeError("Cannot back up an in-memory database")

        try:
            shutil.copy2(self.db_path, backup_path)
            logger.info(f"Database backed up to: {backup_path}")

        except Exception as e:
            logger.error(f"Backup failed: {e}")
            raise

    def vacuum(self):
        """Optimize database (VACUUM operation)"""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("VACUUM"))
                conn.commit()
            logger.info("Database optimized (VACUUM completed)")

        except Exception as e:
            logger.error(f"VACUUM failed: {e}")
            raise

    def get_size(self) -> int:
        """
        Get database file size in bytes

        Returns:
            Size in bytes
        """
        if self.db_path != MEMORY_DB and os.path.exists(self.db_path):
            return os.path.getsize(self.db_path)
        return 0
