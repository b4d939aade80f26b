"""Repository for persisted history and settings"""

import json
from typing import List, Optional, Dict, Any
from datetime import datetime
from contextlib import contextmanager
from loguru import logger

from .database import KeyValueDB, DatabaseManager
from ..clipboard.history import ClipboardEntry, ClipboardHistory

HISTORY_KEY = 'clipboardHistory'
MAX_HISTORY_LENGTH_KEY = 'maxHistoryLength'
AUTO_DELETE_DAYS_KEY = 'autoDeleteDays'
AUTO_DELETE_COUNT_KEY = 'autoDeleteCount'

SETTING_KEYS = (MAX_HISTORY_LENGTH_KEY, AUTO_DELETE_DAYS_KEY, AUTO_DELETE_COUNT_KEY)


class SettingsRepository:
    """Key/value persistence for the history engine"""

    def __init__(self, database_manager: DatabaseManager):
        """
        Initialize repository

        Args:
            database_manager: DatabaseManager instance
        """
        self.db_manager = database_manager

    @contextmanager
    def get_session(self):
        """Get a new database session with proper cleanup"""
        session = self.db_manager.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def save_value(self, key: str, value: Any) -> bool:
        """
        Save a JSON-serializable value

        Args:
            key: Setting key
            value: Setting value

        Returns:
            True if successful
        """
        try:
            with self.get_session() as session:
                self._upsert(session, key, json.dumps(value))

            logger.debug(f"Saved value: {key}")
            return True

        except Exception as e:
            logger.error(f"Failed to save value '{key}': {e}")
            return False

    def get_value(self, key: str, default: Any = None) -> Any:
        """
        Get a stored value

        Args:
            key: Setting key
            default: Default value if not found or unreadable

        Returns:
            Stored value or default
        """
        raw = self._get_raw(key)
        if raw is None:
            return default

        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(f"Discarding unreadable value '{key}': {e}")
            return default

    def delete_value(self, key: str) -> bool:
        """Delete a stored value, returns True if it existed"""
        try:
            with self.get_session() as session:
                deleted = session.query(KeyValueDB).filter_by(key=key).delete()
            return deleted > 0

        except Exception as e:
            logger.error(f"Failed to delete value '{key}': {e}")
            return False

    def get_all(self) -> Dict[str, Any]:
        """
        Get all readable values

        Returns:
            Dictionary of values
        """
        try:
            with self.get_session() as session:
                rows = [(row.key, row.value) for row in session.query(KeyValueDB).all()]

        except Exception as e:
            logger.error(f"Failed to get all values: {e}")
            return {}

        values = {}
        for key, raw in rows:
            try:
                values[key] = json.loads(raw)
            except (TypeError, ValueError):
                logger.warning(f"Skipping unreadable value '{key}'")
        return values

    def save_history(self, entries: List[ClipboardEntry]) -> bool:
        """Persist the full ordered history"""
        return self.save_value(HISTORY_KEY, [e.to_dict() for e in entries])

    def load_history(self) -> List[ClipboardEntry]:
        """
        Load persisted history

        Returns:
            Decoded entries in stored order, empty if missing or corrupt
        """
        raw = self._get_raw(HISTORY_KEY)
        if raw is None:
            return []

        entries = ClipboardHistory.entries_from_json(raw)
        logger.info(f"Loaded {len(entries)} history entries")
        return entries

    def save_settings(self, settings: Dict[str, int]) -> bool:
        """Persist engine settings keyed by their storage names"""
        try:
            with self.get_session() as session:
                for key in SETTING_KEYS:
                    if key in settings:
                        self._upsert(session, key, json.dumps(settings[key]))
            return True

        except Exception as e:
            logger.error(f"Failed to save settings: {e}")
            return False

    def load_settings(self) -> Dict[str, Any]:
        """Load stored engine settings, absent keys are omitted"""
        settings = {}
        for key in SETTING_KEYS:
            value = self.get_value(key)
            if value is not None:
                settings[key] = value
        return settings

    def _get_raw(self, key: str) -> Optional[str]:
        try:
            with self.get_session() as session:
                row = session.query(KeyValueDB).filter_by(key=key).first()
                return row.value if row else None

        except Exception as e:
            logger.error(f"Failed to read value '{key}': {e}")
            return None

    @staticmethod
    def _upsert(session, key: str, value: str) -> None:
        row = session.query(KeyValueDB).filter_by(key=key).first()
        if row:
            row.value = value
            row.updated_at = datetime.now()
        else:
            session.add(KeyValueDB(key=key, value=value, updated_at=datetime.now()))
