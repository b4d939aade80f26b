"""Data persistence and storage management"""

from .database import DatabaseManager
from .repository import SettingsRepository

__all__ = ['DatabaseManager', 'SettingsRepository']
