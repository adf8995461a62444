#!/usr/bin/env python3
"""
Profile persistence.
Stores the whole profile snapshot and the last active profile id as blobs in a
small sqlite key/value table. Writes are whole-snapshot, last writer wins.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..config import get_db_path
from ..tutoring.state import Profile
from ..tutoring.store import ProfileStore

logger = logging.getLogger(__name__)

PROFILES_KEY = 'codementor-profiles'
ACTIVE_PROFILE_KEY = f'{PROFILES_KEY}-active'


class PersistenceError(Exception):
    """Durable storage could not be read or written"""


class ProfileRepository:
    """Key/value blob storage for the profile snapshot"""

    def __init__(self, db_path: Union[str, Path, None] = None):
        self.db_path = str(db_path or get_db_path())
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self.conn = sqlite3.connect(self.db_path)
            self._create_tables()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open {self.db_path}: {e}") from e

    def _create_tables(self):
        """Create database tables if they don't exist"""
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.commit()

    def _get(self, key: str) -> Optional[str]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None

    def load(self) -> Optional[Tuple[List[Profile], Optional[str]]]:
        """
        Read the saved snapshot.

        Returns:
            (profiles, active_profile_id), or None when nothing was saved yet.

        Raises:
            PersistenceError: storage failed or the snapshot is malformed.
        """
        try:
            raw_profiles = self._get(PROFILES_KEY)
            active_id = self._get(ACTIVE_PROFILE_KEY)
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read profiles: {e}") from e

        if raw_profiles is None:
            return None

        try:
            data = json.loads(raw_profiles)
            profiles = [Profile.from_dict(p) for p in data]
        except (json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"Saved profiles are malformed: {e}") from e

        return profiles, active_id

    def save(self, profiles: List[Profile], active_profile_id: Optional[str]):
        """Write the full snapshot in one transaction"""
        payload = json.dumps([p.to_dict() for p in profiles])
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT OR REPLACE INTO kv_store (key, value, updated_at) "
                    "VALUES (?, ?, CURRENT_TIMESTAMP)",
                    (PROFILES_KEY, payload),
                )
                if active_profile_id:
                    self.conn.execute(
                        "INSERT OR REPLACE INTO kv_store (key, value, updated_at) "
                        "VALUES (?, ?, CURRENT_TIMESTAMP)",
                        (ACTIVE_PROFILE_KEY, active_profile_id),
                    )
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to save profiles: {e}") from e

    def close(self):
        """Clean up resources"""
        self.conn.close()


def load_store(repository: ProfileRepository) -> ProfileStore:
    """
    Restore the profile store, falling back to one default profile.

    Never fails: missing, unreadable or malformed data all start fresh.
    """
    try:
        loaded = repository.load()
    except PersistenceError as e:
        logger.warning("%s; starting with a fresh default profile", e)
        loaded = None

    if not loaded or not loaded[0]:
        return ProfileStore.with_default_profile()

    profiles, active_id = loaded
    if not any(p.id == active_id for p in profiles):
        active_id = profiles[0].id
    return ProfileStore(profiles, active_id)


def save_store(repository: ProfileRepository, store: ProfileStore) -> bool:
    """Best-effort snapshot write; failures are logged, never raised"""
    try:
        repository.save(store.profiles, store.active_profile_id)
    except PersistenceError as e:
        logger.error("%s", e)
        return False
    return True


def attach_autosave(repository: ProfileRepository, store: ProfileStore):
    """Write a snapshot after every store change"""
    store.add_listener(lambda changed: save_store(repository, changed))
