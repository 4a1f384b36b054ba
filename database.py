import sqlite3
import os
import json
import threading
from contextlib import contextmanager
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

FILTERS_KEY = 'dx_filters'
SOURCE_KEY = 'dx_cluster_source'


class Database:
    def __init__(self, db_path: Optional[str] = None):
        """Open (and create if needed) the SQLite preferences database"""
        if db_path is None:
            data_dir = os.path.join(os.getcwd(), 'data')
            os.makedirs(data_dir, exist_ok=True)
            self.db_path = os.path.join(data_dir, 'dx_cluster.db')
        else:
            self.db_path = db_path
            db_dir = os.path.dirname(db_path)
            if db_path != ':memory:' and db_dir:
                os.makedirs(db_dir, exist_ok=True)

        # An in-memory database only lives as long as its connection
        self._shared_conn = None
        self._lock = threading.Lock()
        if self.db_path == ':memory:':
            self._shared_conn = sqlite3.connect(':memory:', check_same_thread=False)

        self.init_database()

    @contextmanager
    def _connect(self):
        if self._shared_conn is not None:
            with self._lock:
                yield self._shared_conn
                self._shared_conn.commit()
            return

        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_database(self):
        """Initialize database tables"""
        try:
            with self._connect() as conn:
                conn.execute('''
                    CREATE TABLE IF NOT EXISTS user_preferences (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        key TEXT UNIQUE NOT NULL,
                        value TEXT,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                ''')
                logger.info(f"Database initialized at {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"Error initializing database: {e}")
            raise

    def store_user_preference(self, key: str, value: str) -> bool:
        try:
            with self._connect() as conn:
                conn.execute('''
                    INSERT OR REPLACE INTO user_preferences (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                ''', (key, value))
            return True
        except sqlite3.Error as e:
            logger.error(f"Error storing user preference {key}: {e}")
            return False

    def get_user_preference(self, key: str) -> Optional[str]:
        try:
            with self._connect() as conn:
                row = conn.execute('SELECT value FROM user_preferences WHERE key = ?', (key,)).fetchone()
                return row[0] if row else None
        except sqlite3.Error as e:
            logger.error(f"Error getting user preference {key}: {e}")
            return None

    def delete_user_preference(self, key: str) -> bool:
        try:
            with self._connect() as conn:
                cursor = conn.execute('DELETE FROM user_preferences WHERE key = ?', (key,))
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"Error deleting user preference {key}: {e}")
            return False

    def get_json_preference(self, key: str) -> Optional[Any]:
        """Get a preference stored as JSON; unreadable values count as missing"""
        raw = self.get_user_preference(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed JSON preference {key}")
            return None

    def store_json_preference(self, key: str, value: Any) -> bool:
        return self.store_user_preference(key, json.dumps(value))

    def get_database_stats(self) -> Dict:
        try:
            with self._connect() as conn:
                total = conn.execute('SELECT COUNT(*) FROM user_preferences').fetchone()[0]
            file_size = os.path.getsize(self.db_path) if os.path.exists(self.db_path) else 0
            return {
                'total_preferences': total,
                'file_size_mb': round(file_size / (1024 * 1024), 2)
            }
        except sqlite3.Error as e:
            logger.error(f"Error getting database stats: {e}")
            return {}

    def close(self):
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None


def init_database(db_path: Optional[str] = None) -> Database:
    """Open the preferences database, creating its tables."""
    return Database(db_path)
