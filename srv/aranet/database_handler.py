import logging
import os
import sqlite3
import time

from . import config
from .errors import StorageError
from .readings import SensorReading

logger = logging.getLogger(__name__)

_COLUMNS = "timestamp, co2, temperature, humidity, pressure, battery, status"

# SQLite INTEGER is a signed 64-bit value.
_SQLITE_INT_MIN = -2 ** 63
_SQLITE_INT_MAX = 2 ** 63 - 1


def _clamp(value):
    return max(_SQLITE_INT_MIN, min(value, _SQLITE_INT_MAX))


class HistoryStore:
    """Append-only history of sensor readings kept in SQLite.

    Every call opens its own connection, so the polling task and the web
    server threads never share one. SQLite's WAL journal lets queries run
    while an insert is in progress.
    """

    def __init__(self, db_path=None):
        self.db_path = db_path or config.DB_PATH

    def get_db_connection(self):
        """Establishes a connection to the SQLite database."""
        conn = sqlite3.connect(self.db_path, timeout=10.0)
        conn.row_factory = sqlite3.Row
        return conn

    def setup(self):
        """Ensures the database directory, table and indexes exist."""
        directory = os.path.dirname(os.path.abspath(self.db_path))
        if not os.path.exists(directory):
            logger.info("Database directory not found. Creating at: %s", directory)
            os.makedirs(directory)

        conn = None
        try:
            conn = self.get_db_connection()
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute('''
                CREATE TABLE IF NOT EXISTS sensor_readings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp INTEGER NOT NULL,
                    co2 INTEGER NOT NULL,
                    temperature REAL NOT NULL,
                    humidity INTEGER NOT NULL,
                    pressure INTEGER NOT NULL,
                    battery INTEGER NOT NULL,
                    status TEXT NOT NULL
                )
            ''')
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_timestamp ON sensor_readings(timestamp)")
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_co2 ON sensor_readings(co2)")
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Database setup error: {e}") from e
        finally:
            if conn:
                conn.close()
        logger.info("History database is ready at %s", self.db_path)

    def append(self, reading):
        """Inserts one reading. Retries may store the same timestamp twice."""
        conn = None
        try:
            conn = self.get_db_connection()
            conn.execute(
                f"INSERT INTO sensor_readings ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (reading.timestamp, reading.co2, reading.temperature, reading.humidity,
                 reading.pressure, reading.battery, reading.status.value))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Database insert error: {e}") from e
        finally:
            if conn:
                conn.close()

    def query(self, hours=None, limit=config.HISTORY_DEFAULT_LIMIT, now=None):
        """Returns stored readings, always oldest first.

        With `hours`, the window starts at now - hours and the limit keeps the
        oldest rows of that window. Without it, the newest `limit` rows are
        returned.
        """
        conn = None
        try:
            conn = self.get_db_connection()
            if hours is not None:
                now = int(time.time()) if now is None else now
                since = _clamp(now - hours * 3600)
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM sensor_readings WHERE timestamp >= ? "
                    "ORDER BY timestamp ASC, id ASC LIMIT ?",
                    (since, _clamp(limit))).fetchall()
            else:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM sensor_readings "
                    "ORDER BY timestamp DESC, id DESC LIMIT ?",
                    (_clamp(limit),)).fetchall()
                rows.reverse()
        except sqlite3.Error as e:
            raise StorageError(f"Database select error: {e}") from e
        finally:
            if conn:
                conn.close()
        return [SensorReading.from_row(row) for row in rows]

    def count(self):
        conn = None
        try:
            conn = self.get_db_connection()
            return conn.execute("SELECT COUNT(*) FROM sensor_readings").fetchone()[0]
        except sqlite3.Error as e:
            raise StorageError(f"Database count error: {e}") from e
        finally:
            if conn:
                conn.close()
