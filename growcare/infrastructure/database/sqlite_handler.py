import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from flask import Flask

from growcare.infrastructure.database.ops.plant_tasks import PlantTaskOperations

logger = logging.getLogger(__name__)


class SQLiteDatabaseHandler(PlantTaskOperations):
    """Thread-safe SQLite handler decoupled from Flask globals.

    Each thread gets its own connection. With ``":memory:"`` every thread
    therefore sees its own database, which is only suitable for tests.
    """

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path
        self._local = threading.local()

        db_path = Path(database_path)
        if database_path != ":memory:" and not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Created database directory: %s", db_path.parent)

    # --- Lifecycle ------------------------------------------------------------
    def init_app(self, app: Flask | None = None) -> None:
        if app is not None:
            app.teardown_appcontext(self.close_db)
        self.create_tables()

    def get_db(self) -> sqlite3.Connection:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is None:
            connection = self._open_connection()
            self._local.connection = connection
        return connection

    def _open_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path, check_same_thread=False)
        try:
            connection.row_factory = sqlite3.Row
            self._configure_connection(connection)
            return connection
        except Exception:
            connection.close()
            raise

    def _configure_connection(self, connection: sqlite3.Connection) -> None:
        """WAL journal with NORMAL synchronous writes and in-memory temp store."""
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        connection.execute("PRAGMA temp_store=MEMORY")
        connection.commit()

    def close_db(self, _e: Optional[BaseException] = None) -> None:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is not None and self._database_path != ":memory:":
            connection.close()
            delattr(self._local, "connection")

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self.get_db()
        try:
            yield conn
        finally:
            conn.commit()

    # --- Schema ----------------------------------------------------------------
    def create_tables(self) -> None:
        """Creates the necessary tables in the database if they do not already exist."""
        try:
            with self.connection() as db:
                db.execute(
                    """
                    CREATE TABLE IF NOT EXISTS PlantTasks (
                        task_id TEXT PRIMARY KEY,
                        plant_id TEXT NOT NULL,
                        user_id TEXT NOT NULL,
                        task_type TEXT NOT NULL,
                        title TEXT NOT NULL,
                        description TEXT,
                        due_date TEXT NOT NULL,
                        status TEXT NOT NULL DEFAULT 'pending',
                        priority TEXT NOT NULL DEFAULT 'medium',
                        estimated_duration_minutes INTEGER DEFAULT 0,
                        auto_generated INTEGER DEFAULT 1,
                        template_id TEXT,
                        environmental_conditions TEXT,
                        escalation_start_time TEXT,
                        growth_stage TEXT,
                        sequence_number INTEGER,
                        week_number INTEGER,
                        created_at TEXT NOT NULL,
                        updated_at TEXT
                    )
                    """
                )
                db.execute("CREATE INDEX IF NOT EXISTS idx_plant_tasks_plant ON PlantTasks(plant_id, status)")
                db.execute("CREATE INDEX IF NOT EXISTS idx_plant_tasks_due ON PlantTasks(status, due_date)")
        except sqlite3.Error as exc:
            logger.error("Failed to create tables: %s", exc)
            raise
