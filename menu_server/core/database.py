"""
Database connection and schema management
Wraps a single DuckDB connection behind a lock so FastAPI worker threads
share it safely
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import duckdb
from fastapi import Request

from .exceptions import BaseApplicationError, ConcurrencyError, DatabaseError
from ..config.settings import settings

logger = logging.getLogger(__name__)

SCHEMA_SQL = r"""
CREATE SEQUENCE IF NOT EXISTS products_id_seq;
CREATE TABLE IF NOT EXISTS products (
  product_id INTEGER DEFAULT nextval('products_id_seq') PRIMARY KEY,
  name TEXT NOT NULL,
  category TEXT,
  unit TEXT NOT NULL,
  stock_quantity DOUBLE NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
  min_stock_level DOUBLE DEFAULT 0,
  status TEXT CHECK(status IN ('active','inactive','discontinued')) DEFAULT 'active',
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS dishes_id_seq;
CREATE TABLE IF NOT EXISTS dishes (
  dish_id INTEGER DEFAULT nextval('dishes_id_seq') PRIMARY KEY,
  name TEXT NOT NULL,
  description TEXT,
  category TEXT CHECK(category IN ('breakfast','lunch','snack','dinner')) NOT NULL,
  ingredients_json JSON,
  servings_count INTEGER DEFAULT 1,
  preparation_time INTEGER,
  is_active BOOLEAN DEFAULT TRUE,
  created_by INTEGER,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS templates_id_seq;
CREATE TABLE IF NOT EXISTS weekly_menu_templates (
  template_id INTEGER DEFAULT nextval('templates_id_seq') PRIMARY KEY,
  name TEXT NOT NULL,
  description TEXT,
  default_child_count INTEGER NOT NULL,
  is_active BOOLEAN DEFAULT TRUE,
  created_by INTEGER,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE TABLE IF NOT EXISTS template_dishes (
  template_id INTEGER NOT NULL,
  weekday TEXT CHECK(weekday IN ('monday','tuesday','wednesday','thursday','friday','saturday','sunday')) NOT NULL,
  meal_type TEXT CHECK(meal_type IN ('breakfast','lunch','snack','dinner')) NOT NULL,
  dish_id INTEGER NOT NULL,
  position INTEGER NOT NULL,
  PRIMARY KEY (template_id, weekday, meal_type, dish_id)
);

CREATE SEQUENCE IF NOT EXISTS daily_menus_id_seq;
CREATE TABLE IF NOT EXISTS daily_menus (
  menu_id INTEGER DEFAULT nextval('daily_menus_id_seq') PRIMARY KEY,
  date DATE UNIQUE NOT NULL,
  meals_json JSON NOT NULL,
  total_child_count INTEGER DEFAULT 0,
  notes TEXT,
  created_by INTEGER,
  created_at TIMESTAMP DEFAULT now(),
  updated_at TIMESTAMP DEFAULT now()
);

CREATE SEQUENCE IF NOT EXISTS consumption_logs_id_seq;
CREATE TABLE IF NOT EXISTS consumption_logs (
  log_id INTEGER DEFAULT nextval('consumption_logs_id_seq') PRIMARY KEY,
  menu_id INTEGER NOT NULL,
  meal_type TEXT NOT NULL,
  product_id INTEGER NOT NULL,
  product_name TEXT,
  quantity DOUBLE NOT NULL,
  unit TEXT,
  consumed_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_consumption_menu ON consumption_logs(menu_id);

CREATE SEQUENCE IF NOT EXISTS logs_id_seq;
CREATE TABLE IF NOT EXISTS logs (
  log_id INTEGER DEFAULT nextval('logs_id_seq') PRIMARY KEY,
  actor_id INTEGER,
  action TEXT,
  detail_json JSON,
  created_at TIMESTAMP DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_logs_action ON logs(action);
"""


class DatabaseManager:
    """Owns the DuckDB connection and hands it out under a lock"""

    def __init__(self, db_path: str = None):
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()
        self._depth = 0
        self.db_path = db_path or self._get_db_path_from_settings()

    def _get_db_path_from_settings(self) -> str:
        db_url = settings.database_url
        if db_url.startswith("duckdb://"):
            return db_url.replace("duckdb://", "", 1)
        return db_url

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        with self._lock:
            if self._connection is None:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
                self._connection = duckdb.connect(self.db_path)
                self._init_schema()
            return self._connection

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        return self.connection

    def _init_schema(self):
        try:
            self._connection.execute(SCHEMA_SQL)
        except duckdb.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    def init_database(self):
        """Create the connection and tables if they do not exist yet"""
        self.get_connection()
        logger.info("Database ready at %s", self.db_path)

    def close(self):
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    @contextmanager
    def transaction(self) -> Generator[duckdb.DuckDBPyConnection, None, None]:
        """
        Transaction context manager

        Nested use joins the outer transaction, so a caller can group several
        service calls into one all-or-nothing unit.
        """
        with self._lock:
            conn = self.connection
            if self._depth > 0:
                self._depth += 1
                try:
                    yield conn
                finally:
                    self._depth -= 1
                return

            self._depth = 1
            try:
                conn.execute("BEGIN TRANSACTION")
                yield conn
                conn.execute("COMMIT")
            except Exception as e:
                try:
                    conn.execute("ROLLBACK")
                except duckdb.Error:
                    logger.warning("Rollback failed", exc_info=True)

                if isinstance(e, BaseApplicationError):
                    raise
                if "conflict" in str(e).lower():
                    raise ConcurrencyError("Concurrent update detected, please retry") from e
                raise DatabaseError(f"Database operation failed: {e}") from e
            finally:
                self._depth = 0

    def execute_query(self, query: str, params: list = None) -> list:
        try:
            with self._lock:
                return self.connection.execute(query, params or []).fetchall()
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def execute_one(self, query: str, params: list = None) -> Optional[tuple]:
        try:
            with self._lock:
                return self.connection.execute(query, params or []).fetchone()
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def fetch_dicts(self, query: str, params: list = None, conn=None) -> List[Dict[str, Any]]:
        """Run a query and return rows keyed by column name"""
        try:
            with self._lock:
                cursor = (conn or self.connection).execute(query, params or [])
                columns = [col[0] for col in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except duckdb.Error as e:
            raise DatabaseError(f"Query execution failed: {e}")

    def fetch_dict(self, query: str, params: list = None, conn=None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_dicts(query, params, conn)
        return rows[0] if rows else None


# Global database manager
db_manager = DatabaseManager()


def get_db(request: Request) -> DatabaseManager:
    """FastAPI dependency returning the database manager bound to the app"""
    return getattr(request.app.state, "db", None) or db_manager
