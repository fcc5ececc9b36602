import logging
import random
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, TypeVar

import duckdb
import pandas as pd

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"
SQL_DIR = Path(__file__).parent.parent.parent / "sql"
LOCK_CONFLICT = "Conflicting lock"

T = TypeVar("T")


def _with_backoff(action: Callable[[], T], what: str, max_retries: int = 3) -> T:
    """
    Run a DuckDB action, backing off exponentially while the file is locked.

    Any other IOException is raised straight away.

    Args:
        action: Zero-argument callable doing the work
        what: Short description for log messages
        max_retries: Maximum number of attempts

    Returns:
        Whatever the action returns
    """
    for attempt in range(1, max_retries + 1):
        try:
            return action()
        except duckdb.IOException as e:
            if LOCK_CONFLICT not in str(e):
                raise
            if attempt == max_retries:
                logger.error(f"{what} failed after {max_retries} attempts: {e}")
                raise
            delay = 2 ** (attempt - 1) + random.uniform(0, 0.5)  # nosec B311
            logger.warning(
                f"{what} found the database locked, retrying in {delay:.2f}s "
                f"(attempt {attempt}/{max_retries})"
            )
            time.sleep(delay)
    raise duckdb.IOException(f"{what} never attempted")


def connect(db_path: str, read_only: bool = True) -> duckdb.DuckDBPyConnection:
    """
    Open a DuckDB connection.

    A read-only request against a file that does not exist yet, or against
    an in-memory database, falls back to read-write.
    """
    read_only = read_only and db_path != IN_MEMORY and Path(db_path).exists()

    def _open():
        return duckdb.connect(db_path, read_only=read_only)

    conn = _with_backoff(_open, f"Connecting to {db_path}")
    mode = "read-only" if read_only else "read-write"
    logger.debug(f"Opened {mode} connection to {db_path}")
    return conn


class VoteDatabase:
    """
    DuckDB store for raw votes, normalized ballots and method results.

    Connections are opened on demand. An in-memory database always reuses
    its single connection; a second one would see an empty database.
    """

    def __init__(self, db_path: Optional[str] = None, read_only: bool = True):
        """
        Args:
            db_path: Path to DuckDB file. If None, uses in-memory database.
            read_only: Whether to default to read-only connections
        """
        self.db_path = db_path or IN_MEMORY
        self.read_only = read_only
        self.sql_dir = SQL_DIR
        self._conn = None

    @property
    def in_memory(self) -> bool:
        return self.db_path == IN_MEMORY

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self._conn = connect(self.db_path, self.read_only)
        return self._conn

    @contextmanager
    def _short_lived(self):
        """Yield the open connection, or a read-only one closed on exit."""
        # DuckDB refuses a second connection to one file with another mode.
        if self.in_memory or self._conn is not None:
            yield self.conn
            return

        conn = connect(self.db_path, read_only=True)
        try:
            yield conn
        finally:
            conn.close()

    def execute_script(
        self, script_name: str, params: Optional[Sequence[Any]] = None
    ) -> pd.DataFrame:
        """
        Execute a SQL script file from the sql/ directory.

        Each "?" in the script is replaced in order by a literal, with strings
        and paths single-quoted, since DuckDB binds no parameters across a
        multi-statement script.

        Args:
            script_name: Name of SQL file (without .sql extension)
            params: Values to substitute into the script

        Returns:
            DataFrame with the result of the script's last statement
        """
        script_path = self.sql_dir / f"{script_name}.sql"
        if not script_path.exists():
            raise FileNotFoundError(f"SQL script not found: {script_path}")

        sql = script_path.read_text()
        literals = [
            "'" + str(value).replace("'", "''") + "'"
            if isinstance(value, (str, Path))
            else str(value)
            for value in params or []
        ]
        if literals:
            pieces = sql.split("?")
            if len(pieces) - 1 != len(literals):
                raise ValueError(
                    f"{script_path.name} has {len(pieces) - 1} placeholders, "
                    f"got {len(literals)} parameters"
                )
            sql = pieces[0] + "".join(
                literal + piece for literal, piece in zip(literals, pieces[1:])
            )

        try:
            result = self.conn.execute(sql).fetchdf()
        except duckdb.Error as e:
            logger.error(f"Script {script_name} failed: {e}")
            raise
        logger.info(f"Ran {script_path.name}")
        return result

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> pd.DataFrame:
        """Run a query on the main connection and return a DataFrame."""
        return self.conn.execute(sql, params).fetchdf()

    def query_with_retry(
        self, sql: str, params: Optional[Sequence[Any]] = None, max_retries: int = 3
    ) -> pd.DataFrame:
        """
        Run a query on a short-lived connection, retrying while locked.

        Used by the web layer so request handlers never hold the file open.
        """

        def _run():
            with self._short_lived() as conn:
                return conn.execute(sql, params).fetchdf()

        return _with_backoff(_run, "Query", max_retries)

    def table_exists(self, table_name: str) -> bool:
        with self._short_lived() as conn:
            (count,) = conn.execute(
                "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
                [table_name],
            ).fetchone()
        return count > 0

    def write_table(self, table_name: str, df: pd.DataFrame):
        """Replace a table with the contents of a DataFrame."""
        view_name = f"_{table_name}_frame"
        self.conn.register(view_name, df)
        try:
            self.conn.execute(
                f"CREATE OR REPLACE TABLE {table_name} AS SELECT * FROM {view_name}"
            )
        finally:
            self.conn.unregister(view_name)
        logger.info(f"Wrote {len(df)} rows to {table_name}")

    def close(self):
        if self._conn is None:
            return
        try:
            self._conn.close()
            logger.debug(f"Closed connection to {self.db_path}")
        except duckdb.Error as e:
            logger.warning(f"Error closing connection to {self.db_path}: {e}")
        finally:
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
