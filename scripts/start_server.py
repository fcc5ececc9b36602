#!/usr/bin/env python3
"""
Serve saved method comparison results as a JSON API.

Usage:
    python scripts/start_server.py --db results.duckdb [--port 8000]
"""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from data.database import VoteDatabase  # noqa: E402
from web.main import RESULT_TABLES, set_database_path  # noqa: E402

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def check_results(db_path: Path) -> bool:
    """Confirm every result table written by compare_methods.py is present."""
    with VoteDatabase(str(db_path)) as database:
        missing = [t for t in RESULT_TABLES if not database.table_exists(t)]
        if missing:
            logger.error(f"{db_path} has no saved results ({', '.join(missing)})")
            return False
        counts = database.query_with_retry(
            "SELECT method, COUNT(*) AS candidates FROM method_places GROUP BY method"
        )
    for _, row in counts.iterrows():
        logger.info(f"{row['method']}: {row['candidates']} candidates placed")
    return True


def main():
    parser = argparse.ArgumentParser(description="Serve method comparison results")
    parser.add_argument("--db", required=True, help="DuckDB file with saved results")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument("--reload", action="store_true", help="Reload on code change")
    args = parser.parse_args()

    db_path = Path(args.db).absolute()
    if not db_path.exists():
        logger.error(f"Database file not found: {db_path}")
        sys.exit(1)
    if not check_results(db_path):
        logger.error("Run compare_methods.py with --db first")
        sys.exit(1)

    set_database_path(str(db_path))
    logger.info(f"Serving {db_path.name} on http://{args.host}:{args.port}")
    uvicorn.run("web.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
