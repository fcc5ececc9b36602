import logging
import os
from typing import Any, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, HTTPException

try:
    from ..analysis.rankers import METHODS
    from ..data.database import VoteDatabase
except ImportError:
    from analysis.rankers import METHODS
    from data.database import VoteDatabase

logger = logging.getLogger(__name__)

DATABASE_ENV_VAR = "RMC_DATABASE_PATH"
RESULT_TABLES = ("method_places", "pairwise_battles", "ir_rounds")

app = FastAPI(
    title="Ranked Method Comparison",
    description="Instant-runoff, Copeland, approval and plurality results",
)

# Set by set_database_path(); falls back to RMC_DATABASE_PATH
db_path = None


def convert_numpy_types(obj: Any) -> Any:
    """Convert numpy types to native Python types for JSON serialization."""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, dict):
        return {k: convert_numpy_types(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy_types(item) for item in obj]
    elif obj is pd.NA:
        return None
    else:
        return obj


def records(df: pd.DataFrame) -> list:
    return convert_numpy_types(df.to_dict("records"))


def get_database() -> VoteDatabase:
    """
    Get a read-only database handle for the configured path.
    """
    path = db_path or os.environ.get(DATABASE_ENV_VAR)
    if not path:
        raise HTTPException(status_code=500, detail="Database not configured")
    return VoteDatabase(path, read_only=True)


def set_database_path(path: str):
    """Set the database path for the application."""
    global db_path
    db_path = path
    os.environ[DATABASE_ENV_VAR] = path
    logger.info(f"Database path set to: {path}")

    try:
        test_db = VoteDatabase(db_path, read_only=True)
        test_db.table_exists("method_places")
        test_db.close()
        logger.info("Database connection test successful")
    except Exception as e:
        logger.error(f"Database connection test failed: {e}")
        raise


def require_table(database: VoteDatabase, table_name: str):
    if not database.table_exists(table_name):
        raise HTTPException(
            status_code=400, detail=f"No results loaded ({table_name} missing)"
        )


@app.get("/api/places")
async def get_places():
    """Combined table: one row per candidate, one column per method."""
    database = get_database()
    require_table(database, "method_places")

    long = database.query_with_retry(
        "SELECT candidate, method, place FROM method_places"
    )
    wide = long.pivot(index="candidate", columns="method", values="place")
    columns = [m for m in METHODS if m in wide.columns]
    wide = wide.reindex(columns=columns).astype("Int64").reset_index()
    wide.columns.name = None
    if "IR" in wide.columns:
        wide = wide.sort_values(["IR", "candidate"], na_position="last")
    return records(wide)


@app.get("/api/places/{method}")
async def get_method_places(method: str):
    """Places for one method, best first."""
    if method not in METHODS:
        raise HTTPException(status_code=404, detail=f"Unknown method: {method}")

    database = get_database()
    require_table(database, "method_places")

    places = database.query_with_retry(
        """
        SELECT candidate, place
        FROM method_places
        WHERE method = ?
        ORDER BY place, candidate
    """,
        [method],
    )
    return records(places)


@app.get("/api/pairwise")
async def get_pairwise(bird: Optional[str] = None):
    """Pairwise win/loss records, optionally for one candidate."""
    database = get_database()
    require_table(database, "pairwise_battles")

    if bird:
        battles = database.query_with_retry(
            """
            SELECT bird, opponent, n_wins, n_losses
            FROM pairwise_battles
            WHERE bird = ?
            ORDER BY opponent
        """,
            [bird],
        )
        if battles.empty:
            raise HTTPException(status_code=404, detail=f"Unknown candidate: {bird}")
    else:
        battles = database.query_with_retry(
            """
            SELECT bird, opponent, n_wins, n_losses
            FROM pairwise_battles
            ORDER BY bird, opponent
        """
        )
    return records(battles)


@app.get("/api/ir-rounds")
async def get_ir_rounds():
    """Round-by-round instant-runoff first-place weight."""
    database = get_database()
    require_table(database, "ir_rounds")

    rounds = database.query_with_retry(
        """
        SELECT round_number, candidate, first_place_weight, eliminated, exhausted_weight
        FROM ir_rounds
        ORDER BY round_number, first_place_weight DESC, candidate
    """
    )
    return records(rounds)


@app.get("/api/summary")
async def get_summary():
    """Candidate count and winners under each method."""
    database = get_database()
    require_table(database, "method_places")

    places = database.query_with_retry(
        "SELECT candidate, method, place FROM method_places"
    )
    winners = {
        method: sorted(group.loc[group["place"] == 1, "candidate"].tolist())
        for method, group in places.groupby("method")
    }
    return {
        "candidates": int(places["candidate"].nunique()),
        "winners": {m: winners[m] for m in METHODS if m in winners},
    }
