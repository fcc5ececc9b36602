"""
Shared pytest configuration and fixtures for ranked-method-comparison.

This module provides common test fixtures and utilities used across
all test modules.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analysis.ballots import BallotStore  # noqa: E402
from data.database import VoteDatabase  # noqa: E402


def records_from_patterns(patterns):
    """
    Expand [(weight, [candidates...]), ...] into contract records.

    Each pattern becomes one ballot_id carrying the given weight.
    """
    records = []
    for ballot_id, (weight, preferences) in enumerate(patterns, 1):
        for rank, candidate in enumerate(preferences, 1):
            records.append((f"B{ballot_id:03d}", rank, candidate, weight))
    return records


def store_from_patterns(patterns, candidates=None):
    return BallotStore.from_records(
        records_from_patterns(patterns), candidates=candidates
    )


@pytest.fixture
def temp_db():
    """Provide a temporary in-memory database for testing."""
    db = VoteDatabase(":memory:", read_only=False)
    yield db
    db.close()


@pytest.fixture
def temp_db_file():
    """Provide a path for a temporary database file (not yet created)."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    os.unlink(db_path)  # Let DuckDB create the file

    try:
        yield db_path
    finally:
        for path in (db_path, db_path + ".wal"):
            if os.path.exists(path):
                os.unlink(path)


@pytest.fixture
def scenario_patterns():
    """3 x [A,B,C], 2 x [B,C,A], 1 x [C,A,B]."""
    return [
        (3, ["A", "B", "C"]),
        (2, ["B", "C", "A"]),
        (1, ["C", "A", "B"]),
    ]


@pytest.fixture
def scenario_store(scenario_patterns):
    return store_from_patterns(scenario_patterns)


@pytest.fixture
def bird_store():
    """A small bird election with partial ballots."""
    return store_from_patterns(
        [
            (40, ["Kakapo", "Kea", "Tui"]),
            (25, ["Kea", "Kakapo"]),
            (20, ["Tui", "Kea", "Kereru", "Kakapo"]),
            (10, ["Kereru"]),
            (5, ["Hoiho", "Tui"]),
        ]
    )


@pytest.fixture
def sample_vote_csv(tmp_path):
    """Wide-format vote file as produced by the voting site export."""
    csv_path = tmp_path / "votes.csv"
    csv_path.write_text(
        "ballot_id,vote_1,vote_2,vote_3,vote_4,vote_5\n"
        "1,Kakapo,Kea,Tui,,\n"
        "2,Kakapo,Kea,Tui,,\n"
        "3,Kea,Kakapo,,,\n"
        "4,Tui,Kea,Kereru,Kakapo,\n"
        "5,Kereru,,,,\n"
        "6,Kea,Kakapo,,,\n"
        "7,Kakapo,Kea,Tui,,\n"
    )
    return csv_path


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (medium speed, database required)",
    )
    config.addinivalue_line(
        "markers",
        "golden: marks tests as hand-computed scenario validation",
    )
    config.addinivalue_line(
        "markers", "invariant: marks tests as mathematical invariant validation"
    )
    config.addinivalue_line(
        "markers", "smoke: marks tests as smoke tests (basic functionality check)"
    )
