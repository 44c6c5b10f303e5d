"""
Global test configuration for linearfeed.

This module provides global pytest configuration and fixtures.
"""

import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from linearfeed.infra import db as db_module  # noqa: E402


@pytest.fixture(autouse=True)
def _force_test_db(monkeypatch):
    """
    Point the application database at a fresh in-memory SQLite per test.

    Everything that opens sessions through ``db_module.SessionLocal`` (SQL
    stores, CLI commands, the API) sees the same, empty schema.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)

    monkeypatch.setattr(db_module, "engine", engine)
    monkeypatch.setattr(db_module, "SessionLocal", TestSessionLocal)

    db_module.init_schema(engine)
    yield engine
    engine.dispose()
