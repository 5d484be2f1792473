"""Shared fixtures. Environment is set before any app module reads settings."""

import os
import sys

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from sqlalchemy.orm import sessionmaker

from app.database import build_engine, create_tables


@pytest.fixture
def session_factory():
    """Fresh in-memory database per test; every session shares its one connection."""
    engine = build_engine("sqlite://")
    create_tables(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
