import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure backend/ is importable as the top-level "metricpoints" package even when pytest runs from repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Ensure the package runs in test/sqlite mode *before* importing any of its modules
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("POINTS_TIMEZONE", "UTC")

# Import the DB session module first so we can patch it before anything else binds to it
import metricpoints.db.session as app_db_session  # type: ignore

# --- Use a single in-memory SQLite DB for the whole test session ---
ENGINE = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    future=True,
)
SessionTesting = sessionmaker(bind=ENGINE, autocommit=False, autoflush=False, future=True)

setattr(app_db_session, "ENGINE", ENGINE)
app_db_session.SessionLocal = SessionTesting

from metricpoints.core.clock import fixed_clock
from metricpoints.models import Metric, MetricPoint
from metricpoints.services.points import PointsAggregator
from metricpoints.services.sample_store import SqlSampleStore

# Wednesday
FIXED_NOW = datetime(2026, 10, 14, 12, 30, 45, tzinfo=timezone.utc)


def _create_sqlite_test_schema(conn):
    """Create the tables the aggregator reads, using SQLite-compatible DDL."""
    conn.execute(text("PRAGMA foreign_keys=ON"))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS metrics (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name VARCHAR(255) NOT NULL,
            suffix VARCHAR(255),
            description TEXT,
            calc_type INTEGER DEFAULT 0,
            default_value NUMERIC DEFAULT 0 NOT NULL,
            places INTEGER DEFAULT 2 NOT NULL,
            default_view INTEGER DEFAULT 1 NOT NULL,
            created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
            updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS metric_points (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            metric_id INTEGER NOT NULL,
            value NUMERIC NOT NULL,
            counter NUMERIC DEFAULT 1 NOT NULL,
            created_at DATETIME NOT NULL,
            FOREIGN KEY(metric_id) REFERENCES metrics(id) ON DELETE CASCADE
        )
    """))
    conn.execute(text("""
        CREATE INDEX IF NOT EXISTS ix_metric_points_metric_created
        ON metric_points (metric_id, created_at)
    """))


def _drop_all(conn):
    tables = conn.execute(text(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
    )).scalars().all()
    # children first so the FK pragma doesn't complain
    for t in sorted(tables, key=lambda name: name != "metric_points"):
        conn.execute(text(f"DROP TABLE IF EXISTS {t}"))


with ENGINE.begin() as _conn:
    _create_sqlite_test_schema(_conn)


@pytest.fixture(scope="session")
def _db_engine():
    with ENGINE.begin() as conn:
        _create_sqlite_test_schema(conn)
    yield ENGINE


@pytest.fixture(scope="session")
def _session_factory(_db_engine):
    yield SessionTesting


@pytest.fixture(scope="function")
def reset_db(_db_engine):
    with _db_engine.begin() as conn:
        _drop_all(conn)
        _create_sqlite_test_schema(conn)
    yield


@pytest.fixture(scope="function")
def db(_session_factory, reset_db):
    session = _session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def aggregator(db, now):
    return PointsAggregator(SqlSampleStore(db), clock=fixed_clock(now), tz="UTC", zero_fallback=True)


@pytest.fixture
def make_metric(db):
    def _make(name="requests", **fields):
        metric = Metric(name=name, **fields)
        db.add(metric)
        db.commit()
        db.refresh(metric)
        return metric

    return _make


@pytest.fixture
def add_point(db):
    def _add(metric, value, at, counter=1):
        point = MetricPoint(
            metric_id=metric.id,
            value=value,
            counter=counter,
            created_at=at.astimezone(timezone.utc).replace(tzinfo=None),
        )
        db.add(point)
        db.commit()
        return point

    return _add
