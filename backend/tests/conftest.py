"""
Shared pytest fixtures for backend tests.
Each test gets its own SQLite file with the schema created directly.
"""
import json
import pytest
import sqlite3
import sys
import os
import uuid
from datetime import datetime

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database

OWNER = "user-1"
OTHER_OWNER = "user-2"

# Fixed reference time used throughout the tests (a Tuesday)
NOW = datetime(2024, 1, 30, 12, 0, 0)


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            owner_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT DEFAULT '',
            scheduled_date TEXT NOT NULL,
            due_time TEXT,
            status TEXT NOT NULL DEFAULT 'pending',
            priority TEXT NOT NULL DEFAULT 'medium',
            category TEXT NOT NULL,
            tags TEXT DEFAULT '[]',
            estimated_minutes INTEGER,
            created_at TEXT NOT NULL,
            completed_at TEXT,
            deleted_at TEXT
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def add_task(test_db):
    """
    Insert a task row with full control over timestamps and status.
    Dates may be given as date/datetime objects or ISO strings.
    """
    def _iso(value):
        if value is None:
            return None
        return value if isinstance(value, str) else value.isoformat()

    def _add_task(
        scheduled_date,
        owner_id=OWNER,
        title="Task",
        description="",
        due_time=None,
        status="pending",
        priority="medium",
        category="work",
        tags=None,
        estimated_minutes=None,
        created_at=None,
        completed_at=None,
        deleted_at=None,
        task_id=None,
    ):
        task_id = task_id or str(uuid.uuid4())
        created_at = created_at or f"{_iso(scheduled_date)}T08:00:00"
        conn = sqlite3.connect(test_db)
        conn.execute(
            """INSERT INTO tasks
               (id, owner_id, title, description, scheduled_date, due_time, status, priority,
                category, tags, estimated_minutes, created_at, completed_at, deleted_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                task_id, owner_id, title, description, _iso(scheduled_date), due_time, status,
                priority, category, json.dumps(tags or []), estimated_minutes,
                _iso(created_at), _iso(completed_at), _iso(deleted_at),
            )
        )
        conn.commit()
        conn.close()
        return task_id

    return _add_task


@pytest.fixture
def broken_db(monkeypatch, tmp_path):
    """Point the store at a database without the tasks table so every query fails."""
    db_path = str(tmp_path / "empty.db")
    sqlite3.connect(db_path).close()
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    yield db_path


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app with the clock pinned to NOW.
    Mocks init_db to skip alembic migrations.
    """
    from fastapi.testclient import TestClient
    import main

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(main, "init_db", lambda: None)
    main.app.dependency_overrides[main.current_time] = lambda: NOW

    with TestClient(main.app, headers={"X-User-Id": OWNER}) as client:
        yield client

    main.app.dependency_overrides.clear()
