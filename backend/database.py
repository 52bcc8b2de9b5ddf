import sqlite3
import json
import logging
import uuid
from datetime import date, datetime
from typing import Optional, Union
from contextlib import contextmanager

import config
from errors import NotFoundError, StoreError
from models import Task, TaskCreate, TaskStatus, Category, Priority

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH

# SQL fragment ranking priorities so that high sorts first under DESC
PRIORITY_RANK_SQL = """
    CASE priority
        WHEN 'high' THEN 3
        WHEN 'medium' THEN 2
        WHEN 'low' THEN 1
        ELSE 0
    END
"""

@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH, timeout=config.DATABASE_TIMEOUT)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True
    )

def _iso(value: Union[date, datetime, None]) -> Optional[str]:
    return value.isoformat() if value is not None else None

def _row_to_task(row) -> Task:
    """Convert a database row to a Task model."""
    tags = json.loads(row["tags"]) if row["tags"] else []
    return Task(
        id=row["id"],
        owner_id=row["owner_id"],
        title=row["title"],
        description=row["description"] or "",
        scheduled_date=row["scheduled_date"],
        due_time=row["due_time"] or None,
        status=row["status"],
        priority=row["priority"],
        category=row["category"],
        tags=tags,
        estimated_minutes=row["estimated_minutes"],
        created_at=row["created_at"],
        completed_at=row["completed_at"],
        deleted_at=row["deleted_at"],
    )


def find_tasks(
    owner_id: str,
    *,
    scheduled_from: Optional[date] = None,
    scheduled_to: Optional[date] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    completed_from: Optional[datetime] = None,
    completed_to: Optional[datetime] = None,
    status: Optional[TaskStatus] = None,
    category: Optional[Category] = None,
    priority: Optional[Priority] = None,
    tags: Optional[list[str]] = None,
    include_deleted: bool = False,
) -> list[Task]:
    """
    Query an owner's tasks. Every bound is inclusive; a tag list matches tasks
    carrying any of the tags.

    Results are ordered by scheduled_date descending, then priority descending
    (high > medium > low), then creation time.
    Raises StoreError when the query cannot be answered.
    """
    clauses = ["owner_id = ?"]
    params: list = [owner_id]

    ranges = (
        ("scheduled_date", ">=", scheduled_from),
        ("scheduled_date", "<=", scheduled_to),
        ("created_at", ">=", created_from),
        ("created_at", "<=", created_to),
        ("completed_at", ">=", completed_from),
        ("completed_at", "<=", completed_to),
    )
    for column, op, bound in ranges:
        if bound is not None:
            clauses.append(f"{column} {op} ?")
            params.append(_iso(bound))

    for column, value in (("status", status), ("category", category), ("priority", priority)):
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(value.value if hasattr(value, "value") else value)

    if tags:
        placeholders = ", ".join("?" for _ in tags)
        clauses.append(
            f"EXISTS (SELECT 1 FROM json_each(tasks.tags) WHERE json_each.value IN ({placeholders}))"
        )
        params.extend(tags)

    if not include_deleted:
        clauses.append("deleted_at IS NULL")

    sql = f"""
        SELECT * FROM tasks
        WHERE {' AND '.join(clauses)}
        ORDER BY scheduled_date DESC, {PRIORITY_RANK_SQL} DESC, created_at
    """
    try:
        with get_db() as conn:
            rows = conn.execute(sql, params).fetchall()
    except sqlite3.Error as e:
        logger.error("Task query failed for owner %s: %s", owner_id, e)
        raise StoreError(f"Task query failed: {e}") from e
    return [_row_to_task(row) for row in rows]


# Write path, owned by the task-management side

def create_task_db(
    owner_id: str,
    task_data: TaskCreate,
    task_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Task:
    """Insert a pending task. created_at defaults to the current local time."""
    task_id = task_id or str(uuid.uuid4())
    created_at = created_at or datetime.now()
    task = Task(
        id=task_id,
        owner_id=owner_id,
        created_at=created_at,
        **task_data.model_dump(),
    )
    try:
        with get_db() as conn:
            conn.execute(
                """INSERT INTO tasks
                   (id, owner_id, title, description, scheduled_date, due_time, status, priority,
                    category, tags, estimated_minutes, created_at, completed_at, deleted_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, NULL)""",
                (
                    task.id, owner_id, task.title, task.description,
                    _iso(task.scheduled_date), task.due_time, task.status.value,
                    task.priority.value, task.category.value, json.dumps(task.tags),
                    task.estimated_minutes, _iso(created_at),
                )
            )
            conn.commit()
    except sqlite3.Error as e:
        logger.error("Could not create task for owner %s: %s", owner_id, e)
        raise StoreError(f"Could not create task: {e}") from e
    return task

def get_task_db(owner_id: str, task_id: str, include_deleted: bool = False) -> Task:
    """Fetch one task of the owner, raising NotFoundError when absent."""
    sql = "SELECT * FROM tasks WHERE id = ? AND owner_id = ?"
    if not include_deleted:
        sql += " AND deleted_at IS NULL"
    try:
        with get_db() as conn:
            row = conn.execute(sql, (task_id, owner_id)).fetchone()
    except sqlite3.Error as e:
        logger.error("Task lookup failed for %s: %s", task_id, e)
        raise StoreError(f"Task lookup failed: {e}") from e
    if not row:
        raise NotFoundError(f"Task {task_id} not found")
    return _row_to_task(row)

def _update_task(owner_id: str, task_id: str, include_deleted: bool = False, **changes) -> Task:
    # Ensures the task exists and belongs to the owner before touching it
    get_task_db(owner_id, task_id, include_deleted=include_deleted)
    set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
    values = list(changes.values()) + [task_id, owner_id]
    try:
        with get_db() as conn:
            conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ? AND owner_id = ?", values)
            conn.commit()
    except sqlite3.Error as e:
        logger.error("Could not update task %s: %s", task_id, e)
        raise StoreError(f"Could not update task: {e}") from e
    return get_task_db(owner_id, task_id, include_deleted=True)

def complete_task_db(owner_id: str, task_id: str, completed_at: Optional[datetime] = None) -> Task:
    return _update_task(
        owner_id, task_id,
        status=TaskStatus.COMPLETED.value,
        completed_at=_iso(completed_at or datetime.now()),
    )

def cancel_task_db(owner_id: str, task_id: str) -> Task:
    return _update_task(owner_id, task_id, status=TaskStatus.CANCELLED.value, completed_at=None)

def reset_task_db(owner_id: str, task_id: str) -> Task:
    """Return a task to pending; completed_at is cleared with the status."""
    return _update_task(owner_id, task_id, status=TaskStatus.PENDING.value, completed_at=None)

def delete_task_db(owner_id: str, task_id: str, deleted_at: Optional[datetime] = None) -> Task:
    """Soft delete: the row stays, flagged with deleted_at."""
    return _update_task(owner_id, task_id, deleted_at=_iso(deleted_at or datetime.now()))

def restore_task_db(owner_id: str, task_id: str) -> Task:
    """Undo a soft delete; only tasks that are currently deleted can be restored."""
    if get_task_db(owner_id, task_id, include_deleted=True).deleted_at is None:
        raise NotFoundError(f"Task {task_id} not found or not deleted")
    return _update_task(owner_id, task_id, include_deleted=True, deleted_at=None)

def count_completed_db(owner_id: str) -> int:
    """Number of active completed tasks the owner has ever finished."""
    try:
        with get_db() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM tasks WHERE owner_id = ? AND status = 'completed' AND deleted_at IS NULL",
                (owner_id,)
            ).fetchone()[0]
    except sqlite3.Error as e:
        logger.error("Completed task count failed for owner %s: %s", owner_id, e)
        raise StoreError(f"Task count failed: {e}") from e
