"""
Tests for database.py - task queries, owner scoping, soft delete and the write path.
"""
import pytest
import sys
import os
from datetime import date, datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import OWNER, OTHER_OWNER
from database import (
    cancel_task_db,
    complete_task_db,
    count_completed_db,
    create_task_db,
    delete_task_db,
    find_tasks,
    get_task_db,
    reset_task_db,
    restore_task_db,
)
from errors import NotFoundError, StoreError
from models import Category, Priority, TaskCreate, TaskStatus


def _new_task(**overrides):
    data = {"title": "Buy groceries", "scheduled_date": "2024-01-10", "category": "shopping"}
    data.update(overrides)
    return TaskCreate(**data)


class TestFindTasks:
    """Tests for the query contract used by analytics and reports."""

    def test_empty(self, test_db):
        assert find_tasks(OWNER) == []

    def test_scoped_to_owner(self, add_task):
        add_task(date(2024, 1, 1), title="Mine")
        add_task(date(2024, 1, 1), title="Theirs", owner_id=OTHER_OWNER)

        assert [t.title for t in find_tasks(OWNER)] == ["Mine"]

    def test_deleted_excluded_unless_requested(self, add_task):
        add_task(date(2024, 1, 1), title="Active")
        add_task(date(2024, 1, 1), title="Deleted", deleted_at=datetime(2024, 1, 2))

        assert [t.title for t in find_tasks(OWNER)] == ["Active"]
        assert len(find_tasks(OWNER, include_deleted=True)) == 2

    def test_sorted_by_date_then_priority(self, add_task):
        add_task(date(2024, 1, 1), title="old-high", priority="high")
        add_task(date(2024, 1, 2), title="new-low", priority="low")
        add_task(date(2024, 1, 2), title="new-high", priority="high")
        add_task(date(2024, 1, 2), title="new-medium", priority="medium")

        assert [t.title for t in find_tasks(OWNER)] == [
            "new-high", "new-medium", "new-low", "old-high",
        ]

    def test_completed_range_is_inclusive(self, add_task):
        add_task(date(2024, 1, 1), status="completed", completed_at=datetime(2024, 1, 1, 0, 0))
        add_task(date(2024, 1, 2), status="completed", completed_at=datetime(2024, 1, 2, 23, 59, 59))
        add_task(date(2024, 1, 3), status="completed", completed_at=datetime(2024, 1, 3, 0, 0))

        tasks = find_tasks(
            OWNER,
            completed_from=datetime(2024, 1, 1),
            completed_to=datetime(2024, 1, 2, 23, 59, 59, 999999),
        )
        assert len(tasks) == 2

    def test_tags_round_trip(self, add_task):
        add_task(date(2024, 1, 1), tags=["home", "weekly"])

        task = find_tasks(OWNER, tags=["weekly"])[0]
        assert task.tags == ["home", "weekly"]
        assert find_tasks(OWNER, tags=["office"]) == []

    def test_enum_filters(self, add_task):
        add_task(date(2024, 1, 1), category="health", priority="high")
        add_task(date(2024, 1, 1), category="health", priority="low")

        tasks = find_tasks(OWNER, category=Category.HEALTH, priority=Priority.HIGH)
        assert len(tasks) == 1

    def test_query_failure_raises_store_error(self, broken_db):
        with pytest.raises(StoreError):
            find_tasks(OWNER)


class TestWritePath:
    """Tests for the task lifecycle helpers."""

    def test_create_and_fetch(self, test_db):
        task = create_task_db(OWNER, _new_task(tags=[" food ", ""]), created_at=datetime(2024, 1, 9, 8))

        fetched = get_task_db(OWNER, task.id)
        assert fetched.title == "Buy groceries"
        assert fetched.status == TaskStatus.PENDING
        assert fetched.priority == Priority.MEDIUM
        assert fetched.tags == ["food"]
        assert fetched.created_at == datetime(2024, 1, 9, 8)
        assert fetched.completed_at is None

    def test_other_owner_cannot_see_task(self, test_db):
        task = create_task_db(OWNER, _new_task())
        with pytest.raises(NotFoundError):
            get_task_db(OTHER_OWNER, task.id)

    def test_complete_then_reset_clears_completed_at(self, test_db):
        task = create_task_db(OWNER, _new_task())

        done = complete_task_db(OWNER, task.id, completed_at=datetime(2024, 1, 10, 18))
        assert done.status == TaskStatus.COMPLETED
        assert done.completed_at == datetime(2024, 1, 10, 18)
        assert count_completed_db(OWNER) == 1

        pending = reset_task_db(OWNER, task.id)
        assert pending.status == TaskStatus.PENDING
        assert pending.completed_at is None
        assert count_completed_db(OWNER) == 0

    def test_cancel(self, test_db):
        task = create_task_db(OWNER, _new_task())
        assert cancel_task_db(OWNER, task.id).status == TaskStatus.CANCELLED

    def test_soft_delete_and_restore(self, test_db):
        task = create_task_db(OWNER, _new_task())

        deleted = delete_task_db(OWNER, task.id, deleted_at=datetime(2024, 1, 11))
        assert deleted.deleted_at == datetime(2024, 1, 11)
        assert find_tasks(OWNER) == []
        with pytest.raises(NotFoundError):
            get_task_db(OWNER, task.id)

        restored = restore_task_db(OWNER, task.id)
        assert restored.deleted_at is None
        assert len(find_tasks(OWNER)) == 1

    def test_update_missing_task(self, test_db):
        with pytest.raises(NotFoundError):
            complete_task_db(OWNER, "nonexistent")

    def test_restore_requires_deleted_task(self, test_db):
        task = create_task_db(OWNER, _new_task())

        with pytest.raises(NotFoundError, match="not deleted"):
            restore_task_db(OWNER, task.id)
        assert get_task_db(OWNER, task.id).deleted_at is None


class TestStoreFailures:
    """Store errors are logged before they reach the caller."""

    def test_lookup_failure_is_logged(self, broken_db, caplog):
        with pytest.raises(StoreError):
            get_task_db(OWNER, "any")
        assert any(r.levelname == "ERROR" for r in caplog.records)

    def test_count_failure_is_logged(self, broken_db, caplog):
        with pytest.raises(StoreError):
            count_completed_db(OWNER)
        assert "count failed" in caplog.text
