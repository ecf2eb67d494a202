"""
Tests for UserService and TaskService.
"""

import math
from datetime import datetime, timezone

import pytest

from taskapi.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from taskapi.core.models import Role, TaskCreate, TaskUpdate, UserCreate
from taskapi.services.tasks import DEFAULT_SORT, ListParams, TaskPage, resolve_sort
from taskapi.storage import ASCENDING, DESCENDING, Collections, DuplicateKeyError
from tests.conftest import make_principal


MISSING_TASK = "task_ffffffffffff"


async def add_tasks(task_service, principal, *specs):
    created = []
    for spec in specs:
        if isinstance(spec, str):
            spec = {"title": spec}
        created.append(await task_service.create(principal, TaskCreate(**spec)))
    return created


# =============================================================================
# UserService
# =============================================================================


class TestUserService:
    @pytest.mark.asyncio
    async def test_register_issues_tokens(self, user_service, signer):
        user, tokens = await user_service.register(
            UserCreate(name="Alice", email="Alice@Example.com", password="password123")
        )

        assert user.email == "alice@example.com"
        assert user.role == "user"
        assert user.password_hash != "password123"
        assert signer.decode(tokens.access_token).sub == user.id

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, user_service, alice):
        with pytest.raises(ConflictError):
            await user_service.register(
                UserCreate(name="Imposter", email="ALICE@example.com", password="password456")
            )

        # First registration untouched
        original = await user_service.get_user(alice.id)
        assert original.name == "Alice"
        assert await user_service.authenticate("alice@example.com", "password123")

    @pytest.mark.asyncio
    async def test_store_duplicate_key_becomes_conflict(self, user_service, storage, monkeypatch):
        async def racing_insert(collection, id, data):
            raise DuplicateKeyError(collection, "email", data["email"])

        monkeypatch.setattr(storage.documents, "insert", racing_insert)

        with pytest.raises(ConflictError):
            await user_service.register(
                UserCreate(name="Racer", email="racer@example.com", password="password123")
            )

    @pytest.mark.asyncio
    async def test_login(self, user_service, alice):
        user, tokens = await user_service.login("ALICE@example.com", "password123")
        assert user.id == alice.id
        assert tokens.access_token

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [
        ("alice@example.com", "wrong-password"),
        ("nobody@example.com", "password123"),
    ])
    async def test_login_failures_look_the_same(self, user_service, alice, email, password):
        with pytest.raises(AuthenticationError) as exc:
            await user_service.login(email, password)
        assert exc.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_refresh(self, user_service, signer, alice):
        user, tokens = await user_service.refresh(signer.create_refresh_token(alice.id))
        assert user.id == alice.id
        assert signer.decode(tokens.access_token).sub == alice.id

    @pytest.mark.asyncio
    async def test_refresh_rejects_access_token(self, user_service, signer, alice):
        with pytest.raises(AuthenticationError):
            await user_service.refresh(signer.create_access_token(alice.id))

    @pytest.mark.asyncio
    async def test_ensure_admin_creates_then_promotes(self, user_service, alice):
        created = await user_service.ensure_admin("boss@example.com", "password123", "Boss")
        assert created.role == "admin"

        promoted = await user_service.ensure_admin("alice@example.com", "ignored-pass", "Alice")
        assert promoted.id == alice.id
        assert promoted.role == "admin"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password,field", [
        ("boss@example.com", "short", "password"),
        ("not-an-email", "password123", "email"),
    ])
    async def test_ensure_admin_rejects_bad_settings(self, user_service, storage, email, password, field):
        with pytest.raises(ValueError) as exc:
            await user_service.ensure_admin(email, password, "Boss")

        assert "Invalid bootstrap admin settings" in str(exc.value)
        assert field in str(exc.value)
        assert await storage.documents.count(Collections.USERS) == 0

    @pytest.mark.asyncio
    async def test_set_role_unknown_user(self, user_service):
        with pytest.raises(NotFoundError):
            await user_service.set_role("user_ffffffffffff", Role.ADMIN)


# =============================================================================
# Single-task operations
# =============================================================================


class TestTaskLifecycle:
    @pytest.mark.asyncio
    async def test_create_then_get_round_trip(self, task_service, alice):
        due = datetime(2030, 5, 1, 12, 0, tzinfo=timezone.utc)
        created = await task_service.create(alice, TaskCreate(
            title="Write report",
            description="Quarterly numbers",
            status="in-progress",
            priority="high",
            due_date=due,
        ))

        fetched = await task_service.get(alice, created.id)

        assert fetched == created
        assert fetched.id.startswith("task_")
        assert fetched.owner == alice.id
        assert (fetched.title, fetched.description) == ("Write report", "Quarterly numbers")
        assert (fetched.status, fetched.priority) == ("in-progress", "high")
        assert fetched.due_date == due
        assert fetched.created_at == fetched.updated_at

    @pytest.mark.asyncio
    async def test_defaults(self, task_service, alice):
        task = await task_service.create(alice, TaskCreate(title="Plain"))
        assert (task.status, task.priority, task.description, task.due_date) == ("todo", "medium", "", None)

    @pytest.mark.asyncio
    async def test_malformed_id(self, task_service, alice):
        with pytest.raises(ValidationError):
            await task_service.get(alice, "not-an-id")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("who", ["alice", "admin"])
    async def test_missing_task_is_not_found_for_everyone(self, task_service, alice, admin, who):
        principal = {"alice": alice, "admin": admin}[who]
        with pytest.raises(NotFoundError):
            await task_service.get(principal, MISSING_TASK)
        with pytest.raises(NotFoundError):
            await task_service.update(principal, MISSING_TASK, TaskUpdate(title="x"))
        with pytest.raises(NotFoundError):
            await task_service.delete(principal, MISSING_TASK)

    @pytest.mark.asyncio
    async def test_foreign_task_forbidden_for_user(self, task_service, alice, bob):
        [task] = await add_tasks(task_service, alice, "Alice only")

        with pytest.raises(AuthorizationError):
            await task_service.get(bob, task.id)
        with pytest.raises(AuthorizationError):
            await task_service.update(bob, task.id, TaskUpdate(title="Hijacked"))
        with pytest.raises(AuthorizationError):
            await task_service.delete(bob, task.id)

        # Nothing changed
        assert (await task_service.get(alice, task.id)).title == "Alice only"

    @pytest.mark.asyncio
    async def test_admin_may_act_on_foreign_task(self, task_service, alice, admin):
        [task] = await add_tasks(task_service, alice, "Alice only")

        assert (await task_service.get(admin, task.id)).id == task.id
        updated = await task_service.update(admin, task.id, TaskUpdate(status="done"))
        assert updated.status == "done"
        assert updated.owner == alice.id

        await task_service.delete(admin, task.id)
        with pytest.raises(NotFoundError):
            await task_service.get(alice, task.id)

    @pytest.mark.asyncio
    async def test_denied_update_never_writes(self, task_service, storage, alice, bob):
        [task] = await add_tasks(task_service, alice, "Alice only")
        storage.documents.calls.clear()

        with pytest.raises(AuthorizationError):
            await task_service.update(bob, task.id, TaskUpdate(title="Hijacked"))

        assert ("update", Collections.TASKS) not in storage.documents.calls

    @pytest.mark.asyncio
    async def test_update_applies_only_supplied_fields(self, task_service, alice):
        [task] = await add_tasks(task_service, alice, {"title": "Old", "description": "keep me", "priority": "low"})

        updated = await task_service.update(alice, task.id, TaskUpdate(title="New"))

        assert updated.title == "New"
        assert updated.description == "keep me"
        assert updated.priority == "low"
        assert updated.updated_at > task.updated_at
        assert updated.created_at == task.created_at

    @pytest.mark.asyncio
    async def test_task_deleted_mid_update_is_not_found(self, task_service, storage, alice, monkeypatch):
        [task] = await add_tasks(task_service, alice, "Racy")

        async def vanished(collection, id, updates):
            return None

        monkeypatch.setattr(storage.documents, "update", vanished)
        with pytest.raises(NotFoundError):
            await task_service.update(alice, task.id, TaskUpdate(title="x"))


# =============================================================================
# Listing
# =============================================================================


class TestListing:
    @pytest.mark.asyncio
    async def test_scoped_to_caller_even_for_admin(self, task_service, alice, bob, admin):
        await add_tasks(task_service, alice, "a1", "a2")
        await add_tasks(task_service, bob, "b1")

        page = await task_service.list(alice, ListParams())
        assert {t.title for t in page.items} == {"a1", "a2"}
        assert all(t.owner == alice.id for t in page.items)

        admin_page = await task_service.list(admin, ListParams())
        assert admin_page.items == []
        assert admin_page.total == 0

    @pytest.mark.asyncio
    async def test_pagination_is_consistent(self, task_service, alice):
        await add_tasks(task_service, alice, *[f"task {i}" for i in range(7)])

        seen = []
        for page_no in (1, 2, 3):
            page = await task_service.list(alice, ListParams(page=page_no, limit=3))
            assert len(page.items) <= 3
            assert page.total == 7
            assert page.pages == math.ceil(7 / 3)
            seen.extend(t.id for t in page.items)

        assert len(seen) == len(set(seen)) == 7

        beyond = await task_service.list(alice, ListParams(page=4, limit=3))
        assert beyond.items == []
        assert beyond.meta() == {"total": 7, "page": 4, "limit": 3, "pages": 3}

    @pytest.mark.asyncio
    async def test_filters_and_search(self, task_service, alice, bob):
        await add_tasks(
            task_service, alice,
            {"title": "Buy milk", "status": "todo", "priority": "high"},
            {"title": "Pay rent", "status": "done", "priority": "high"},
            {"title": "Walk dog", "description": "and buy treats", "status": "todo", "priority": "low"},
        )
        await add_tasks(task_service, bob, {"title": "Buy milk too", "status": "todo", "priority": "high"})

        page = await task_service.list(alice, ListParams(status="todo", priority="high"))
        assert [t.title for t in page.items] == ["Buy milk"]

        page = await task_service.list(alice, ListParams(q="buy"))
        assert {t.title for t in page.items} == {"Buy milk", "Walk dog"}
        assert page.total == 2

        page = await task_service.list(alice, ListParams(q="   "))
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_default_sort_is_newest_first(self, task_service, alice):
        await add_tasks(task_service, alice, "first", "second", "third")
        page = await task_service.list(alice, ListParams())
        assert [t.title for t in page.items] == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_unknown_sort_falls_back_to_default(self, task_service, alice):
        await add_tasks(task_service, alice, "first", "second", "third")
        page = await task_service.list(alice, ListParams(sort="password_hash"))
        assert [t.title for t in page.items] == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_sort_by_due_date(self, task_service, alice):
        await add_tasks(
            task_service, alice,
            {"title": "later", "due_date": datetime(2030, 2, 1, tzinfo=timezone.utc)},
            {"title": "undated"},
            {"title": "sooner", "due_date": datetime(2030, 1, 1, tzinfo=timezone.utc)},
        )
        page = await task_service.list(alice, ListParams(sort="dueDate"))
        assert [t.title for t in page.items] == ["sooner", "later", "undated"]

        page = await task_service.list(alice, ListParams(sort="-dueDate"))
        assert [t.title for t in page.items] == ["later", "sooner", "undated"]

    @pytest.mark.parametrize("kwargs", [
        {"page": 0},
        {"limit": 0},
        {"page": -1},
        {"limit": "10"},
        {"page": True},
        {"status": "archived"},
        {"priority": "urgent"},
    ])
    def test_invalid_params_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            ListParams(**kwargs)

    def test_resolve_sort(self):
        assert resolve_sort("dueDate") == [("due_date", ASCENDING), ("id", ASCENDING)]
        assert resolve_sort("-title") == [("title", DESCENDING), ("id", ASCENDING)]
        assert resolve_sort("{$where: 1}") == resolve_sort(DEFAULT_SORT)
        assert resolve_sort(None) == [("created_at", DESCENDING), ("id", ASCENDING)]

    def test_pages_when_empty(self):
        assert TaskPage(total=0, limit=10).pages == 0


# =============================================================================
# Statistics
# =============================================================================


class TestStats:
    @pytest.mark.asyncio
    async def test_no_tasks_empty_mapping(self, task_service, alice):
        assert await task_service.stats(alice) == {}

    @pytest.mark.asyncio
    async def test_counts_only_callers_tasks(self, task_service, user_service, alice, bob):
        await add_tasks(
            task_service, alice,
            {"title": "a", "status": "todo"},
            {"title": "b", "status": "todo"},
            {"title": "c", "status": "done"},
        )
        await add_tasks(task_service, bob, {"title": "x", "status": "todo"}, {"title": "y", "status": "in-progress"})
        carol = await make_principal(user_service, "Carol", role=Role.ADMIN)

        assert await task_service.stats(alice) == {"todo": 2, "done": 1}
        assert await task_service.stats(carol) == {}
