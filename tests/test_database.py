"""Tests for the in-memory entity store."""

import threading

import pytest

from earnhub.database import DEFAULT_TASKS, MemoryStore
from earnhub.errors import DuplicateRecord, InvalidTransition
from earnhub.models import (
    RequestStatus,
    Setting,
    Task,
    TaskSubmission,
    User,
    VerificationRequest,
)


class TestSeeding:
    def test_defaults_seeded(self) -> None:
        store = MemoryStore()
        assert len(store.list(Task)) == len(DEFAULT_TASKS)
        assert store.get_setting("upiMessage").value == "UPI payments are accessible after 2 days"

    def test_seeding_can_be_disabled(self, store: MemoryStore) -> None:
        assert store.list(Task) == []
        assert store.list_settings() == []


class TestCrud:
    def test_create_assigns_id_and_timestamp(self, store: MemoryStore) -> None:
        request = store.create(VerificationRequest, instagram_handle="alice")
        assert request.id
        assert request.created_at is not None
        assert request.status == RequestStatus.PENDING
        assert store.get(VerificationRequest, request.id) == request

    def test_submission_stamped_with_submitted_at(self, store: MemoryStore) -> None:
        sub = store.create(TaskSubmission, user_id="u", task_id="t", screenshot_url="shot.png")
        assert sub.submitted_at is not None

    def test_ids_are_unique(self, store: MemoryStore) -> None:
        ids = {store.create(VerificationRequest, instagram_handle="h").id for _ in range(50)}
        assert len(ids) == 50

    def test_get_missing_returns_none(self, store: MemoryStore) -> None:
        assert store.get(User, "nope") is None

    def test_update_merges_fields(self, store: MemoryStore, make_user) -> None:
        user = make_user()
        updated = store.update(User, user.id, balance=900)
        assert updated.balance == 900
        assert updated.instagram_handle == "alice"
        assert store.get(User, user.id).balance == 900
        # Stored records are replaced, not mutated.
        assert user.balance == 500

    def test_update_missing_returns_none(self, store: MemoryStore) -> None:
        assert store.update(User, "missing", balance=1) is None

    def test_update_cannot_change_id(self, store: MemoryStore, make_user) -> None:
        user = make_user()
        assert store.update(User, user.id, id="other").id == user.id

    def test_list_with_predicate(self, store: MemoryStore) -> None:
        a = store.create(VerificationRequest, instagram_handle="a")
        store.create(VerificationRequest, instagram_handle="b")
        store.update(VerificationRequest, a.id, status=RequestStatus.REJECTED)
        pending = store.list(VerificationRequest, where=lambda r: r.status == RequestStatus.PENDING)
        assert [r.instagram_handle for r in pending] == ["b"]

    def test_unknown_kind_rejected(self, store: MemoryStore) -> None:
        with pytest.raises(TypeError):
            store.list(dict)


class TestUsers:
    def test_lookup_by_handle(self, store: MemoryStore, make_user) -> None:
        user = make_user("bob")
        assert store.get_user_by_handle("bob") == user
        assert store.get_user_by_handle("carol") is None

    def test_duplicate_handle_rejected(self, store: MemoryStore, make_user) -> None:
        make_user("bob")
        with pytest.raises(DuplicateRecord):
            make_user("bob")
        assert len(store.list(User)) == 1

    def test_lookup_ignores_case_but_stores_as_given(self, store: MemoryStore, make_user) -> None:
        user = make_user("Bob.Builder")
        assert store.get_user_by_handle("bob.builder") == user
        assert store.get_user_by_handle("BOB.BUILDER").instagram_handle == "Bob.Builder"
        with pytest.raises(DuplicateRecord):
            make_user("bob.builder")


class TestTasks:
    def test_inactive_tasks_never_listed(self, store: MemoryStore, make_task) -> None:
        make_task(title="on")
        make_task(title="off", is_active=False)
        make_task(title="premium off", is_advanced=True, is_active=False)
        assert [t.title for t in store.list_tasks()] == ["on"]
        assert store.list_tasks(advanced=True) == []

    def test_tier_filter(self, store: MemoryStore, make_task) -> None:
        make_task(title="regular")
        make_task(title="premium", is_advanced=True)
        assert [t.title for t in store.list_tasks(advanced=False)] == ["regular"]
        assert [t.title for t in store.list_tasks(advanced=True)] == ["premium"]
        assert len(store.list_tasks()) == 2

    def test_delete(self, store: MemoryStore, make_task) -> None:
        task = make_task()
        assert store.delete_task(task.id) is True
        assert store.delete_task(task.id) is False
        assert store.get(Task, task.id) is None


class TestSettings:
    def test_upsert_by_key(self, store: MemoryStore) -> None:
        first = store.set_setting("upiMessage", "soon")
        second = store.set_setting("upiMessage", "now")
        assert first.id == second.id
        assert store.get_setting("upiMessage").value == "now"
        assert len(store.list(Setting)) == 1


class TestCompareAndSet:
    def test_applies_when_expected(self, store: MemoryStore) -> None:
        req = store.create(VerificationRequest, instagram_handle="a")
        updated = store.compare_and_set(
            VerificationRequest, req.id, "status", RequestStatus.PENDING, status=RequestStatus.APPROVED,
        )
        assert updated.status == RequestStatus.APPROVED

    def test_raises_when_moved_on(self, store: MemoryStore) -> None:
        req = store.create(VerificationRequest, instagram_handle="a")
        store.update(VerificationRequest, req.id, status=RequestStatus.REJECTED)
        with pytest.raises(InvalidTransition, match="already rejected"):
            store.compare_and_set(
                VerificationRequest, req.id, "status", RequestStatus.PENDING, status=RequestStatus.APPROVED,
            )
        assert store.get(VerificationRequest, req.id).status == RequestStatus.REJECTED

    def test_missing_returns_none(self, store: MemoryStore) -> None:
        assert store.compare_and_set(
            VerificationRequest, "nope", "status", RequestStatus.PENDING, status=RequestStatus.APPROVED,
        ) is None

    def test_only_one_thread_wins(self, store: MemoryStore) -> None:
        req = store.create(VerificationRequest, instagram_handle="a")
        wins = []
        barrier = threading.Barrier(8)

        def attempt() -> None:
            barrier.wait()
            try:
                store.compare_and_set(
                    VerificationRequest, req.id, "status", RequestStatus.PENDING,
                    status=RequestStatus.APPROVED,
                )
                wins.append(1)
            except InvalidTransition:
                pass

        threads = [threading.Thread(target=attempt) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(wins) == 1
