"""In-memory entity store, created by ``create_app`` and shared through ``get_store``."""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, Type, TypeVar

from .errors import DuplicateRecord, InvalidTransition
from .models import (
    InstagramBindingRequest,
    Record,
    Setting,
    SupportRequest,
    Task,
    TaskSubmission,
    TaskType,
    User,
    VerificationRequest,
    WithdrawalRequest,
    same_handle,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

ENTITY_TYPES = (
    User,
    Task,
    TaskSubmission,
    VerificationRequest,
    InstagramBindingRequest,
    WithdrawalRequest,
    SupportRequest,
    Setting,
)

DEFAULT_SETTINGS = {
    "upiMessage": "UPI payments are accessible after 2 days",
}

DEFAULT_TASKS = [
    {"title": "Follow @brandaccount", "description": "Follow the account and screenshot",
     "reward": 1500, "task_type": TaskType.FOLLOW, "is_advanced": False},
    {"title": "Like 5 Recent Posts", "description": "Like the last 5 posts from @targetaccount",
     "reward": 1000, "task_type": TaskType.LIKE, "is_advanced": False},
    {"title": "Share Story", "description": "Share the brand post to your story",
     "reward": 2500, "task_type": TaskType.SHARE, "is_advanced": False},
    {"title": "Premium Follow Campaign", "description": "Follow 10 premium brand accounts",
     "reward": 15000, "task_type": TaskType.FOLLOW, "is_advanced": True},
    {"title": "Reel Engagement", "description": "Like, comment and share brand reels",
     "reward": 20000, "task_type": TaskType.CUSTOM, "is_advanced": True},
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore:
    """Volatile store for all EarnHub records, guarded by one re-entrant lock."""

    def __init__(self, seed_defaults: bool = True) -> None:
        self._lock = threading.RLock()
        self._tables: Dict[Type[Record], Dict[str, Record]] = {kind: {} for kind in ENTITY_TYPES}
        if seed_defaults:
            self._seed()

    def _seed(self) -> None:
        for key, value in DEFAULT_SETTINGS.items():
            self.set_setting(key, value)
        for task in DEFAULT_TASKS:
            self.create(Task, is_active=True, **task)
        logger.info("Seeded %d default tasks and %d settings", len(DEFAULT_TASKS), len(DEFAULT_SETTINGS))

    @contextmanager
    def atomic(self) -> Iterator["MemoryStore"]:
        with self._lock:
            yield self

    def _table(self, kind: Type[R]) -> Dict[str, R]:
        try:
            return self._tables[kind]
        except KeyError:
            raise TypeError(f"{kind.__name__} is not a stored entity") from None

    # ------------------------------------------------------------------
    # Generic CRUD
    # ------------------------------------------------------------------

    def create(self, kind: Type[R], **fields) -> R:
        with self._lock:
            if kind is User:
                handle = fields.get("instagram_handle")
                if self.get_user_by_handle(handle) is not None:
                    raise DuplicateRecord(f"User with handle '{handle}' already exists")
            fields["id"] = str(uuid.uuid4())
            if kind.timestamp_field:
                fields.setdefault(kind.timestamp_field, utcnow())
            record = kind(**fields)
            self._table(kind)[record.id] = record
            return record

    def get(self, kind: Type[R], record_id: str) -> Optional[R]:
        with self._lock:
            return self._table(kind).get(record_id)

    def list(self, kind: Type[R], where: Optional[Callable[[R], bool]] = None) -> List[R]:
        with self._lock:
            records = list(self._table(kind).values())
        if where is None:
            return records
        return [r for r in records if where(r)]

    def update(self, kind: Type[R], record_id: str, **changes) -> Optional[R]:
        """Merge ``changes`` into a record. Returns None if it does not exist."""
        changes.pop("id", None)
        with self._lock:
            table = self._table(kind)
            current = table.get(record_id)
            if current is None:
                return None
            updated = current.model_copy(update=changes)
            table[record_id] = updated
            return updated

    def compare_and_set(self, kind: Type[R], record_id: str, field: str, expected, **changes) -> Optional[R]:
        """Apply ``changes`` only if ``record.field`` still equals ``expected``.

        Returns None for a missing record and raises InvalidTransition when
        the record has moved on.
        """
        with self._lock:
            current = self.get(kind, record_id)
            if current is None:
                return None
            actual = getattr(current, field)
            if actual != expected:
                raise InvalidTransition(kind.__name__, record_id, getattr(actual, "value", actual))
            return self.update(kind, record_id, **changes)

    def delete(self, kind: Type[R], record_id: str) -> bool:
        with self._lock:
            return self._table(kind).pop(record_id, None) is not None

    # ------------------------------------------------------------------
    # Entity specific lookups
    # ------------------------------------------------------------------

    def get_user_by_handle(self, handle: str) -> Optional[User]:
        with self._lock:
            for user in self._table(User).values():
                if same_handle(user.instagram_handle, handle):
                    return user
        return None

    def list_tasks(self, advanced: Optional[bool] = None) -> List[Task]:
        return self.list(
            Task,
            where=lambda t: t.is_active and (advanced is None or t.is_advanced == advanced),
        )

    def delete_task(self, task_id: str) -> bool:
        return self.delete(Task, task_id)

    def get_setting(self, key: str) -> Optional[Setting]:
        return next(iter(self.list(Setting, where=lambda s: s.key == key)), None)

    def set_setting(self, key: str, value: str) -> Setting:
        with self._lock:
            existing = self.get_setting(key)
            if existing is not None:
                return self.update(Setting, existing.id, value=value)
            return self.create(Setting, key=key, value=value)

    def list_settings(self) -> List[Setting]:
        return self.list(Setting)
