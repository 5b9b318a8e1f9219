import pytest
from fastapi.testclient import TestClient

from earnhub.app import create_app
from earnhub.approvals import ApprovalEngine
from earnhub.config import Config
from earnhub.database import MemoryStore
from earnhub.models import Task, TaskType, User

ADMIN_PASSWORD = "test-admin-secret"


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(seed_defaults=False)


@pytest.fixture
def engine(store: MemoryStore) -> ApprovalEngine:
    return ApprovalEngine(store, signup_bonus=500)


@pytest.fixture
def config() -> Config:
    return Config(admin_password=ADMIN_PASSWORD, seed_default_tasks=False)


@pytest.fixture
def app(config: Config, store: MemoryStore):
    return create_app(config, store=store)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(store: MemoryStore):
    def _make(handle: str = "alice", **fields) -> User:
        values = {"is_verified": True, "balance": 500}
        values.update(fields)
        return store.create(User, instagram_handle=handle, **values)
    return _make


@pytest.fixture
def make_task(store: MemoryStore):
    def _make(reward: int = 1000, **fields) -> Task:
        values = {
            "title": "Follow @brand",
            "description": "Follow and screenshot",
            "task_type": TaskType.FOLLOW,
            "is_advanced": False,
            "is_active": True,
        }
        values.update(fields)
        return store.create(Task, reward=reward, **values)
    return _make
