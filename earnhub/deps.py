from fastapi import Request

from .approvals import ApprovalEngine
from .config import Config
from .database import MemoryStore
from .notifier import AdminNotifier


def get_store(request: Request) -> MemoryStore:
    return request.app.state.store


def get_engine(request: Request) -> ApprovalEngine:
    return request.app.state.approvals


def get_notifier(request: Request) -> AdminNotifier:
    return request.app.state.notifier


def get_config(request: Request) -> Config:
    return request.app.state.config
