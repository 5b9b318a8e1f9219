import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from ..database import MemoryStore
from ..deps import get_notifier, get_store
from ..errors import DuplicateRecord, ForbiddenError, NotFoundError
from ..models import (
    BindingCreate,
    InstagramBindingRequest,
    RequestStatus,
    TaskSubmission,
    User,
    VerificationCreate,
    VerificationRequest,
    WithdrawalRequest,
    normalize_handle,
    same_handle,
)
from ..notifier import AdminNotifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])


def load_user(store: MemoryStore, user_id: str) -> User:
    user = store.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def load_verified_user(store: MemoryStore, user_id: str) -> User:
    user = load_user(store, user_id)
    if not user.is_verified:
        raise ForbiddenError("User is not verified")
    return user


@router.get("/stats")
def get_stats(store: MemoryStore = Depends(get_store)):
    verified = store.list(User, where=lambda u: u.is_verified)
    paid = store.list(WithdrawalRequest, where=lambda w: w.status == RequestStatus.APPROVED)
    return {
        "activeUsers": len(verified),
        "totalPaid": sum(w.amount for w in paid),
    }


@router.post("/verify")
def submit_verification(
    payload: VerificationCreate,
    background_tasks: BackgroundTasks,
    store: MemoryStore = Depends(get_store),
    notifier: AdminNotifier = Depends(get_notifier),
):
    handle = payload.instagram_handle
    with store.atomic():
        user = store.get_user_by_handle(handle)
        if user and user.is_verified:
            return {"status": "already_verified", "user": user}

        pending = store.list(
            VerificationRequest,
            where=lambda r: same_handle(r.instagram_handle, handle) and r.status == RequestStatus.PENDING,
        )
        if pending:
            return {"status": "pending", "request": pending[0]}

        request = store.create(VerificationRequest, instagram_handle=handle)

    logger.info("Verification requested for @%s", handle)
    background_tasks.add_task(notifier.notify, request)
    return {"status": "pending", "request": request}


@router.get("/verify/{handle}")
def get_verification_status(handle: str, store: MemoryStore = Depends(get_store)):
    user = store.get_user_by_handle(normalize_handle(handle))
    if user and user.is_verified:
        return {"status": "verified", "user": user}
    return {"status": "pending"}


@router.get("/user/{handle}", response_model=User)
def get_user(handle: str, store: MemoryStore = Depends(get_store)):
    user = store.get_user_by_handle(normalize_handle(handle))
    if not user or not user.is_verified:
        raise NotFoundError("User not found or not verified")
    return user


@router.get("/user/{user_id}/submissions")
def get_user_submissions(user_id: str, store: MemoryStore = Depends(get_store)):
    load_user(store, user_id)
    submissions = store.list(TaskSubmission, where=lambda s: s.user_id == user_id)
    return sorted(submissions, key=lambda s: s.submitted_at, reverse=True)


@router.get("/user/{user_id}/withdrawals")
def get_user_withdrawals(user_id: str, store: MemoryStore = Depends(get_store)):
    load_user(store, user_id)
    withdrawals = store.list(WithdrawalRequest, where=lambda w: w.user_id == user_id)
    return sorted(withdrawals, key=lambda w: w.created_at, reverse=True)


@router.post("/bind-instagram")
def bind_instagram(
    payload: BindingCreate,
    background_tasks: BackgroundTasks,
    store: MemoryStore = Depends(get_store),
    notifier: AdminNotifier = Depends(get_notifier),
):
    user = load_verified_user(store, payload.user_id)
    if user.is_instagram_bound:
        raise DuplicateRecord("Account is already bound")

    request = store.create(
        InstagramBindingRequest,
        user_id=user.id,
        username=normalize_handle(payload.username),
        access_code=payload.access_code,
    )
    logger.info("Binding requested by user %s", user.id)
    background_tasks.add_task(notifier.notify, request)
    return {"status": "pending", "request": request}
