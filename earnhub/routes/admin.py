import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, Query

from ..approvals import ApprovalEngine
from ..database import MemoryStore
from ..deps import get_engine, get_store
from ..errors import BusinessRuleError, NotFoundError
from ..models import (
    AdminLogin,
    InstagramBindingRequest,
    RequestStatus,
    ReviewDecision,
    Setting,
    SettingUpsert,
    SupportRequest,
    SupportStatus,
    Task,
    TaskCreate,
    TaskSubmission,
    TaskUpdate,
    User,
    VerificationRequest,
    WithdrawalRequest,
)
from ..security import AdminGate, get_admin_gate, verify_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def is_pending(record) -> bool:
    return record.status in (RequestStatus.PENDING, SupportStatus.PENDING)


@router.post("/login")
def admin_login(payload: AdminLogin, gate: AdminGate = Depends(get_admin_gate)):
    gate.login(payload.password)
    return {"success": True}


@router.get("/stats")
def get_admin_stats(store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    users = store.list(User)
    paid = store.list(WithdrawalRequest, where=lambda w: w.status == RequestStatus.APPROVED)
    return {
        "totalUsers": len(users),
        "verifiedUsers": sum(1 for u in users if u.is_verified),
        "activeTasks": len(store.list_tasks()),
        "pendingVerifications": len(store.list(VerificationRequest, where=is_pending)),
        "pendingBindings": len(store.list(InstagramBindingRequest, where=is_pending)),
        "pendingSubmissions": len(store.list(TaskSubmission, where=is_pending)),
        "pendingWithdrawals": len(store.list(WithdrawalRequest, where=is_pending)),
        "pendingSupport": len(store.list(SupportRequest, where=is_pending)),
        "totalPaid": sum(w.amount for w in paid),
    }


@router.get("/users")
def get_all_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: MemoryStore = Depends(get_store),
    _: None = Depends(verify_admin),
):
    users = sorted(store.list(User), key=lambda u: u.created_at, reverse=True)
    offset = (page - 1) * limit
    total = len(users)
    return {
        "users": users[offset:offset + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


# Review queues

@router.get("/verification-requests", response_model=List[VerificationRequest])
def get_verification_requests(store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    return store.list(VerificationRequest, where=is_pending)


@router.get("/binding-requests", response_model=List[InstagramBindingRequest])
def get_binding_requests(store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    return store.list(InstagramBindingRequest, where=is_pending)


@router.get("/task-submissions", response_model=List[TaskSubmission])
def get_task_submissions(store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    return store.list(TaskSubmission, where=is_pending)


@router.get("/withdrawal-requests", response_model=List[WithdrawalRequest])
def get_withdrawal_requests(
    status: Literal["pending", "all"] = "pending",
    store: MemoryStore = Depends(get_store),
    _: None = Depends(verify_admin),
):
    if status == "all":
        return store.list(WithdrawalRequest)
    return store.list(WithdrawalRequest, where=is_pending)


@router.get("/support-requests", response_model=List[SupportRequest])
def get_support_requests(store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    return store.list(SupportRequest, where=is_pending)


# Review decisions

@router.post("/verify/{request_id}", response_model=VerificationRequest)
def review_verification(
    request_id: str,
    decision: ReviewDecision,
    engine: ApprovalEngine = Depends(get_engine),
    _: None = Depends(verify_admin),
):
    return engine.review(VerificationRequest, request_id, decision.action)


@router.post("/bind/{request_id}", response_model=InstagramBindingRequest)
def review_binding(
    request_id: str,
    decision: ReviewDecision,
    engine: ApprovalEngine = Depends(get_engine),
    _: None = Depends(verify_admin),
):
    return engine.review(InstagramBindingRequest, request_id, decision.action)


@router.post("/tasks/submissions/{submission_id}", response_model=TaskSubmission)
def review_submission(
    submission_id: str,
    decision: ReviewDecision,
    engine: ApprovalEngine = Depends(get_engine),
    _: None = Depends(verify_admin),
):
    return engine.review(TaskSubmission, submission_id, decision.action)


@router.post("/withdrawals/{withdrawal_id}", response_model=WithdrawalRequest)
def review_withdrawal(
    withdrawal_id: str,
    decision: ReviewDecision,
    engine: ApprovalEngine = Depends(get_engine),
    _: None = Depends(verify_admin),
):
    return engine.review(WithdrawalRequest, withdrawal_id, decision.action)


@router.post("/support/{request_id}", response_model=SupportRequest)
def respond_support(
    request_id: str,
    engine: ApprovalEngine = Depends(get_engine),
    _: None = Depends(verify_admin),
):
    return engine.respond_support(request_id)


# Task management

@router.get("/tasks", response_model=List[Task])
def get_all_tasks(store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    return store.list(Task)


@router.post("/tasks", response_model=Task)
def create_task(payload: TaskCreate, store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    task = store.create(Task, **payload.model_dump())
    logger.info("Created task %s (%s)", task.id, task.title)
    return task


@router.put("/tasks/{task_id}", response_model=Task)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    store: MemoryStore = Depends(get_store),
    _: None = Depends(verify_admin),
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise BusinessRuleError("No valid fields to update")

    task = store.update(Task, task_id, **changes)
    if not task:
        raise NotFoundError("Task not found")
    logger.info("Updated task %s: %s", task_id, sorted(changes))
    return task


@router.delete("/tasks/{task_id}")
def delete_task(task_id: str, store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    if not store.delete_task(task_id):
        raise NotFoundError("Task not found")
    logger.info("Deleted task %s", task_id)
    return {"success": True}


# Settings

@router.get("/settings", response_model=List[Setting])
def get_settings(store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    return store.list_settings()


@router.post("/settings", response_model=Setting)
def upsert_setting(payload: SettingUpsert, store: MemoryStore = Depends(get_store), _: None = Depends(verify_admin)):
    setting = store.set_setting(payload.key, payload.value)
    logger.info("Setting %s updated", setting.key)
    return setting
