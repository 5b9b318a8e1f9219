import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends

from ..database import MemoryStore
from ..deps import get_notifier, get_store
from ..errors import BusinessRuleError, ForbiddenError, NotFoundError
from ..models import SubmissionCreate, Task, TaskSubmission
from ..notifier import AdminNotifier
from .users import load_verified_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("", response_model=List[Task])
def get_tasks(advanced: bool = False, store: MemoryStore = Depends(get_store)):
    return store.list_tasks(advanced=advanced)


@router.post("/{task_id}/submit", response_model=TaskSubmission)
def submit_task(
    task_id: str,
    payload: SubmissionCreate,
    background_tasks: BackgroundTasks,
    store: MemoryStore = Depends(get_store),
    notifier: AdminNotifier = Depends(get_notifier),
):
    user = load_verified_user(store, payload.user_id)

    task = store.get(Task, task_id)
    if not task:
        raise NotFoundError("Task not found")
    if not task.is_active:
        raise BusinessRuleError("Task is not active")
    if task.is_advanced and not (user.has_advanced_access and user.is_instagram_bound):
        raise ForbiddenError("Advanced tasks require advanced access and a bound account")

    submission = store.create(
        TaskSubmission,
        user_id=user.id,
        task_id=task.id,
        screenshot_url=payload.screenshot_url,
    )
    logger.info("User %s submitted task %s", user.id, task.id)
    background_tasks.add_task(notifier.notify, submission)
    return submission
