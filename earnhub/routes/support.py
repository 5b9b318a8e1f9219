import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from ..database import MemoryStore
from ..deps import get_notifier, get_store
from ..models import SupportCreate, SupportRequest
from ..notifier import AdminNotifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/support", tags=["support"])


@router.post("", response_model=SupportRequest)
def create_support_request(
    payload: SupportCreate,
    background_tasks: BackgroundTasks,
    store: MemoryStore = Depends(get_store),
    notifier: AdminNotifier = Depends(get_notifier),
):
    request = store.create(SupportRequest, email=payload.email, message=payload.message)
    logger.info("Support request %s from %s", request.id, request.email)
    background_tasks.add_task(notifier.notify, request)
    return request
