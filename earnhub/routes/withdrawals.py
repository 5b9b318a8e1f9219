import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from ..config import Config
from ..database import MemoryStore
from ..deps import get_config, get_notifier, get_store
from ..errors import BusinessRuleError, InsufficientBalance
from ..models import RequestStatus, WithdrawalCreate, WithdrawalRequest, WithdrawalType
from ..notifier import AdminNotifier, format_amount
from .users import load_verified_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["withdrawals"])

GIFT_CARD_NAMES = {
    WithdrawalType.AMAZON: "Amazon Gift Card",
    WithdrawalType.FLIPKART: "Flipkart Gift Card",
    WithdrawalType.GOOGLE_PLAY: "Google Play Gift Card",
}


def reserved_amount(store: MemoryStore, user_id: str) -> int:
    """Sum of the user's withdrawals still waiting for review."""
    pending = store.list(
        WithdrawalRequest,
        where=lambda w: w.user_id == user_id and w.status == RequestStatus.PENDING,
    )
    return sum(w.amount for w in pending)


@router.post("/withdraw", response_model=WithdrawalRequest)
def request_withdrawal(
    payload: WithdrawalCreate,
    background_tasks: BackgroundTasks,
    store: MemoryStore = Depends(get_store),
    config: Config = Depends(get_config),
    notifier: AdminNotifier = Depends(get_notifier),
):
    if payload.amount < config.min_withdrawal:
        raise BusinessRuleError(f"Minimum withdrawal is {format_amount(config.min_withdrawal)}")

    with store.atomic():
        user = load_verified_user(store, payload.user_id)
        available = user.balance - reserved_amount(store, user.id)
        if payload.amount > available:
            raise InsufficientBalance("Insufficient balance")

        withdrawal = store.create(
            WithdrawalRequest,
            user_id=user.id,
            type=WithdrawalType(payload.type),
            amount=payload.amount,
            details=payload.details,
        )

    logger.info("User %s requested %s withdrawal of %d", user.id, withdrawal.type.value, withdrawal.amount)
    background_tasks.add_task(notifier.notify, withdrawal)
    return withdrawal


@router.get("/withdraw/methods")
def get_withdrawal_methods(
    store: MemoryStore = Depends(get_store),
    config: Config = Depends(get_config),
):
    upi_message = store.get_setting("upiMessage")
    methods = [{"id": WithdrawalType.UPI.value, "name": "UPI", "minAmount": config.min_withdrawal}]
    methods.extend(
        {"id": kind.value, "name": name, "minAmount": config.min_withdrawal}
        for kind, name in GIFT_CARD_NAMES.items()
    )
    return {
        "methods": methods,
        "upiMessage": upi_message.value if upi_message else None,
    }
