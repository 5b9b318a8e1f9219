"""Admin review of pending requests and the side effects of approving them."""

import logging
from typing import Callable, Dict, Type

from .database import MemoryStore
from .errors import InsufficientBalance, InvalidTransition, NotFoundError
from .models import (
    InstagramBindingRequest,
    Record,
    RequestStatus,
    ReviewAction,
    SupportRequest,
    SupportStatus,
    Task,
    TaskSubmission,
    User,
    VerificationRequest,
    WithdrawalRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_SIGNUP_BONUS = 500


class ApprovalEngine:
    """Applies admin decisions to pending requests."""

    def __init__(self, store: MemoryStore, signup_bonus: int = DEFAULT_SIGNUP_BONUS) -> None:
        self.store = store
        self.signup_bonus = signup_bonus
        self._effects: Dict[Type[Record], Callable[[Record], None]] = {
            VerificationRequest: self._approve_verification,
            TaskSubmission: self._approve_submission,
            InstagramBindingRequest: self._approve_binding,
            WithdrawalRequest: self._approve_withdrawal,
        }

    def review(self, kind: Type[Record], request_id: str, action: ReviewAction) -> Record:
        action = ReviewAction(action)
        with self.store.atomic():
            request = self.store.get(kind, request_id)
            if request is None:
                raise NotFoundError(f"{kind.__name__} not found")
            # Guard first so a repeated approval never reaches the side effects.
            if request.status != RequestStatus.PENDING:
                raise InvalidTransition(kind.__name__, request_id, request.status.value)
            if action is ReviewAction.APPROVE:
                self._effects[kind](request)
                target = RequestStatus.APPROVED
            else:
                target = RequestStatus.REJECTED
            updated = self.store.compare_and_set(
                kind, request_id, "status", RequestStatus.PENDING, status=target,
            )
        logger.info("%s %s %s", kind.__name__, request_id, target.value)
        return updated

    def respond_support(self, request_id: str) -> SupportRequest:
        with self.store.atomic():
            updated = self.store.compare_and_set(
                SupportRequest, request_id, "status", SupportStatus.PENDING,
                status=SupportStatus.RESPONDED,
            )
        if updated is None:
            raise NotFoundError("SupportRequest not found")
        logger.info("SupportRequest %s responded", request_id)
        return updated

    def approve(self, kind: Type[Record], request_id: str) -> Record:
        return self.review(kind, request_id, ReviewAction.APPROVE)

    def reject(self, kind: Type[Record], request_id: str) -> Record:
        return self.review(kind, request_id, ReviewAction.REJECT)

    def _require_user(self, user_id: str) -> User:
        user = self.store.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    # ------------------------------------------------------------------
    # Approval side effects
    # ------------------------------------------------------------------

    def _approve_verification(self, request: VerificationRequest) -> None:
        existing = self.store.get_user_by_handle(request.instagram_handle)
        if existing is not None:
            if not existing.is_verified:
                self.store.update(User, existing.id, is_verified=True)
            logger.info("Handle %s already has user %s", request.instagram_handle, existing.id)
            return
        user = self.store.create(
            User,
            instagram_handle=request.instagram_handle,
            is_verified=True,
            balance=self.signup_bonus,
            completed_tasks=0,
            has_advanced_access=False,
            is_instagram_bound=False,
        )
        logger.info("Created user %s for handle %s", user.id, user.instagram_handle)

    def _approve_submission(self, submission: TaskSubmission) -> None:
        user = self._require_user(submission.user_id)
        task = self.store.get(Task, submission.task_id)
        if task is None:
            raise NotFoundError(f"Task {submission.task_id} not found")
        completed = user.completed_tasks + 1
        self.store.update(
            User,
            user.id,
            balance=user.balance + task.reward,
            completed_tasks=completed,
            has_advanced_access=user.has_advanced_access or completed >= 1,
        )
        self.store.update(TaskSubmission, submission.id, reward=task.reward)

    def _approve_binding(self, request: InstagramBindingRequest) -> None:
        user = self._require_user(request.user_id)
        self.store.update(User, user.id, is_instagram_bound=True)

    def _approve_withdrawal(self, request: WithdrawalRequest) -> None:
        user = self._require_user(request.user_id)
        if user.balance < request.amount:
            raise InsufficientBalance(
                f"User balance {user.balance} is below the requested {request.amount}"
            )
        self.store.update(User, user.id, balance=user.balance - request.amount)
