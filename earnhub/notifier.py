import logging
from datetime import datetime
from typing import Optional

from telegram import Bot

from .models import (
    InstagramBindingRequest,
    SupportRequest,
    TaskSubmission,
    VerificationRequest,
    WithdrawalRequest,
)

logger = logging.getLogger(__name__)


def format_amount(subunits: int) -> str:
    return f"₹{subunits // 100}.{subunits % 100:02d}"


def describe(record) -> str:
    """Admin-facing summary of a newly created pending request."""
    if isinstance(record, VerificationRequest):
        lines = ["🆕 New Verification Request", f"📸 Handle: @{record.instagram_handle}"]
    elif isinstance(record, TaskSubmission):
        lines = ["📋 New Task Submission", f"👤 User ID: {record.user_id}", f"🧩 Task ID: {record.task_id}"]
    elif isinstance(record, InstagramBindingRequest):
        lines = ["🔗 New Binding Request", f"👤 User ID: {record.user_id}", f"📸 Username: @{record.username}"]
    elif isinstance(record, WithdrawalRequest):
        lines = [
            "💰 New Withdrawal Request",
            f"👤 User ID: {record.user_id}",
            f"💸 Amount: {format_amount(record.amount)}",
            f"🏦 Method: {record.type.value}",
        ]
    elif isinstance(record, SupportRequest):
        lines = ["✉️ New Support Request", f"📧 Email: {record.email}"]
    else:
        raise TypeError(f"Cannot describe {type(record).__name__}")
    lines.append(f"🆔 {record.id}")
    lines.append(f"⏰ Time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    return "\n".join(lines)


class AdminNotifier:
    """Sends a Telegram message to the admin chat for every new pending request.

    Disabled when no bot token or admin chat id is configured. Delivery
    failures are logged and never reach the caller.
    """

    def __init__(self, token: Optional[str] = None, admin_chat_id: Optional[int] = None):
        self.token = token
        self.admin_chat_id = admin_chat_id

    @property
    def enabled(self) -> bool:
        return bool(self.token) and self.admin_chat_id is not None

    async def notify(self, record) -> bool:
        if not self.enabled:
            return False
        text = describe(record)
        try:
            async with Bot(self.token) as bot:
                await bot.send_message(chat_id=self.admin_chat_id, text=text)
        except Exception as e:
            logger.error(f"Error sending admin notification: {e}")
            return False
        return True
