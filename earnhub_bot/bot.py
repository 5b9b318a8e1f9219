import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import requests
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes

from . import config

# Enable logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)

# queue key -> (listing path, review path template, title)
QUEUES: Dict[str, Tuple[str, str, str]] = {
    "verify": ("verification-requests", "verify/{id}", "Verification"),
    "bind": ("binding-requests", "bind/{id}", "Binding"),
    "task": ("task-submissions", "tasks/submissions/{id}", "Task Submission"),
    "withdraw": ("withdrawal-requests", "withdrawals/{id}", "Withdrawal"),
}

ACTIONS = ("approve", "reject")

# Keeps a single /pending reply readable.
MAX_ITEMS_PER_QUEUE = 10


class BackendClient:
    """Thin wrapper around the EarnHub admin HTTP API."""

    def __init__(self, base_url: str, admin_password: str, timeout: float = 10,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["X-Admin-Password"] = admin_password

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/admin/{path}"

    def pending(self, queue: str) -> List[dict]:
        listing, _, _ = QUEUES[queue]
        response = self.session.get(self._url(listing), timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def review(self, queue: str, request_id: str, action: str) -> dict:
        if action not in ACTIONS:
            raise ValueError(f"Unknown action: {action}")
        _, review_path, _ = QUEUES[queue]
        response = self.session.post(
            self._url(review_path.format(id=request_id)),
            json={"action": action},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def stats(self) -> dict:
        response = self.session.get(self._url("stats"), timeout=self.timeout)
        response.raise_for_status()
        return response.json()


def callback_data(action: str, queue: str, request_id: str) -> str:
    return f"{action}:{queue}:{request_id}"


def parse_callback(data: str) -> Tuple[str, str, str]:
    parts = data.split(":", 2)
    if len(parts) != 3:
        raise ValueError(f"Malformed callback data: {data!r}")
    action, queue, request_id = parts
    if action not in ACTIONS or queue not in QUEUES or not request_id:
        raise ValueError(f"Malformed callback data: {data!r}")
    return action, queue, request_id


def format_rupees(subunits: int) -> str:
    return f"₹{subunits / 100:.2f}"


def format_item(queue: str, item: dict) -> str:
    title = QUEUES[queue][2]
    lines = [f"📋 {title}", f"🆔 {item['id']}"]
    if queue == "verify":
        lines.append(f"📸 Handle: @{item['instagramHandle']}")
    elif queue == "bind":
        lines.append(f"👤 User ID: {item['userId']}")
        lines.append(f"📸 Username: @{item['username']}")
        if item.get("accessCode"):
            lines.append(f"🔑 Code: {item['accessCode']}")
    elif queue == "task":
        lines.append(f"👤 User ID: {item['userId']}")
        lines.append(f"🧩 Task ID: {item['taskId']}")
        if item.get("screenshotUrl"):
            lines.append(f"🖼 Screenshot: {item['screenshotUrl']}")
    elif queue == "withdraw":
        lines.append(f"👤 User ID: {item['userId']}")
        lines.append(f"💸 Amount: {format_rupees(item['amount'])}")
        lines.append(f"🏦 Method: {item['type']}")
    return "\n".join(lines)


def error_detail(error: requests.HTTPError) -> str:
    try:
        return str(error.response.json().get("detail", "failed"))
    except (AttributeError, ValueError):
        return "failed"


def review_keyboard(queue: str, request_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton("✅ Approve", callback_data=callback_data("approve", queue, request_id)),
         InlineKeyboardButton("❌ Reject", callback_data=callback_data("reject", queue, request_id))]
    ])


def get_client(context: ContextTypes.DEFAULT_TYPE) -> BackendClient:
    client = context.bot_data.get("client")
    if client is None:
        client = BackendClient(config.BACKEND_URL, config.ADMIN_PASSWORD, config.REQUEST_TIMEOUT)
        context.bot_data["client"] = client
    return client


def is_admin(update: Update) -> bool:
    return update.effective_user is not None and update.effective_user.id == config.TELEGRAM_ADMIN_ID


# Start command
async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_admin(update):
        await update.message.reply_text("❌ You are not authorized to use this bot.")
        return

    await update.message.reply_text(
        f"👑 Welcome back, Admin {update.effective_user.first_name}!\n\n"
        "/pending - review waiting requests\n"
        "/stats - queue sizes and totals"
    )


async def stats(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_admin(update):
        await update.message.reply_text("❌ You are not authorized to use admin commands.")
        return

    try:
        data = await asyncio.to_thread(get_client(context).stats)
    except requests.RequestException as e:
        logger.error(f"Error loading stats: {e}")
        await update.message.reply_text("Error loading stats.")
        return

    await update.message.reply_text(
        "📊 EarnHub Stats\n\n"
        f"👥 Verified users: {data['verifiedUsers']} / {data['totalUsers']}\n"
        f"🧩 Active tasks: {data['activeTasks']}\n"
        f"⏳ Verifications: {data['pendingVerifications']}\n"
        f"🔗 Bindings: {data['pendingBindings']}\n"
        f"📋 Submissions: {data['pendingSubmissions']}\n"
        f"💸 Withdrawals: {data['pendingWithdrawals']}\n"
        f"✉️ Support: {data['pendingSupport']}\n"
        f"💰 Total paid: {format_rupees(data['totalPaid'])}"
    )


async def pending(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not is_admin(update):
        await update.message.reply_text("❌ You are not authorized to use admin commands.")
        return

    client = get_client(context)
    found = 0
    for queue in QUEUES:
        try:
            items = await asyncio.to_thread(client.pending, queue)
        except requests.RequestException as e:
            logger.error(f"Error loading {queue} queue: {e}")
            await update.message.reply_text(f"Error loading {QUEUES[queue][2]} queue.")
            continue

        for item in items[:MAX_ITEMS_PER_QUEUE]:
            found += 1
            await update.message.reply_text(
                format_item(queue, item),
                reply_markup=review_keyboard(queue, item["id"]),
            )

    if not found:
        await update.message.reply_text("✅ Nothing is waiting for review.")


# Callback query handler
async def button_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query

    if query.from_user.id != config.TELEGRAM_ADMIN_ID:
        await query.answer("❌ You are not authorized!", show_alert=True)
        return
    await query.answer()

    try:
        action, queue, request_id = parse_callback(query.data)
    except ValueError as e:
        logger.warning(str(e))
        return

    try:
        result = await asyncio.to_thread(get_client(context).review, queue, request_id, action)
    except requests.HTTPError as e:
        detail = error_detail(e)
        logger.error(f"Review of {queue} {request_id} failed: {detail}")
        await query.edit_message_text(f"⚠️ {QUEUES[queue][2]} {request_id}: {detail}")
        return
    except requests.RequestException as e:
        logger.error(f"Error reaching backend: {e}")
        await query.edit_message_text("Error reaching backend, try again.")
        return

    icon = "✅" if result["status"] == "approved" else "❌"
    await query.edit_message_text(f"{icon} {QUEUES[queue][2]} {request_id} {result['status']}")


def build_application() -> Application:
    application = Application.builder().token(config.TELEGRAM_BOT_TOKEN).build()

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("pending", pending))
    application.add_handler(CommandHandler("stats", stats))
    application.add_handler(CallbackQueryHandler(button_callback))
    return application


# Main function
def main():
    if not config.TELEGRAM_BOT_TOKEN:
        raise SystemExit("TELEGRAM_BOT_TOKEN is not set")
    application = build_application()
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == '__main__':
    main()
