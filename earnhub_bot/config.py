import os

# Telegram Bot Configuration
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_ADMIN_ID = int(os.getenv("TELEGRAM_ADMIN_ID", "0"))

# Backend API
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:5000")
REQUEST_TIMEOUT = float(os.getenv("BACKEND_TIMEOUT", "10"))

# Admin
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "12345678910admin")
