import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass(frozen=True)
class Config:
    # Admin
    admin_password: str = "12345678910admin"
    admin_require_header: bool = False

    # Money, all in paisa
    signup_bonus: int = 500
    min_withdrawal: int = 5000

    seed_default_tasks: bool = True

    # Telegram admin notifications
    telegram_bot_token: Optional[str] = None
    telegram_admin_id: Optional[int] = None

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Config":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            admin_password=os.getenv("ADMIN_PASSWORD", cls.admin_password),
            admin_require_header=_env_bool("ADMIN_REQUIRE_HEADER", False),
            signup_bonus=_env_int("SIGNUP_BONUS", cls.signup_bonus),
            min_withdrawal=_env_int("MIN_WITHDRAWAL", cls.min_withdrawal),
            seed_default_tasks=_env_bool("SEED_DEFAULT_TASKS", True),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
            telegram_admin_id=_env_int("TELEGRAM_ADMIN_ID", None),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            host=os.getenv("HOST", cls.host),
            port=_env_int("PORT", cls.port),
        )
