import logging
import time
from datetime import datetime
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .approvals import ApprovalEngine
from .config import Config
from .database import MemoryStore
from .errors import register_error_handlers
from .notifier import AdminNotifier
from .routes import routers
from .security import AdminGate

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(format=LOG_FORMAT, level=level)


def create_app(config: Optional[Config] = None, store: Optional[MemoryStore] = None) -> FastAPI:
    config = config or Config.from_env()
    if store is None:
        store = MemoryStore(seed_defaults=config.seed_default_tasks)

    app = FastAPI(title="EarnHub Backend", version=__version__)

    app.state.config = config
    app.state.store = store
    app.state.approvals = ApprovalEngine(store, signup_bonus=config.signup_bonus)
    app.state.admin_gate = AdminGate(config.admin_password, require_header=config.admin_require_header)
    app.state.notifier = AdminNotifier(config.telegram_bot_token, config.telegram_admin_id)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            elapsed = (time.perf_counter() - start) * 1000
            logger.info("%s %s %s in %dms", request.method, request.url.path, response.status_code, elapsed)
        return response

    register_error_handlers(app)

    @app.get("/")
    def read_root():
        return {"message": "EarnHub Backend API", "status": "running"}

    @app.get("/api/health")
    def health_check():
        return {"status": "healthy", "timestamp": datetime.now().isoformat()}

    for router in routers:
        app.include_router(router)

    return app


def main() -> None:
    config = Config.from_env()
    configure_logging(config.log_level)
    app = create_app(config)
    logger.info("Starting EarnHub on %s:%s", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
