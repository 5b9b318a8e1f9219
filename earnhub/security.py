import logging
from typing import Optional

from fastapi import Depends, Request
from passlib.context import CryptContext

from .errors import AuthorizationError

logger = logging.getLogger(__name__)

# pbkdf2 keeps the admin secret hashed in memory without a native bcrypt build.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ADMIN_HEADER = "X-Admin-Password"


class AdminGate:
    """Single shared admin secret, held only as a hash."""

    def __init__(self, password: str, require_header: bool = False):
        self._hash = pwd_context.hash(password)
        self.require_header = require_header

    def check(self, password: Optional[str]) -> bool:
        if not password:
            return False
        return pwd_context.verify(password, self._hash)

    def login(self, password: str) -> None:
        if not self.check(password):
            logger.warning("Rejected admin login attempt")
            raise AuthorizationError("Invalid password")
        logger.info("Admin login succeeded")


def get_admin_gate(request: Request) -> AdminGate:
    return request.app.state.admin_gate


def verify_admin(request: Request, gate: AdminGate = Depends(get_admin_gate)) -> None:
    # Admin routes stay open unless the header check is switched on.
    if not gate.require_header:
        return
    if not gate.check(request.headers.get(ADMIN_HEADER)):
        raise AuthorizationError("Unauthorized")
