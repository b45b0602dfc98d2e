from typing import Iterator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .auth import SessionClaims, TokenError, verify_token
from .config import Settings
from .errors import Forbidden, Unauthorized
from .log import get_logger
from .uploads import ReceiptStore

logger = get_logger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# Dependency to get DB session per request

def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_receipt_store(request: Request) -> ReceiptStore:
    return request.app.state.receipt_store


def get_current_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> SessionClaims:
    """Authenticate a request from its ``Authorization: Bearer <token>`` header."""
    scheme, _, token = (authorization or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        logger.warning(
            "Rejected request without bearer token",
            extra={"method": request.method, "path": request.url.path},
        )
        raise Unauthorized("Unauthorized: No token provided.")

    try:
        identity = verify_token(token, settings.jwt_secret)
    except TokenError as e:
        logger.warning(
            "Rejected token",
            extra={"method": request.method, "path": request.url.path, "reason": e.reason},
        )
        raise Unauthorized(f"Unauthorized: {e.reason}.")
    return identity


def require_admin(identity: SessionClaims = Depends(get_current_identity)) -> SessionClaims:
    if not identity.is_admin:
        raise Forbidden("Forbidden: Admins only.")
    return identity
