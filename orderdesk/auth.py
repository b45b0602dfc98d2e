from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

# Use pbkdf2_sha256 as default to avoid bcrypt 72-byte limitation in some envs
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
DEFAULT_TTL = timedelta(hours=8)


class TokenError(Exception):
    reason = "invalid token"


class InvalidSignature(TokenError):
    reason = "invalid signature"


class TokenExpired(TokenError):
    reason = "token expired"


class MalformedToken(TokenError):
    reason = "malformed token"


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried inside a session token."""

    user_id: int
    name: str
    role: str
    phone: Optional[str] = None
    user_class: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "name": self.name,
            "role": self.role,
            "phone": self.phone,
            "user_class": self.user_class,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SessionClaims":
        user_id = payload.get("userId")
        role = payload.get("role")
        if user_id is None or role is None:
            raise MalformedToken("claim set is missing userId or role")
        # bool is an int subclass
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise MalformedToken("userId claim must be an integer")
        if not isinstance(role, str):
            raise MalformedToken("role claim must be a string")
        exp = payload.get("exp")
        return cls(
            user_id=user_id,
            name=payload.get("name") or "",
            role=role,
            phone=payload.get("phone"),
            user_class=payload.get("user_class"),
            expires_at=datetime.fromtimestamp(exp, timezone.utc) if isinstance(exp, (int, float)) else None,
        )


def issue_token(claims: SessionClaims, secret: str, ttl: timedelta = DEFAULT_TTL, now: Optional[datetime] = None) -> str:
    if not secret:
        raise ValueError("signing secret must not be empty")
    now = now or datetime.now(timezone.utc)
    payload = claims.to_payload()
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + ttl).timestamp())
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str) -> SessionClaims:
    """Decode ``token`` and return its claims.

    Raises ``InvalidSignature``, ``TokenExpired`` or ``MalformedToken``.
    """
    if not token:
        raise MalformedToken("empty token")
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"require": ["exp"]})
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired(str(e)) from e
    except jwt.InvalidSignatureError as e:
        raise InvalidSignature(str(e)) from e
    except jwt.PyJWTError as e:
        raise MalformedToken(str(e)) from e
    return SessionClaims.from_payload(payload)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        # unrecognised hash format
        return False


def dummy_verify() -> None:
    """Spend the time of a real verification; used when no user matched."""
    pwd_context.dummy_verify()
