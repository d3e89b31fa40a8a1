"""JWT handling for candidate identity.

Registration and credentials live in the identity service; the engine only
verifies the bearer tokens it issues. ``create_access_token`` exists for
operators and tests.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from examhall.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY

ROLE_CANDIDATE = "candidate"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as asserted by the identity service."""

    candidate_id: str
    role: str = ROLE_CANDIDATE

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def create_access_token(
    candidate_id: str,
    role: str = ROLE_CANDIDATE,
    expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
) -> str:
    """Create a JWT access token."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = {
        "sub": candidate_id,
        "role": role,
        "exp": expire,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Principal | None:
    """Verify and decode a JWT token.

    Returns:
        The principal or None if the token is invalid.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

    subject = payload.get("sub")
    if not subject:
        return None
    return Principal(candidate_id=str(subject), role=payload.get("role", ROLE_CANDIDATE))
