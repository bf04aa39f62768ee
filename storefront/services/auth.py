from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from storefront.core.config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_SECRET_KEY

ACCESS_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(
    owner_id: str,
    extra: Optional[Dict[str, Any]] = None,
    expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
) -> str:
    """Issues a token the way the auth backend does; used by tests and local tooling."""
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(owner_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=expires_minutes)).timestamp()),
    }
    if JWT_AUDIENCE:
        payload["aud"] = JWT_AUDIENCE
    if extra:
        payload.update(extra)
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Returns the verified payload or raises ValueError."""
    try:
        return jwt.decode(
            token,
            JWT_SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            options={"verify_aud": JWT_AUDIENCE is not None},
        )
    except JWTError as exc:
        raise ValueError("Invalid or expired token") from exc


def owner_id_from_payload(payload: Dict[str, Any]) -> Optional[str]:
    raw = payload.get("sub")
    if raw is None:
        return None
    owner_id = str(raw).strip()
    return owner_id or None
