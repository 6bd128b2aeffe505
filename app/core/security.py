from datetime import datetime, timedelta, timezone
from jose import jwt

from app.core.config import settings

ALGORITHM = "HS256"

def create_jwt(payload: dict, secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    data = payload.copy()
    data.update({"iat": int(now.timestamp()), "exp": int((now + expires_delta).timestamp())})
    return jwt.encode(data, secret, algorithm=ALGORITHM)

def decode_jwt(token: str, secret: str) -> dict:
    return jwt.decode(token, secret, algorithms=[ALGORITHM])

def issue_admin_token(sub: str, role: str, email: str | None = None) -> str:
    """Token carrying the claims AuthorizationService reads: sub, role and email."""
    claims = {"sub": sub, "role": role}
    if email:
        claims["email"] = email
    return create_jwt(claims, settings.ADMIN_JWT_SECRET, timedelta(minutes=settings.ADMIN_JWT_TTL_MINUTES))
