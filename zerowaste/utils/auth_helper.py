import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from sqlmodel import Session

from zerowaste.config import get_settings
from zerowaste.db.db import get_session
from zerowaste.models.user import User
from zerowaste.repositories.users import UserRepository


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(public_id: str, role: str, expires_minutes: Optional[int] = None) -> str:
    """Tokens are issued by the identity service; this mints compatible ones for seeding and tests."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expiry = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": public_id,
        "role": role,
        "iat": now,
        "exp": expiry,
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def get_current_user_required(token: HTTPAuthorizationCredentials = Depends(bearer_scheme)):
    if not token:
        raise HTTPException(status_code=401, detail="No token provided")

    try:
        return decode_token(token.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def get_db_user(session: Session, current_user) -> User:
    user = UserRepository(session).find_by_public_id(current_user["sub"])

    if not user or not user.is_active:
        logger.warning("Token subject %s has no active user", current_user.get("sub"))
        raise HTTPException(status_code=401, detail="Invalid token")

    return user


def get_principal(
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_required),
) -> User:
    return get_db_user(session, current_user)


def require_role(role: str):
    def dependency(user: User = Depends(get_principal)) -> User:
        if user.role != role:
            raise HTTPException(status_code=403, detail=f"Access denied. Required role: {role}")
        return user

    return dependency


require_donor = require_role("donor")
require_ngo = require_role("ngo")
