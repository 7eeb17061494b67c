import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from . import crud, models
from .config import Settings
from .deps import get_db, get_settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # unknown or malformed hash
        return False


def create_access_token(admin: models.AdminUser, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode = {"sub": str(admin.id), "email": admin.email, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def authenticate(db: Session, email: str, password: str) -> Optional[models.AdminUser]:
    admin = crud.get_admin_by_email(db, email)
    if not admin or not verify_password(password, admin.password_hash):
        return None
    return admin


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def _admin_from_token(token: str, db: Session, settings: Settings) -> models.AdminUser:
    payload = decode_token(token, settings)
    try:
        admin_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")
    admin = crud.get_admin(db, admin_id)
    if not admin:
        raise HTTPException(status_code=401, detail="Admin not found")
    return admin


# Dependencies

def get_current_admin(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> models.AdminUser:
    token = _bearer(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return _admin_from_token(token, db, settings)


def get_optional_admin(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[models.AdminUser]:
    """Admin identity for public routes; a missing or bad token means anonymous."""
    token = _bearer(authorization)
    if not token:
        return None
    try:
        return _admin_from_token(token, db, settings)
    except HTTPException as e:
        logger.debug("[Auth] ignoring token on public route: %s", e.detail)
        return None
