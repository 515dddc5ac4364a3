import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlmodel import Session

from clinic.core.config import settings
from clinic.core.errors import AuthenticationError, AuthorizationError, NotFoundError
from clinic.database import get_session
from clinic.models.user import ROLE_ADMIN, User


logger = logging.getLogger(__name__)


# =========================
# PASSWORD HASHING
# =========================

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # unknown or corrupt hash format
        return False


# =========================
# JWT TOKEN
# =========================

class TokenClaims(BaseModel):
    id: int
    email: str
    role: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    subject_id: int,
    email: str,
    role: str,
    now: Optional[datetime] = None,
) -> str:
    """Sign a token for the user; it expires ACCESS_TOKEN_EXPIRE_DAYS after `now`."""
    issued = now or _utcnow()
    expire = issued + timedelta(days=settings.access_token_expire_days)

    to_encode = {
        "sub": str(subject_id),
        "id": subject_id,
        "email": email,
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int(expire.timestamp()),
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, now: Optional[datetime] = None) -> Optional[TokenClaims]:
    """Return the token's claims, or None if it is malformed, forged or expired.

    A token is valid strictly before its `exp` instant.
    """
    if not token:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"verify_exp": False},
        )
    except JWTError:
        return None

    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        return None

    current = (now or _utcnow()).timestamp()
    if current >= exp:
        return None

    try:
        return TokenClaims(id=payload["id"], email=payload["email"], role=payload["role"])
    except (KeyError, ValueError):
        return None


# =========================
# AUTHENTICATED REQUEST
# =========================

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenClaims:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access denied. No token provided.")

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        logger.warning("Rejected invalid or expired token")
        raise AuthorizationError("Invalid or expired token")

    return claims


def get_current_user(
    claims: TokenClaims = Depends(get_current_claims),
    session: Session = Depends(get_session),
) -> User:
    user = session.get(User, claims.id)
    if user is None:
        raise NotFoundError("User not found")

    return user


# =========================
# ADMIN ONLY
# =========================

def get_current_admin(
    claims: TokenClaims = Depends(get_current_claims),
    session: Session = Depends(get_session),
) -> TokenClaims:

    if claims.role != ROLE_ADMIN:
        logger.warning("Non-admin user %s denied admin route", claims.id)
        raise AuthorizationError("Access denied. Admin only.")

    if settings.admin_recheck_role:
        user = session.get(User, claims.id)
        if user is None or not user.is_active or user.role != ROLE_ADMIN:
            logger.warning("Stale admin token for user %s rejected", claims.id)
            raise AuthorizationError("Access denied. Admin only.")

    return claims
