import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from clinic.core.config import settings
from clinic.core.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from clinic.core.security import (
    TokenClaims,
    create_access_token,
    get_current_admin,
    get_current_user,
    get_password_hash,
    verify_password,
)
from clinic.database import get_session
from clinic.models.user import (
    ROLE_CLIENT,
    PasswordChange,
    PasswordForgot,
    PasswordReset,
    User,
    UserCreate,
    UserLogin,
    UserUpdate,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_new_password(password) -> str:
    if not password or len(password) < settings.min_password_length:
        raise ValidationError(
            f"Password must be at least {settings.min_password_length} characters"
        )
    return password


def _find_by_email(session: Session, email: str):
    return session.exec(
        select(User).where(User.email == _normalize_email(email))
    ).first()


def _session_payload(user: User) -> dict:
    token = create_access_token(user.id, user.email, user.role)
    return {
        "token": token,
        "user": {
            "id": user.id,
            "full_name": user.full_name,
            "email": user.email,
            "phone": user.phone,
            "role": user.role,
        },
    }


# =========================
# REGISTER
# =========================
@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, session: Session = Depends(get_session)):

    if not payload.full_name or not payload.email or not payload.password:
        raise ValidationError("Please provide name, email, and password")

    if not payload.full_name.strip():
        raise ValidationError("Name cannot be empty")

    if "@" not in payload.email:
        raise ValidationError("Please provide a valid email")

    _check_new_password(payload.password)

    if _find_by_email(session, payload.email):
        raise ConflictError("Email already registered")

    user = User(
        full_name=payload.full_name.strip(),
        email=_normalize_email(payload.email),
        phone=payload.phone,
        password_hash=get_password_hash(payload.password),
        date_of_birth=payload.date_of_birth,
        gender=payload.gender,
        role=ROLE_CLIENT,
    )

    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # lost a race against another registration for the same email
        session.rollback()
        raise ConflictError("Email already registered")
    session.refresh(user)

    logger.info("Registered client %s", user.id)

    return {
        "success": True,
        "message": "Registration successful",
        **_session_payload(user),
    }


# =========================
# LOGIN
# =========================
@router.post("/login")
def login(payload: UserLogin, session: Session = Depends(get_session)):

    if not payload.email or not payload.password:
        raise ValidationError("Please provide email and password")

    user = _find_by_email(session, payload.email)

    if not user:
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise AuthorizationError("Account is deactivated. Please contact support.")

    if not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for user %s", user.id)
        raise AuthenticationError("Invalid email or password")

    logger.info("User %s logged in", user.id)

    return {
        "success": True,
        "message": "Login successful",
        **_session_payload(user),
    }


# =========================
# PROFILE
# =========================
@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return {"success": True, "user": current_user.public()}


@router.put("/profile")
def update_profile(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_none=True)

    if "full_name" in changes and not changes["full_name"].strip():
        raise ValidationError("Name cannot be empty")

    for field, value in changes.items():
        setattr(current_user, field, value)
    current_user.updated_at = datetime.now(timezone.utc)

    session.add(current_user)
    session.commit()
    session.refresh(current_user)

    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": current_user.public(),
    }


@router.post("/change-password")
def change_password(
    payload: PasswordChange,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if not payload.current_password or not payload.new_password:
        raise ValidationError("Please provide current and new password")

    if not verify_password(payload.current_password, current_user.password_hash):
        raise ValidationError("Current password is incorrect")

    _check_new_password(payload.new_password)

    current_user.password_hash = get_password_hash(payload.new_password)
    current_user.updated_at = datetime.now(timezone.utc)
    session.add(current_user)
    session.commit()

    logger.info("User %s changed password", current_user.id)

    return {"success": True, "message": "Password changed successfully"}


# =========================
# PASSWORD RESET
# =========================
@router.post("/forgot-password")
def forgot_password(payload: PasswordForgot, session: Session = Depends(get_session)):

    if not payload.email:
        raise ValidationError("Please provide your email")

    user = _find_by_email(session, payload.email)
    if user and user.is_active:
        # no mail transport; the admin resets the password on request
        logger.info("Password reset requested for user %s", user.id)

    # same answer whether or not the account exists
    return {
        "success": True,
        "message": "If an account exists for this email, the clinic will contact you to reset your password.",
    }


@router.post("/admin/reset-password")
def admin_reset_password(
    payload: PasswordReset,
    session: Session = Depends(get_session),
    admin: TokenClaims = Depends(get_current_admin),
):
    if payload.user_id is None and not payload.email:
        raise ValidationError("Please provide user_id or email")

    _check_new_password(payload.new_password)

    if payload.user_id is not None:
        user = session.get(User, payload.user_id)
    else:
        user = _find_by_email(session, payload.email)

    if not user:
        raise NotFoundError("User not found")

    user.password_hash = get_password_hash(payload.new_password)
    user.updated_at = datetime.now(timezone.utc)
    session.add(user)
    session.commit()

    logger.info("Admin %s reset password of user %s", admin.id, user.id)

    return {"success": True, "message": "Password reset successfully"}
