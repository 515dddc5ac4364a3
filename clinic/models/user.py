from typing import Optional
from datetime import date, datetime, timezone
from sqlmodel import SQLModel, Field


ROLE_CLIENT = "client"
ROLE_ADMIN = "admin"


class UserBase(SQLModel):
    full_name: str
    email: str = Field(index=True, unique=True)
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None


class User(UserBase, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    password_hash: str

    role: str = Field(default=ROLE_CLIENT, index=True)  # "client" | "admin"
    is_active: bool = True

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def public(self) -> dict:
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "date_of_birth": self.date_of_birth,
            "gender": self.gender,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": self.created_at,
        }


class UserCreate(SQLModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None


class UserLogin(SQLModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserUpdate(SQLModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None


class PasswordChange(SQLModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class PasswordForgot(SQLModel):
    email: Optional[str] = None


class PasswordReset(SQLModel):
    user_id: Optional[int] = None
    email: Optional[str] = None
    new_password: Optional[str] = None
