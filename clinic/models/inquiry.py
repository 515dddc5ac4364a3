from typing import Optional
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


INQUIRY_STATUSES = ("new", "replied", "closed")


class Inquiry(SQLModel, table=True):
    __tablename__ = "inquiries"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    email: str
    message: str

    status: str = Field(default="new", index=True)
    # new | replied | closed

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)


class InquiryCreate(SQLModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None


class InquiryStatusUpdate(SQLModel):
    status: Optional[str] = None
