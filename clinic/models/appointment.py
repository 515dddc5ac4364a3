from typing import Optional
from datetime import date, datetime, time, timezone
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field


APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled")

# client edits are refused in these statuses
LOCKED_STATUSES = ("completed", "cancelled")


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # one live appointment per (date, time); cancelled rows free the slot
        Index(
            "uq_appointments_active_slot",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="users.id", index=True)
    service_id: int = Field(foreign_key="services.id", index=True)

    appointment_date: date = Field(index=True)
    appointment_time: time

    status: str = Field(default="pending", index=True)
    # pending | confirmed | completed | cancelled

    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AppointmentCreate(SQLModel):
    service_id: Optional[int] = None
    appointment_date: Optional[date] = None
    appointment_time: Optional[time] = None
    notes: Optional[str] = None


class AppointmentUpdate(SQLModel):
    appointment_date: Optional[date] = None
    appointment_time: Optional[time] = None
    notes: Optional[str] = None


class AppointmentCancel(SQLModel):
    cancellation_reason: Optional[str] = None


class AppointmentStatusUpdate(SQLModel):
    status: Optional[str] = None
