import logging
from datetime import date, datetime, time, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy import Date, DateTime, Time
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from clinic.core.errors import ConflictError, NotFoundError, ValidationError
from clinic.core.filters import QueryBuilder, fetch_all
from clinic.core.security import TokenClaims, get_current_admin, get_current_claims
from clinic.database import get_session
from clinic.models.appointment import (
    APPOINTMENT_STATUSES,
    LOCKED_STATUSES,
    Appointment,
    AppointmentCancel,
    AppointmentCreate,
    AppointmentStatusUpdate,
    AppointmentUpdate,
)
from clinic.models.service import Service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


SLOT_TAKEN = "This time slot is already booked. Please choose another time."

# result typing for raw appointment rows
APPOINTMENT_COLUMNS = {
    "appointment_date": Date,
    "appointment_time": Time,
    "created_at": DateTime,
    "updated_at": DateTime,
}

CLIENT_SELECT = """
    SELECT a.*, s.service_name, s.description, s.duration_minutes
    FROM appointments a
    JOIN services s ON a.service_id = s.id
"""

ADMIN_SELECT = """
    SELECT a.*, s.service_name, s.duration_minutes,
           u.full_name, u.email, u.phone
    FROM appointments a
    JOIN services s ON a.service_id = s.id
    JOIN users u ON a.user_id = u.id
"""


def _slot_taken(
    session: Session,
    day: date,
    at: time,
    exclude_id: Optional[int] = None,
) -> bool:
    query = select(Appointment).where(
        Appointment.appointment_date == day,
        Appointment.appointment_time == at,
        Appointment.status != "cancelled",
    )
    if exclude_id is not None:
        query = query.where(Appointment.id != exclude_id)

    return session.exec(query).first() is not None


def _commit_slot(session: Session, appt: Appointment):
    """Commit an appointment write; the partial unique index turns a
    concurrent double booking into an IntegrityError."""
    session.add(appt)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(SLOT_TAKEN)
    session.refresh(appt)


def appointment_details(session: Session, appointment_id: int) -> Optional[Dict]:
    builder = QueryBuilder(ADMIN_SELECT + " WHERE a.id = :p1", [appointment_id])
    rows = fetch_all(session, builder, **APPOINTMENT_COLUMNS)
    return rows[0] if rows else None


def set_appointment_status(session: Session, appointment_id: int, new_status: Optional[str]) -> Dict:
    """Admin status change: any status may move to any other status."""
    if new_status not in APPOINTMENT_STATUSES:
        raise ValidationError("Invalid status")

    appt = session.get(Appointment, appointment_id)
    if not appt:
        raise NotFoundError("Appointment not found")

    previous = appt.status
    appt.status = new_status
    appt.updated_at = datetime.now(timezone.utc)
    _commit_slot(session, appt)

    logger.info("Appointment %s status %s -> %s", appt.id, previous, new_status)
    return appointment_details(session, appt.id)


def _owned_appointment(session: Session, appointment_id: int, user_id: int) -> Appointment:
    appt = session.get(Appointment, appointment_id)
    if not appt or appt.user_id != user_id:
        raise NotFoundError("Appointment not found")
    return appt


# =========================
# BOOK APPOINTMENT
# =========================
@router.post("", status_code=status.HTTP_201_CREATED)
def create_appointment(
    payload: AppointmentCreate,
    session: Session = Depends(get_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    if not payload.service_id or not payload.appointment_date or not payload.appointment_time:
        raise ValidationError("Service, date, and time are required")

    service = session.get(Service, payload.service_id)
    if not service or not service.is_active:
        raise NotFoundError("Service not found")

    if _slot_taken(session, payload.appointment_date, payload.appointment_time):
        raise ConflictError(SLOT_TAKEN)

    appt = Appointment(
        user_id=claims.id,
        service_id=service.id,
        appointment_date=payload.appointment_date,
        appointment_time=payload.appointment_time,
        notes=payload.notes,
        status="pending",
    )
    _commit_slot(session, appt)

    logger.info("User %s booked appointment %s", claims.id, appt.id)

    return {
        "success": True,
        "message": "Appointment booked successfully",
        "appointment": appointment_details(session, appt.id),
    }


# =========================
# MY APPOINTMENTS
# =========================
@router.get("")
def list_my_appointments(
    status: Optional[str] = None,
    session: Session = Depends(get_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    builder = (
        QueryBuilder(CLIENT_SELECT + " WHERE a.user_id = :p1", [claims.id])
        .where("a.status", status)
        .order_by("a.appointment_date DESC, a.appointment_time DESC")
    )

    return {
        "success": True,
        "appointments": fetch_all(session, builder, **APPOINTMENT_COLUMNS),
    }


# =========================
# ALL APPOINTMENTS (ADMIN)
# =========================
@router.get("/admin/all")
def list_all_appointments(
    status: Optional[str] = None,
    date: Optional[date] = None,
    session: Session = Depends(get_session),
    admin: TokenClaims = Depends(get_current_admin),
):
    builder = (
        QueryBuilder(ADMIN_SELECT + " WHERE 1=1")
        .where("a.status", status)
        .where("a.appointment_date", date.isoformat() if date else None)
        .order_by("a.appointment_date ASC, a.appointment_time ASC")
    )

    return {
        "success": True,
        "appointments": fetch_all(session, builder, **APPOINTMENT_COLUMNS),
    }


@router.get("/{appointment_id}")
def get_appointment(
    appointment_id: int,
    session: Session = Depends(get_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    builder = QueryBuilder(
        CLIENT_SELECT + " WHERE a.id = :p1 AND a.user_id = :p2",
        [appointment_id, claims.id],
    )
    rows = fetch_all(session, builder, **APPOINTMENT_COLUMNS)
    if not rows:
        raise NotFoundError("Appointment not found")

    return {"success": True, "appointment": rows[0]}


# =========================
# EDIT (OWNER)
# =========================
@router.put("/{appointment_id}")
def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    session: Session = Depends(get_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    appt = _owned_appointment(session, appointment_id, claims.id)

    if appt.status in LOCKED_STATUSES:
        raise ValidationError("Cannot update completed or cancelled appointments")

    new_date = payload.appointment_date or appt.appointment_date
    new_time = payload.appointment_time or appt.appointment_time

    moved = (new_date, new_time) != (appt.appointment_date, appt.appointment_time)
    if moved and _slot_taken(session, new_date, new_time, exclude_id=appt.id):
        raise ConflictError(SLOT_TAKEN)

    appt.appointment_date = new_date
    appt.appointment_time = new_time
    if payload.notes is not None:
        appt.notes = payload.notes
    appt.updated_at = datetime.now(timezone.utc)
    _commit_slot(session, appt)

    return {
        "success": True,
        "message": "Appointment updated successfully",
        "appointment": appointment_details(session, appt.id),
    }


# =========================
# CANCEL (OWNER)
# =========================
@router.delete("/{appointment_id}")
def cancel_appointment(
    appointment_id: int,
    payload: Optional[AppointmentCancel] = Body(default=None),
    session: Session = Depends(get_session),
    claims: TokenClaims = Depends(get_current_claims),
):
    appt = _owned_appointment(session, appointment_id, claims.id)

    if appt.status == "completed":
        raise ValidationError("Cannot cancel a completed appointment")

    if appt.status != "cancelled":
        appt.status = "cancelled"
        appt.cancellation_reason = payload.cancellation_reason if payload else None
        appt.updated_at = datetime.now(timezone.utc)
        session.add(appt)
        session.commit()
        session.refresh(appt)
        logger.info("User %s cancelled appointment %s", claims.id, appt.id)

    return {
        "success": True,
        "message": "Appointment cancelled successfully",
        "appointment": appointment_details(session, appt.id),
    }


# =========================
# STATUS (ADMIN)
# =========================
@router.patch("/{appointment_id}/status")
def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    session: Session = Depends(get_session),
    admin: TokenClaims = Depends(get_current_admin),
):
    return {
        "success": True,
        "message": "Appointment status updated",
        "appointment": set_appointment_status(session, appointment_id, payload.status),
    }
