import logging
from collections import Counter
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import Boolean, Date, DateTime, func
from sqlmodel import Session, select

from clinic.core.errors import NotFoundError, ValidationError
from clinic.core.filters import QueryBuilder, fetch_all
from clinic.core.security import TokenClaims, get_current_admin
from clinic.database import get_session
from clinic.models.appointment import APPOINTMENT_STATUSES, Appointment, AppointmentStatusUpdate
from clinic.models.inquiry import INQUIRY_STATUSES, Inquiry, InquiryStatusUpdate
from clinic.models.service import Service
from clinic.models.user import ROLE_CLIENT, User
from clinic.routers.appointments import (
    ADMIN_SELECT,
    APPOINTMENT_COLUMNS,
    CLIENT_SELECT,
    set_appointment_status,
)


logger = logging.getLogger(__name__)

# every route here is admin-only
router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(get_current_admin)],
)


UPCOMING_DAYS = 7

CLIENT_COLUMNS = {
    "date_of_birth": Date,
    "created_at": DateTime,
    "is_active": Boolean,
}


# =========================
# DASHBOARD
# =========================
@router.get("/stats")
def dashboard_stats(session: Session = Depends(get_session)):
    today = date.today()

    total_clients = session.exec(
        select(func.count()).select_from(User).where(User.role == ROLE_CLIENT)
    ).one()

    by_status = Counter(session.exec(select(Appointment.status)).all())

    today_count = session.exec(
        select(func.count()).select_from(Appointment).where(
            Appointment.appointment_date == today,
            Appointment.status != "cancelled",
        )
    ).one()

    upcoming_count = session.exec(
        select(func.count()).select_from(Appointment).where(
            Appointment.appointment_date >= today,
            Appointment.appointment_date <= today + timedelta(days=UPCOMING_DAYS),
            Appointment.status.not_in(("cancelled", "completed")),
        )
    ).one()

    # most booked services
    booking_count = func.count(Appointment.id).label("booking_count")
    popular = session.exec(
        select(Service.service_name, booking_count)
        .outerjoin(Appointment, Appointment.service_id == Service.id)
        .group_by(Service.id, Service.service_name)
        .order_by(booking_count.desc())
        .limit(5)
    ).all()

    recent = (
        QueryBuilder(ADMIN_SELECT + " WHERE 1=1")
        .order_by("a.created_at DESC")
        .limit(5)
    )

    return {
        "success": True,
        "stats": {
            "total_clients": total_clients,
            "total_appointments": sum(by_status.values()),
            **{f"{s}_appointments": by_status.get(s, 0) for s in APPOINTMENT_STATUSES},
            "today_appointments": today_count,
            "upcoming_appointments": upcoming_count,
            "popular_services": [
                {"service_name": name, "booking_count": count} for name, count in popular
            ],
            "recent_appointments": fetch_all(session, recent, **APPOINTMENT_COLUMNS),
        },
    }


# =========================
# APPOINTMENTS
# =========================
@router.get("/appointments")
def list_appointments(
    status: Optional[str] = None,
    date: Optional[date] = None,
    service_id: Optional[int] = None,
    search: Optional[str] = None,
    session: Session = Depends(get_session),
):
    builder = (
        QueryBuilder(ADMIN_SELECT + " WHERE 1=1")
        .where("a.status", status)
        .where("a.appointment_date", date.isoformat() if date else None)
        .where("a.service_id", service_id)
        .search(["u.full_name", "u.email"], search)
        .order_by("a.appointment_date DESC, a.appointment_time DESC")
    )
    appointments = fetch_all(session, builder, **APPOINTMENT_COLUMNS)

    return {"success": True, "appointments": appointments, "total": len(appointments)}


@router.patch("/appointments/{appointment_id}/status")
def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    session: Session = Depends(get_session),
):
    return {
        "success": True,
        "message": "Appointment status updated",
        "appointment": set_appointment_status(session, appointment_id, payload.status),
    }


# =========================
# CLIENTS
# =========================
@router.get("/clients")
def list_clients(search: Optional[str] = None, session: Session = Depends(get_session)):
    builder = (
        QueryBuilder(
            """
            SELECT u.id, u.full_name, u.email, u.phone, u.date_of_birth,
                   u.gender, u.created_at, u.is_active,
                   COUNT(a.id) AS total_appointments
            FROM users u
            LEFT JOIN appointments a ON u.id = a.user_id
            WHERE u.role = 'client'
            """
        )
        .search(["u.full_name", "u.email"], search)
        .group_by("u.id")
        .order_by("u.created_at DESC")
    )
    clients = fetch_all(session, builder, **CLIENT_COLUMNS)

    return {"success": True, "clients": clients, "total": len(clients)}


@router.get("/clients/{client_id}")
def get_client(client_id: int, session: Session = Depends(get_session)):
    client = session.get(User, client_id)
    if not client or client.role != ROLE_CLIENT:
        raise NotFoundError("Client not found")

    builder = (
        QueryBuilder(CLIENT_SELECT + " WHERE a.user_id = :p1", [client_id])
        .order_by("a.appointment_date DESC")
    )

    return {
        "success": True,
        "client": client.public(),
        "appointments": fetch_all(session, builder, **APPOINTMENT_COLUMNS),
    }


# =========================
# INQUIRIES
# =========================
@router.get("/inquiries")
def list_inquiries(status: Optional[str] = None, session: Session = Depends(get_session)):
    builder = (
        QueryBuilder("SELECT * FROM inquiries WHERE 1=1")
        .where("status", status)
        .order_by("created_at DESC")
    )
    inquiries = fetch_all(session, builder, created_at=DateTime)

    return {"success": True, "inquiries": inquiries, "total": len(inquiries)}


@router.patch("/inquiries/{inquiry_id}")
def update_inquiry_status(
    inquiry_id: int,
    payload: InquiryStatusUpdate,
    session: Session = Depends(get_session),
    admin: TokenClaims = Depends(get_current_admin),
):
    if payload.status not in INQUIRY_STATUSES:
        raise ValidationError("Invalid status")

    inquiry = session.get(Inquiry, inquiry_id)
    if not inquiry:
        raise NotFoundError("Inquiry not found")

    inquiry.status = payload.status
    session.add(inquiry)
    session.commit()
    session.refresh(inquiry)

    logger.info("Admin %s set inquiry %s to %s", admin.id, inquiry.id, inquiry.status)

    return {"success": True, "message": "Inquiry status updated", "inquiry": inquiry}
