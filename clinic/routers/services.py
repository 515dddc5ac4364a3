from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from clinic.core.errors import NotFoundError
from clinic.database import get_session
from clinic.models.service import Service


router = APIRouter(
    prefix="/api/services",
    tags=["services"]
)


@router.get("")
def list_services(session: Session = Depends(get_session)):
    services = session.exec(
        select(Service).where(Service.is_active == True).order_by(Service.id)  # noqa: E712
    ).all()

    return {"success": True, "services": services}


@router.get("/{service_id}")
def get_service(service_id: int, session: Session = Depends(get_session)):
    service = session.get(Service, service_id)
    if not service or not service.is_active:
        raise NotFoundError("Service not found")

    return {"success": True, "service": service}
