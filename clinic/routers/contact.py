import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from clinic.core.errors import ValidationError
from clinic.database import get_session
from clinic.models.inquiry import Inquiry, InquiryCreate


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])


@router.post("")
def submit_inquiry(payload: InquiryCreate, session: Session = Depends(get_session)):

    if not payload.name or not payload.email or not payload.message:
        raise ValidationError("All fields are required")

    inquiry = Inquiry(
        name=payload.name.strip(),
        email=payload.email.strip(),
        message=payload.message,
    )

    session.add(inquiry)
    session.commit()
    session.refresh(inquiry)

    logger.info("Saved inquiry %s", inquiry.id)

    return {"success": True, "message": "Inquiry saved successfully"}
