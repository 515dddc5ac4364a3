import logging

from sqlmodel import Session, select

from clinic.core.config import settings
from clinic.core.security import get_password_hash
from clinic.database import create_db_and_tables, engine
from clinic.models.service import Service
from clinic.models.user import ROLE_ADMIN, User


logger = logging.getLogger(__name__)


DEFAULT_SERVICES = [
    dict(service_name="Initial Consultation", description="First assessment and care plan", duration_minutes=60),
    dict(service_name="Follow-up Consultation", description="Progress review and plan adjustments", duration_minutes=30),
    dict(service_name="Nutrition Counselling", description="Diet planning and habit coaching", duration_minutes=45),
    dict(service_name="Online Consultation", description="Remote session by video call", duration_minutes=30),
]


def seed_services(session: Session) -> int:
    existing = session.exec(select(Service)).first()
    if existing:
        return 0

    session.add_all([Service(**cfg) for cfg in DEFAULT_SERVICES])
    return len(DEFAULT_SERVICES)


def seed_admin(session: Session) -> User:
    email = settings.admin_email.strip().lower()
    admin = session.exec(select(User).where(User.email == email)).first()
    if admin:
        logger.info("Admin %s already exists", email)
        return admin

    admin = User(
        full_name=settings.admin_name,
        email=email,
        phone=settings.admin_phone,
        password_hash=get_password_hash(settings.admin_password),
        role=ROLE_ADMIN,
    )
    session.add(admin)
    logger.info("Created admin %s; change the password after first login", email)
    return admin


def main():
    create_db_and_tables()

    with Session(engine) as session:
        created = seed_services(session)
        admin = seed_admin(session)
        session.commit()
        session.refresh(admin)

    logger.info("Seed done: %s services added, admin id %s", created, admin.id)


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    main()
