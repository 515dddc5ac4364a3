import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlmodel import Session

from clinic.core.config import settings
from clinic.core.errors import UnexpectedError, register_exception_handlers
from clinic.database import create_db_and_tables, dispose_engine, get_session
from clinic.routers import admin, appointments, auth, contact, services


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting clinic API")
    create_db_and_tables()

    yield

    dispose_engine()
    logger.info("Clinic API stopped")


app = FastAPI(title="Clinic Booking API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(appointments.router)
app.include_router(admin.router)
app.include_router(services.router)
app.include_router(contact.router)


@app.get("/")
def root():
    return {"message": "Clinic booking API is running"}


@app.get("/api/health")
def health(session: Session = Depends(get_session)):
    try:
        session.exec(text("SELECT 1"))
    except Exception:
        logger.exception("DB health check failed")
        raise UnexpectedError("Database not reachable")

    return {"status": "ok"}
