import logging

from sqlmodel import Session, SQLModel, create_engine

from clinic.core.config import settings


logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False):
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,  # drop dead connections before use
        pool_recycle=3600,
        pool_size=5,
        max_overflow=10,
    )


# one pool per process, shared by every request
engine = build_engine(settings.database_url, echo=settings.sql_echo)


def create_db_and_tables():
    # registers the tables on SQLModel.metadata
    from clinic.models import appointment, inquiry, service, user  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ready")


def dispose_engine():
    engine.dispose()
    logger.info("Database connection pool closed")


def get_session():
    with Session(engine) as session:
        yield session
