from typing import Optional
from sqlmodel import SQLModel, Field


class Service(SQLModel, table=True):
    __tablename__ = "services"

    id: Optional[int] = Field(default=None, primary_key=True)

    service_name: str
    description: Optional[str] = None
    duration_minutes: int = 60
    is_active: bool = True
