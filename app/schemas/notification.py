# app/schemas/notification.py
import json
from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Any

from app.schemas.common import PaginatedResponse


class Notification(BaseModel):
    id: int
    type: str
    title: str
    message: str | None
    created_at: datetime

    is_read: bool
    related_entity_id: str | None  # ID связанной сущности (продажи, перевода, заявки)
    data: dict[str, Any] | None = None

    @field_validator("data", mode="before")
    @classmethod
    def parse_data(cls, v):
        # В БД хранится JSON-строкой
        if isinstance(v, str):
            return json.loads(v)
        return v

    class Config:
        from_attributes = True


class PaginatedNotifications(PaginatedResponse[Notification]):
    pass
