"""Pydantic v2 request/response schemas for guest endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class GuestCreate(BaseModel):
    """Schema for creating a new guest."""

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    nationality: str | None = Field(None, max_length=100)


class GuestResponse(BaseModel):
    """Public guest information returned by the API."""

    id: uuid.UUID
    first_name: str
    last_name: str
    full_name: str
    email: str | None = None
    phone: str | None = None
    nationality: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GuestListResponse(BaseModel):
    """Paginated list of guests."""

    items: list[GuestResponse]
    total: int
