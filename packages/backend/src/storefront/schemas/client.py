"""Pydantic schemas for store clients."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class ClientCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: Optional[date] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)


class ClientUpdate(ClientCreate):
    """Full replacement. The id travels in the body."""
    id: int


class ClientRead(BaseModel):
    id: int
    first_name: str
    last_name: str
    birth_date: Optional[date] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    model_config = {"from_attributes": True}
