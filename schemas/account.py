"""Pydantic schemas for accounts."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


def _clean_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("Name is required")
    return v


class AccountCreate(BaseModel):
    """Schema for creating an account."""

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)


class AccountUpdate(BaseModel):
    """Schema for renaming an account."""

    name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _clean_name(v)


class AccountResponse(BaseModel):
    """Schema for account API response."""

    id: str
    name: str
    position_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
