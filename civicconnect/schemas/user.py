"""Pydantic schemas for User registration, profile and admin management."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

_VALID_ROLES = {"citizen", "staff", "admin"}


def _clean_optional(v: str | None, limit: int) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if len(v) > limit:
        raise ValueError(f"Must not exceed {limit} characters")
    return v or None


class UserCreate(BaseModel):
    display_name: str | None = None
    photo_url: str | None = None

    @field_validator("display_name")
    @classmethod
    def _name(cls, v: str | None) -> str | None:
        return _clean_optional(v, 200)

    @field_validator("photo_url")
    @classmethod
    def _photo(cls, v: str | None) -> str | None:
        return _clean_optional(v, 500)


class ProfileUpdate(UserCreate):
    pass


class UserRead(BaseModel):
    id: int
    email: str
    display_name: str | None
    photo_url: str | None
    role: str
    region: str | None
    district: str | None
    is_blocked: bool
    is_premium: bool
    created_at: datetime | None

    model_config = {"from_attributes": True}


class AdminUserUpdate(BaseModel):
    role: str | None = None
    is_blocked: bool | None = None
    region: str | None = None
    district: str | None = None
    display_name: str | None = None

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        if v is not None and v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v

    @field_validator("region", "district")
    @classmethod
    def _area(cls, v: str | None) -> str | None:
        return _clean_optional(v, 100)

    @field_validator("display_name")
    @classmethod
    def _display_name(cls, v: str | None) -> str | None:
        return _clean_optional(v, 200)
