"""Pydantic schemas for staff applications."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, field_validator

_PHONE_RE = re.compile(r"^\+?[0-9 ()-]{6,30}$")


class StaffApplicationCreate(BaseModel):
    name: str
    region: str
    district: str
    phone: str | None = None

    @field_validator("name", "region", "district")
    @classmethod
    def _required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be empty")
        if len(v) > 100:
            raise ValueError("Must not exceed 100 characters")
        return v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if v and not _PHONE_RE.match(v):
            raise ValueError("Invalid phone number")
        return v or None


class ApplicationReview(BaseModel):
    decision: Literal["Accepted", "Rejected"]
    note: str | None = None

    @field_validator("note")
    @classmethod
    def _note(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > 900:
            raise ValueError("Note must not exceed 900 characters")
        return v or None


class ApplicationEventRead(BaseModel):
    seq: int
    status: str
    message: str
    actor_email: str
    actor_role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class StaffApplicationRead(BaseModel):
    id: int
    email: str
    name: str
    phone: str | None
    region: str
    district: str
    status: str
    created_at: datetime | None
    timeline: list[ApplicationEventRead]

    model_config = {"from_attributes": True}
