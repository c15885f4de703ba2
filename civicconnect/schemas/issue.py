"""Pydantic schemas for issues, timeline entries and lifecycle requests."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

from civicconnect.models.enums import IssueStatus


def _required(v: str, field: str, limit: int) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} must not be empty")
    if len(v) > limit:
        raise ValueError(f"{field} must not exceed {limit} characters")
    return v


def _optional(v: str | None, limit: int) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if len(v) > limit:
        raise ValueError(f"Must not exceed {limit} characters")
    return v or None


# ── Create / edit ───────────────────────────────────────────────────
class IssueCreate(BaseModel):
    title: str
    description: str
    category: str
    region: str | None = None
    district: str
    location: str | None = None
    image_url: str | None = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _required(v, "Title", 200)

    @field_validator("description")
    @classmethod
    def _description(cls, v: str) -> str:
        return _required(v, "Description", 5000)

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        return _required(v, "Category", 100)

    @field_validator("district")
    @classmethod
    def _district(cls, v: str) -> str:
        # Stored as given (apart from surrounding whitespace): district matching is exact
        return _required(v, "District", 100)

    @field_validator("region")
    @classmethod
    def _region(cls, v: str | None) -> str | None:
        return _optional(v, 100)

    @field_validator("location")
    @classmethod
    def _location(cls, v: str | None) -> str | None:
        return _optional(v, 300)

    @field_validator("image_url")
    @classmethod
    def _image(cls, v: str | None) -> str | None:
        return _optional(v, 500)


class IssueUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    location: str | None = None
    image_url: str | None = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str | None) -> str | None:
        return None if v is None else _required(v, "Title", 200)

    @field_validator("description")
    @classmethod
    def _description(cls, v: str | None) -> str | None:
        return None if v is None else _required(v, "Description", 5000)

    @field_validator("category")
    @classmethod
    def _category(cls, v: str | None) -> str | None:
        return None if v is None else _required(v, "Category", 100)

    @field_validator("location")
    @classmethod
    def _location(cls, v: str | None) -> str | None:
        return _optional(v, 300)

    @field_validator("image_url")
    @classmethod
    def _image(cls, v: str | None) -> str | None:
        return _optional(v, 500)


class IssueCreated(BaseModel):
    success: bool = True
    message: str = "Issue created successfully"
    id: int


# ── Read ────────────────────────────────────────────────────────────
class TimelineEntryRead(BaseModel):
    seq: int
    status: str | None
    message: str
    actor_email: str
    actor_role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class IssueRead(BaseModel):
    id: int
    title: str
    description: str
    category: str
    region: str | None
    district: str
    location: str | None
    image_url: str | None
    owner_email: str
    status: str
    priority: str
    upvotes: int
    voter_emails: list[str]
    assigned_email: str | None
    assigned_name: str | None
    created_at: datetime | None
    updated_at: datetime | None
    timeline: list[TimelineEntryRead]

    model_config = {"from_attributes": True}


class StaffIssueRead(IssueRead):
    claimable: bool = False


# ── Lifecycle requests ──────────────────────────────────────────────
class StatusChangeRequest(BaseModel):
    status: IssueStatus
    note: str | None = None

    @field_validator("note")
    @classmethod
    def _note(cls, v: str | None) -> str | None:
        if v is not None and len(v) > 900:
            raise ValueError("Note must not exceed 900 characters")
        return v


class AssignRequest(BaseModel):
    staff_email: str
    staff_name: str | None = None

    @field_validator("staff_email")
    @classmethod
    def _email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("staff_name")
    @classmethod
    def _name(cls, v: str | None) -> str | None:
        return _optional(v, 200)


class StatusChangeResponse(BaseModel):
    success: bool = True
    id: int
    status: str
    assigned_email: str | None
    assigned_name: str | None
    timeline: list[TimelineEntryRead]

    model_config = {"from_attributes": True}


class UpvoteResponse(BaseModel):
    success: bool = True
    message: str = "Upvoted successfully"
    issue_id: int
    upvotes: int


class DeleteResponse(BaseModel):
    success: bool
    message: str
