"""Request and response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, StringConstraints, field_validator, model_validator

from crmdash.auth.passwords import MAX_PASSWORD_BYTES

MIN_PASSWORD_LENGTH = 8

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _check_password(v: str) -> str:
    if len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: NonBlank
    password: Annotated[str, StringConstraints(min_length=1)]


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    organisation_id: int | None = None

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        return _check_password(v)


class JoinRequest(BaseModel):
    token: NonBlank
    password: str

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        return _check_password(v)


class UserOut(BaseModel):
    id: int
    email: str
    role: str
    organisation_id: int | None
    organisation_name: str | None = None
    team_member_id: int | None = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Organisations
# ---------------------------------------------------------------------------


class OrganisationCreate(BaseModel):
    organisation_name: NonBlank


class OrganisationUpdate(BaseModel):
    organisation_name: NonBlank


class OrganisationOut(BaseModel):
    id: int
    organisation_name: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Contacts / properties
# ---------------------------------------------------------------------------


class ContactCreate(BaseModel):
    name: NonBlank
    email: EmailStr | None = None
    phone: str | None = None
    organisation_id: int | None = None


class ContactUpdate(BaseModel):
    name: NonBlank | None = None
    email: EmailStr | None = None
    phone: str | None = None


class ContactOut(BaseModel):
    id: int
    name: str
    email: str | None
    phone: str | None
    organisation_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PropertyCreate(BaseModel):
    name: NonBlank
    address: str | None = None
    owner_id: int | None = None
    status: str = "Available"
    organisation_id: int | None = None


class PropertyUpdate(BaseModel):
    name: NonBlank | None = None
    address: str | None = None
    owner_id: int | None = None
    status: str | None = None


class PropertyOut(BaseModel):
    id: int
    name: str
    address: str | None
    owner_id: int | None
    status: str | None
    organisation_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Deals / notes
# ---------------------------------------------------------------------------


class DealCreate(BaseModel):
    name: NonBlank
    property_id: int
    assigned_to: int | None = None
    status: str = "New"
    value: float | None = None
    initial_note: str | None = None


class DealUpdate(BaseModel):
    name: NonBlank | None = None
    property_id: int | None = None
    assigned_to: int | None = None
    status: str | None = None
    value: float | None = None


class DealOut(BaseModel):
    id: int
    name: str
    property_id: int
    assigned_to: int | None
    status: str
    value: float | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NoteCreate(BaseModel):
    comments: NonBlank


class NoteOut(BaseModel):
    id: int
    deal_id: int
    timestamp: datetime
    comments: str | None
    team_member_id: int | None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Team / invitations
# ---------------------------------------------------------------------------


class TeamMemberCreate(BaseModel):
    team_member_name: NonBlank
    team_member_email_id: EmailStr
    organisation_id: int | None = None


class TeamMemberUpdate(BaseModel):
    team_member_name: NonBlank | None = None
    team_member_email_id: EmailStr | None = None


class TeamMemberOut(BaseModel):
    id: int
    organisation_id: int
    team_member_name: str
    team_member_email_id: str
    user_id: int | None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class InviteRequest(BaseModel):
    """Invite by existing team member id, or by name + email to create one."""

    team_member_id: int | None = None
    team_member_name: NonBlank | None = None
    email: EmailStr | None = None
    role: Literal["member", "admin"] = "member"

    @model_validator(mode="after")
    def member_or_details(self) -> InviteRequest:
        if self.team_member_id is None and (self.team_member_name is None or self.email is None):
            raise ValueError("Provide team_member_id, or team_member_name and email")
        return self


class InvitationOut(BaseModel):
    id: int
    email: str
    team_member_id: int
    organisation_id: int
    role: str
    status: str
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Tasks / meetings / documents
# ---------------------------------------------------------------------------


class TaskCreate(BaseModel):
    title: NonBlank
    deal_id: int
    description: str | None = None
    due_date: datetime | None = None
    status: str = "Pending"
    assigned_to: int | None = None


class TaskUpdate(BaseModel):
    title: NonBlank | None = None
    description: str | None = None
    due_date: datetime | None = None
    status: str | None = None
    assigned_to: int | None = None


class TaskOut(BaseModel):
    id: int
    title: str
    description: str | None
    due_date: datetime | None
    status: str
    assigned_to: int | None
    deal_id: int
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class MeetingCreate(BaseModel):
    scheduled_at: datetime
    title: str | None = None
    description: str | None = None
    location: str | None = None
    team_member_id: int | None = None


class MeetingOut(BaseModel):
    id: int
    deal_id: int
    scheduled_at: datetime
    title: str | None
    description: str | None
    location: str | None
    team_member_id: int | None

    model_config = ConfigDict(from_attributes=True)


class MeetingNoteCreate(BaseModel):
    content: NonBlank


class MeetingNoteOut(BaseModel):
    id: int
    meeting_id: int
    timestamp: datetime
    content: str
    team_member_id: int | None

    model_config = ConfigDict(from_attributes=True)


class DocumentCreate(BaseModel):
    title: NonBlank
    file_url: NonBlank
    file_type: str | None = None
    deal_id: int | None = None
    property_id: int | None = None

    @model_validator(mode="after")
    def has_parent(self) -> DocumentCreate:
        if self.deal_id is None and self.property_id is None:
            raise ValueError("deal_id or property_id is required")
        return self


class DocumentOut(BaseModel):
    id: int
    title: str
    file_url: str
    file_type: str | None
    uploaded_by: int | None
    deal_id: int | None
    property_id: int | None
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)
