"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# Identity / tenancy models
# ---------------------------------------------------------------------------


class OrganisationModel(TimestampMixin, Base):
    __tablename__ = "organisations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organisation_name = Column(Text, unique=True, nullable=False)


class UserModel(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(32), nullable=False, default="admin")
    organisation_id = Column(
        Integer, ForeignKey("organisations.id", ondelete="SET NULL"), nullable=True, index=True
    )


class TeamMemberModel(TimestampMixin, Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organisation_id = Column(
        Integer, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    team_member_name = Column(Text, nullable=False)
    team_member_email_id = Column(String(320), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), unique=True, nullable=True)


class InvitationModel(TimestampMixin, Base):
    __tablename__ = "invitations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), nullable=False)
    token = Column(Text, unique=True, nullable=False)
    team_member_id = Column(
        Integer, ForeignKey("team_members.id", ondelete="CASCADE"), nullable=False
    )
    organisation_id = Column(
        Integer, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invited_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    role = Column(String(32), nullable=False, default="member")
    status = Column(String(32), nullable=False, default="pending")
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# CRM models
# ---------------------------------------------------------------------------


class ContactModel(TimestampMixin, Base):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    email = Column(String(320), nullable=True)
    phone = Column(String(64), nullable=True)
    organisation_id = Column(
        Integer, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )


class PropertyModel(TimestampMixin, Base):
    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    address = Column(Text, nullable=True)
    owner_id = Column(Integer, ForeignKey("contacts.id"), nullable=True, index=True)
    organisation_id = Column(
        Integer, ForeignKey("organisations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(String(64), nullable=True, default="Available")


class DealModel(TimestampMixin, Base):
    __tablename__ = "deals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    assigned_to = Column(Integer, ForeignKey("team_members.id"), nullable=True, index=True)
    status = Column(String(64), nullable=False, default="New")
    value = Column(Float, nullable=True)


class NoteModel(TimestampMixin, Base):
    """A discussion entry on a deal."""

    __tablename__ = "deal_notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    deal_id = Column(Integer, ForeignKey("deals.id"), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    comments = Column(Text, nullable=True)
    team_member_id = Column(Integer, ForeignKey("team_members.id"), nullable=True)


class TaskModel(TimestampMixin, Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(64), nullable=False, default="Pending")
    assigned_to = Column(Integer, ForeignKey("team_members.id"), nullable=True, index=True)
    deal_id = Column(Integer, ForeignKey("deals.id"), nullable=False, index=True)


class MeetingModel(TimestampMixin, Base):
    __tablename__ = "meetings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    deal_id = Column(Integer, ForeignKey("deals.id"), nullable=False, index=True)
    team_member_id = Column(Integer, ForeignKey("team_members.id"), nullable=True)
    title = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    location = Column(Text, nullable=True)


class MeetingNoteModel(TimestampMixin, Base):
    __tablename__ = "meeting_notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    meeting_id = Column(
        Integer, ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    content = Column(Text, nullable=False)
    team_member_id = Column(Integer, ForeignKey("team_members.id"), nullable=True)


class DocumentModel(TimestampMixin, Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    file_url = Column(Text, nullable=False)
    file_type = Column(String(128), nullable=True)
    uploaded_by = Column(Integer, ForeignKey("team_members.id"), nullable=True)
    deal_id = Column(Integer, ForeignKey("deals.id"), nullable=True, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=True, index=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
