"""FastAPI dependency injection for database sessions and repositories."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crmdash.db.engine import Database
from crmdash.db.repositories.auth import AuthRepo
from crmdash.db.repositories.contacts import ContactsRepo
from crmdash.db.repositories.deals import DealsRepo
from crmdash.db.repositories.documents import DocumentsRepo
from crmdash.db.repositories.meetings import MeetingsRepo
from crmdash.db.repositories.organisations import OrganisationsRepo
from crmdash.db.repositories.properties import PropertiesRepo
from crmdash.db.repositories.tasks import TasksRepo
from crmdash.db.repositories.team import TeamRepo


def get_database(request: Request) -> Database:
    return request.app.state.db


async def get_session(db: Annotated[Database, Depends(get_database)]) -> AsyncIterator[AsyncSession]:
    """Yield an async DB session, auto-closing on exit."""
    async with db.session_factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_auth_repo(session: SessionDep) -> AuthRepo:
    return AuthRepo(session)


def get_organisations_repo(session: SessionDep) -> OrganisationsRepo:
    return OrganisationsRepo(session)


def get_contacts_repo(session: SessionDep) -> ContactsRepo:
    return ContactsRepo(session)


def get_properties_repo(session: SessionDep) -> PropertiesRepo:
    return PropertiesRepo(session)


def get_deals_repo(session: SessionDep) -> DealsRepo:
    return DealsRepo(session)


def get_team_repo(session: SessionDep) -> TeamRepo:
    return TeamRepo(session)


def get_tasks_repo(session: SessionDep) -> TasksRepo:
    return TasksRepo(session)


def get_meetings_repo(session: SessionDep) -> MeetingsRepo:
    return MeetingsRepo(session)


def get_documents_repo(session: SessionDep) -> DocumentsRepo:
    return DocumentsRepo(session)


AuthRepoDep = Annotated[AuthRepo, Depends(get_auth_repo)]
OrganisationsRepoDep = Annotated[OrganisationsRepo, Depends(get_organisations_repo)]
ContactsRepoDep = Annotated[ContactsRepo, Depends(get_contacts_repo)]
PropertiesRepoDep = Annotated[PropertiesRepo, Depends(get_properties_repo)]
DealsRepoDep = Annotated[DealsRepo, Depends(get_deals_repo)]
TeamRepoDep = Annotated[TeamRepo, Depends(get_team_repo)]
TasksRepoDep = Annotated[TasksRepo, Depends(get_tasks_repo)]
MeetingsRepoDep = Annotated[MeetingsRepo, Depends(get_meetings_repo)]
DocumentsRepoDep = Annotated[DocumentsRepo, Depends(get_documents_repo)]
