"""Repository behaviour against a real SQLite database."""

from __future__ import annotations

import pytest
import pytest_asyncio

from crmdash.db.engine import Database
from crmdash.db.repositories.auth import AuthRepo
from crmdash.db.repositories.organisations import OrganisationsRepo
from crmdash.db.repositories.team import TeamRepo
from crmdash.errors import DuplicateRecord


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path}/repos.db")
    await database.connect(create_tables=True)
    yield database
    await database.close()


@pytest.mark.asyncio
async def test_duplicate_user_email_raises_and_session_recovers(db):
    async with db.session_factory() as session:
        repo = AuthRepo(session)
        await repo.create_user("alice@example.com", "hash", "admin")
        await repo.commit()

        with pytest.raises(DuplicateRecord, match="Email already exists"):
            await repo.create_user("alice@example.com", "hash", "admin")

        bob = await repo.create_user("bob@example.com", "hash", "admin")
        await repo.commit()
        assert await repo.get_user_by_email("bob@example.com") is not None
        assert bob.id is not None


@pytest.mark.asyncio
async def test_duplicate_organisation_name(db):
    async with db.session_factory() as session:
        repo = AuthRepo(session)
        await repo.create_organisation("Acme")
        await repo.commit()
        with pytest.raises(DuplicateRecord):
            await repo.create_organisation("Acme")


@pytest.mark.asyncio
async def test_rename_onto_existing_organisation(db):
    async with db.session_factory() as session:
        auth = AuthRepo(session)
        await auth.create_organisation("Acme")
        other = await auth.create_organisation("Elsewhere")
        await auth.commit()

        with pytest.raises(DuplicateRecord):
            await OrganisationsRepo(session).rename(other, "Acme")


@pytest.mark.asyncio
async def test_second_team_member_for_same_account(db):
    async with db.session_factory() as session:
        auth = AuthRepo(session)
        org = await auth.create_organisation("Acme")
        user = await auth.create_user("alice@example.com", "hash", "admin", organisation_id=org.id)
        await auth.commit()
        team = TeamRepo(session)
        user_id = user.id
        first = await team.create(org.id, team_member_name="Alice", team_member_email_id="alice@example.com", user_id=user_id)
        first_id = first.id

        with pytest.raises(DuplicateRecord):
            await team.create(org.id, team_member_name="Alice 2", team_member_email_id="a2@example.com", user_id=user_id)

        assert (await team.get_for_user(user_id)).id == first_id
