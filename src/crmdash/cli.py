"""Maintenance command: bcrypt-hash any passwords still stored in plaintext."""

from __future__ import annotations

import argparse
import asyncio
import os

import structlog
from sqlalchemy import select

from crmdash.auth.passwords import DEFAULT_ROUNDS, MAX_PASSWORD_BYTES, hash_password, is_hashed
from crmdash.db.engine import Database
from crmdash.db.models import UserModel
from crmdash.logconfig import configure_logging
from crmdash.settings import Settings

logger = structlog.get_logger(__name__)


async def hash_plaintext_passwords(db: Database, rounds: int = DEFAULT_ROUNDS, dry_run: bool = False) -> int:
    """Rehash plaintext passwords in place. Returns how many rows were (or would be) updated.

    Plaintext longer than bcrypt's input limit is left untouched and logged.
    """
    updated = 0
    async with db.session_factory() as session:
        result = await session.execute(select(UserModel).order_by(UserModel.id))
        for user in result.scalars():
            if not user.password_hash or is_hashed(user.password_hash):
                continue
            if len(user.password_hash.encode("utf-8")) > MAX_PASSWORD_BYTES:
                logger.warning("password_rehash_skipped", user_id=user.id, reason="too_long")
                continue
            updated += 1
            logger.info("password_rehash", user_id=user.id, dry_run=dry_run)
            if not dry_run:
                user.password_hash = hash_password(user.password_hash, rounds=rounds)
        if not dry_run:
            await session.commit()
    return updated


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="crmdash-hash-passwords", description=__doc__)
    parser.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL", Settings.model_fields["database_url"].default),
        help="SQLAlchemy async database URL (default: $DATABASE_URL)",
    )
    parser.add_argument("--rounds", type=int, default=DEFAULT_ROUNDS, help="bcrypt cost factor")
    parser.add_argument("--dry-run", action="store_true", help="report rows without writing")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    db = Database(args.database_url)
    await db.connect()
    try:
        return await hash_plaintext_passwords(db, rounds=args.rounds, dry_run=args.dry_run)
    finally:
        await db.close()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging(Settings.model_construct(log_format="console"))
    count = asyncio.run(_run(args))
    logger.info("hash_passwords_done", updated=count, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
