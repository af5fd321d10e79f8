"""Management CLI.

Usage:
    python -m hearinghope.cli bootstrap-permissions            # Every user
    python -m hearinghope.cli bootstrap-permissions <user_id>  # One user
    python -m hearinghope.cli create-user <email> <name> <password> <role> [phone] [position]
"""

import asyncio
import logging
import sys

from sqlalchemy import select

from hearinghope.auth.bootstrap import (
    BootstrapOutcome,
    bootstrap_all_permissions,
    bootstrap_user_permissions,
)
from hearinghope.auth.password import MIN_PASSWORD_LENGTH, hash_password
from hearinghope.auth.permissions import UserRole
from hearinghope.database import async_session, engine
from hearinghope.middleware.exceptions import ResourceNotFoundError
from hearinghope.models.user import User

USAGE = (
    "Usage: python -m hearinghope.cli "
    "[bootstrap-permissions [user_id] | create-user <email> <name> <password> <role> [phone] [position]]"
)


async def bootstrap_permissions(user_id: str | None = None) -> int:
    """Run the reconciler for one user or for everyone. Returns an exit code."""
    async with async_session() as db:
        if user_id:
            try:
                result = await bootstrap_user_permissions(db, user_id)
            except ResourceNotFoundError:
                print(f"  User {user_id} not found")
                return 1
            await db.commit()
            print(f"  {result.user_id}: {result.outcome.value} (+{len(result.added)})")
            return 0

        report = await bootstrap_all_permissions(db)

    for r in report.results:
        line = f"  {r.user_id}: {r.outcome.value}"
        if r.outcome is BootstrapOutcome.REPAIRED:
            line += f" (+{len(r.added)})"
        elif r.error:
            line += f" ({r.error})"
        print(line)
    print(
        f"\n{report.processed} processed, {report.repaired} repaired, "
        f"{report.already_compliant} already compliant, {report.failed} failed"
    )
    return 1 if report.failed else 0


async def create_user(
    email: str,
    name: str,
    password: str,
    role: str,
    phone: str = "-",
    position: str = "-",
) -> int:
    """Create an account and bootstrap its role defaults straight away."""
    try:
        user_role = UserRole(role.upper())
    except ValueError:
        print(f"  Unknown role {role!r}; expected one of {', '.join(r.value for r in UserRole)}")
        return 1
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"  Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return 1

    email = email.strip().lower()
    async with async_session() as db:
        existing = await db.execute(select(User.id).where(User.email == email))
        if existing.first() is not None:
            print(f"  A user with email {email} already exists")
            return 1

        user = User(
            email=email,
            name=name,
            hashed_password=hash_password(password),
            role=user_role,
            phone=phone,
            position=position,
            is_active=True,
            custom_permissions=[],
            permission_group_ids=[],
        )
        db.add(user)
        await db.flush()
        result = await bootstrap_user_permissions(db, user.id)
        await db.commit()

    print(f"  Created {user_role.value} {email} ({result.user_id}) with {len(result.permissions)} permissions")
    return 0


async def _run(coro) -> int:
    try:
        return await coro
    finally:
        await engine.dispose()


def main(argv: list[str]) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    cmd = argv[0] if argv else ""
    if cmd == "bootstrap-permissions" and len(argv) <= 2:
        return asyncio.run(_run(bootstrap_permissions(argv[1] if len(argv) == 2 else None)))
    if cmd == "create-user" and 5 <= len(argv) <= 7:
        return asyncio.run(_run(create_user(*argv[1:])))

    print(USAGE)
    return 2


def cli() -> None:
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
