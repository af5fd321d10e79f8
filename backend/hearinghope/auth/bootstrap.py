"""Permission bootstrap: copy role defaults into users' explicit grants.

For one user:

    missing = role_defaults(user.role) − user.custom_permissions
    if missing: user.custom_permissions = custom_permissions + missing

The operation is additive and idempotent. It never removes a permission,
never duplicates one, and a second run on an unchanged user writes nothing.

Role defaults added to the catalog later are NOT picked up until bootstrap
runs again for that user (on next login, via the admin endpoint, or the
`bootstrap-permissions` CLI command).

The system-wide run commits each user on its own. A user whose commit fails
is rolled back, recorded as `failed`, and the run moves on to the next one.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hearinghope.auth.permissions import UserRole, role_defaults
from hearinghope.middleware.exceptions import ResourceNotFoundError
from hearinghope.models.user import User

logger = logging.getLogger(__name__)


class BootstrapOutcome(str, enum.Enum):
    REPAIRED = "repaired"
    ALREADY_COMPLIANT = "already_compliant"
    FAILED = "failed"


@dataclass
class UserBootstrapResult:
    user_id: str
    outcome: BootstrapOutcome
    added: list[str] = field(default_factory=list)
    permissions: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class BatchBootstrapReport:
    results: list[UserBootstrapResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        """Users attempted, failures included."""
        return len(self.results)

    def count(self, outcome: BootstrapOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def repaired(self) -> int:
        return self.count(BootstrapOutcome.REPAIRED)

    @property
    def already_compliant(self) -> int:
        return self.count(BootstrapOutcome.ALREADY_COMPLIANT)

    @property
    def failed(self) -> int:
        return self.count(BootstrapOutcome.FAILED)


def missing_role_permissions(user: User) -> list[str]:
    """Role defaults not yet present in the user's explicit grants."""
    existing = set(user.custom_permissions or [])
    return [p for p in role_defaults(user.role) if p not in existing]


def apply_role_defaults(user: User) -> list[str]:
    """Append missing role defaults to `user.custom_permissions` in memory.

    Returns the permissions that were added (empty → nothing changed).
    """
    missing = missing_role_permissions(user)
    if missing:
        # Reassign so the JSON column is flagged dirty
        user.custom_permissions = [*(user.custom_permissions or []), *missing]
    return missing


async def bootstrap_user_permissions(
    db: AsyncSession,
    user_id: str,
) -> UserBootstrapResult:
    """Reconcile one user against their role defaults.

    Flushes only when something was added; the caller owns the commit.

    Raises:
        ResourceNotFoundError: the user does not exist.
    """
    user = await db.get(User, user_id)
    if user is None:
        logger.info(f"Bootstrap skipped: user {user_id} not found")
        raise ResourceNotFoundError("User", user_id)

    added = apply_role_defaults(user)
    if added:
        await db.flush()
        logger.info(
            f"Bootstrapped user {user.id} ({user.role.value}): added {len(added)} permissions"
        )
        outcome = BootstrapOutcome.REPAIRED
    else:
        logger.debug(f"No new permissions needed for user {user.id}")
        outcome = BootstrapOutcome.ALREADY_COMPLIANT

    return UserBootstrapResult(
        user_id=user.id,
        outcome=outcome,
        added=added,
        permissions=list(user.custom_permissions or []),
    )


async def bootstrap_all_permissions(db: AsyncSession) -> BatchBootstrapReport:
    """Reconcile every user, role by role, committing each user separately.

    Errors while listing users propagate (nothing has been written for the
    failing role yet). An unreachable store (`OperationalError`) aborts the
    run; users committed before it keep their repair. Other errors while
    saving one user are recorded in the report and do not stop the run.
    """
    report = BatchBootstrapReport()
    logger.info("Starting permission bootstrap for all users")

    for role in UserRole:
        result = await db.execute(
            select(User.id).where(User.role == role).order_by(User.created_at, User.id)
        )
        user_ids = list(result.scalars().all())
        logger.info(
            f"Bootstrapping {role.value}: {len(role_defaults(role))} defaults, {len(user_ids)} users"
        )

        for user_id in user_ids:
            try:
                outcome = await bootstrap_user_permissions(db, user_id)
                await db.commit()
            except ResourceNotFoundError:
                # Deleted between listing and processing
                await db.rollback()
                continue
            except OperationalError:
                await db.rollback()
                logger.error(f"Bootstrap aborted at user {user_id}: store unavailable")
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Bootstrap failed for user {user_id}: {e}")
                outcome = UserBootstrapResult(
                    user_id=user_id,
                    outcome=BootstrapOutcome.FAILED,
                    error=str(e),
                )
            report.results.append(outcome)

    logger.info(
        f"Permission bootstrap complete: {report.processed} processed, "
        f"{report.repaired} repaired, {report.already_compliant} already compliant, "
        f"{report.failed} failed"
    )
    return report
