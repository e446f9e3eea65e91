"""
Role parsing and last-owner protection shared by the membership services.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, TypeVar, Union

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import BusinessRuleError, ValidationError

R = TypeVar("R", bound=Enum)

OWNER = "OWNER"


def coerce_role(role_enum: type[R], role: Union[str, R, None]) -> R:
    """Parse ``role`` into ``role_enum`` or raise ValidationError."""
    if isinstance(role, role_enum):
        return role
    try:
        return role_enum(role)
    except ValueError:
        allowed = ", ".join(r.value for r in role_enum)
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {allowed}",
            {"role": role, "allowed": [r.value for r in role_enum]},
        )


async def count_owners_for_update(
    session: AsyncSession, model: Any, scope_column: Any, scope_id: str
) -> int:
    """Count OWNER memberships in a scope, row-locking them until commit.

    The lock serializes concurrent demotions/removals of the remaining owners
    on databases that support ``SELECT ... FOR UPDATE``.
    """
    result = await session.execute(
        select(model).where(scope_column == scope_id, model.role == OWNER).with_for_update()
    )
    return len(result.scalars().all())


async def is_last_owner(
    session: AsyncSession,
    membership: Any,
    model: Any,
    scope_column: Any,
    scope_id: str,
    *,
    allow_sole_member: bool = False,
) -> bool:
    """True if ``membership`` is the only OWNER of its scope.

    With ``allow_sole_member`` the last owner may still go when nobody else
    is left in the scope (an empty scope has no owner invariant to break).
    """
    if membership.role != OWNER:
        return False
    owners = await count_owners_for_update(session, model, scope_column, scope_id)
    if owners > 1:
        return False
    if allow_sole_member:
        result = await session.execute(select(func.count()).select_from(model).where(scope_column == scope_id))
        if result.scalar_one() <= 1:
            return False
    return True


async def guard_last_owner(
    session: AsyncSession,
    membership: Any,
    model: Any,
    scope_column: Any,
    scope_id: str,
    *,
    scope: str,
    action: str,
    allow_sole_member: bool = False,
) -> None:
    """Reject ``action`` if ``membership`` is the only OWNER of its scope."""
    if await is_last_owner(
        session, membership, model, scope_column, scope_id, allow_sole_member=allow_sole_member
    ):
        raise BusinessRuleError(
            f"Cannot {action} the last owner of the {scope}",
            {"scope": scope, "scope_id": scope_id, "owner_count": 1},
        )
