"""Role checks and the last-administrator guard."""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from commune_api.core.errors import Forbidden, InvariantViolation, NotFound
from commune_api.models.account import ROLE_ADMIN, Account

logger = logging.getLogger(__name__)


def ensure_role(role: str, allowed: Iterable[str]) -> None:
    """Raise Forbidden unless `role` is one of `allowed`."""
    allowed_roles = frozenset(allowed)
    if role not in allowed_roles:
        raise Forbidden(
            f"Access restricted to roles: {', '.join(sorted(allowed_roles))}"
        )


def lock_target_for_admin_change(session: Session, account_id: int) -> tuple[Account, int]:
    """
    Lock every administrator row, then the target row, inside the caller's transaction.

    Returns (target, admin_count). Admin rows are always locked first and in id
    order so concurrent deletions/demotions serialize instead of deadlocking; the
    count therefore cannot change until the caller commits or rolls back.
    """
    admin_ids = session.execute(
        select(Account.id)
        .where(Account.role == ROLE_ADMIN)
        .order_by(Account.id)
        .with_for_update()
    ).scalars().all()
    target = session.execute(
        select(Account).where(Account.id == account_id).with_for_update()
    ).scalar_one_or_none()
    if target is None:
        raise NotFound("User not found")
    return target, len(admin_ids)


def ensure_not_last_admin(target: Account, admin_count: int, action: str) -> None:
    """Raise InvariantViolation if removing `target` from the admin set would empty it."""
    if target.role == ROLE_ADMIN and admin_count <= 1:
        logger.warning(
            "Refused to %s the last administrator",
            action,
            extra={"account_id": target.id, "admin_count": admin_count},
        )
        raise InvariantViolation(f"Cannot {action} the last administrator")
