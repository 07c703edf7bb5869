"""Housekeeping: clear reset-token state that expired without being redeemed."""

import logging
from datetime import UTC, datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from commune_api.models.account import Account

logger = logging.getLogger(__name__)


def purge_expired_reset_tokens(session: Session, now: datetime | None = None) -> int:
    """
    Null out reset-token digest and expiry on accounts whose token has expired.

    Returns the number of accounts cleared. Idempotent: safe to run repeatedly.
    """
    cutoff = now or datetime.now(UTC)
    result = session.execute(
        update(Account)
        .where(
            Account.reset_token_expires_at.is_not(None),
            Account.reset_token_expires_at <= cutoff,
        )
        .values(reset_token_digest=None, reset_token_expires_at=None)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    cleared = result.rowcount or 0
    if cleared > 0:
        logger.info(
            "Expired reset tokens purged: cutoff=%s, accounts_cleared=%s",
            cutoff.isoformat(),
            cleared,
        )
    return cleared
