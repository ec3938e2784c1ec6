"""
Periodic sweep of stale OTP rows

Deletes codes that expired more than OTP_RETENTION_SECONDS ago and rate-limit
windows that have fully lapsed. Meant to be run by a scheduler, e.g.

    python -m otp_auth.db.cleanup
"""
import logging
from datetime import datetime
from sqlalchemy.orm import Session

from otp_auth import config
from otp_auth.db.transactions import TransactionContext
from otp_auth.services.otp_security import utcnow
from otp_auth.services.otp_store import purge_expired
from otp_auth.services.rate_limiter import purge_lapsed_windows

logger = logging.getLogger(__name__)


def cleanup_expired_otps(db: Session, now: datetime | None = None) -> dict:
    now = now or utcnow()
    with TransactionContext(db) as tx:
        codes = purge_expired(tx.session, now, config.OTP_RETENTION_SECONDS)
        windows = purge_lapsed_windows(tx.session, now)

    logger.info(f"🧹 Removed {codes} expired code(s) and {windows} lapsed rate-limit window(s)")
    return {"codes_deleted": codes, "rate_limits_deleted": windows}


if __name__ == "__main__":
    from otp_auth.db.session import SessionLocal

    logging.basicConfig(level=logging.INFO)
    session = SessionLocal()
    try:
        print(cleanup_expired_otps(session))
    finally:
        session.close()
