"""
Per-email issuance rate limiting

One row per email in ``otp_rate_limits``. The window is anchored at the first
request and restarts once it has fully elapsed. Rows are versioned, so two
requests racing on the same row cannot both increment from the same count:
the loser fails on flush and the request is refused upstream.
"""
import math
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from otp_auth import config
from otp_auth.db.transactions import atomic_transaction
from otp_auth.models.rate_limit import OtpRateLimit
from otp_auth.services.otp_security import as_utc, mask_email, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0


@atomic_transaction
def check_and_record(db: Session, email: str, now: datetime | None = None) -> RateLimitDecision:
    """
    Count one issuance request for ``email`` and decide whether it may proceed

    Args:
        db: Database session
        email: Normalized email
        now: Current time (UTC); defaults to the wall clock

    Returns:
        RateLimitDecision: allowed, or refused with ``retry_after`` seconds
    """
    now = now or utcnow()
    window = timedelta(seconds=config.OTP_RATE_LIMIT_WINDOW_SECONDS)
    max_requests = config.OTP_MAX_REQUESTS_PER_WINDOW

    record = db.query(OtpRateLimit).filter_by(email=email).first()

    if not record:
        db.add(OtpRateLimit(email=email, request_count=1, first_request_at=now, last_request_at=now))
        db.flush()
        return RateLimitDecision(allowed=True)

    window_start = as_utc(record.first_request_at)

    if now - window_start < window:
        if record.request_count >= max_requests:
            retry_after = max(1, math.ceil((window_start + window - now).total_seconds()))
            logger.warning(f"⚠️  Rate limit exceeded for {mask_email(email)}, retry in {retry_after}s")
            return RateLimitDecision(allowed=False, retry_after=retry_after)
        record.request_count += 1
    else:
        record.first_request_at = now
        record.request_count = 1
    record.last_request_at = now

    db.flush()
    return RateLimitDecision(allowed=True)


@atomic_transaction
def reset(db: Session, email: str) -> int:
    """Drop the email's window so the next login cycle starts with a fresh quota."""
    return db.query(OtpRateLimit).filter_by(email=email).delete(synchronize_session=False)


def purge_lapsed_windows(db: Session, now: datetime) -> int:
    cutoff = now - timedelta(seconds=config.OTP_RATE_LIMIT_WINDOW_SECONDS)
    return db.query(OtpRateLimit).filter(OtpRateLimit.first_request_at < cutoff).delete(synchronize_session=False)
