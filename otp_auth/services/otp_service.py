"""
OTP issuance and verification

issue_otp:  validate -> rate limit -> invalidate previous codes -> generate
            -> store -> deliver
verify_otp: validate -> fetch active code -> expiry -> attempt limit
            -> compare -> consume -> resolve account -> reset rate limit

A code is consumed (committed) before the account is resolved, so it can
never be replayed. If the account step fails afterwards the user has to ask
for a new code.
"""
import math
import logging
from dataclasses import dataclass
from datetime import datetime
from sqlalchemy.orm import Session

from otp_auth import config
from otp_auth.core.exceptions import (
    CodeConflictError,
    CodeExpiredError,
    DeliveryError,
    InvalidOrExpiredError,
    LockedOutError,
    OtpValidationError,
    RateLimitedError,
)
from otp_auth.services import otp_store, rate_limiter
from otp_auth.services.email_service import OTP_EMAIL_SUBJECT, render_otp_email
from otp_auth.services.otp_security import (
    as_utc,
    generate_otp,
    hash_otp,
    is_valid_email,
    is_valid_otp,
    mask_email,
    normalize_email,
    otp_matches,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueResult:
    expires_in: int


@dataclass(frozen=True)
class VerifyResult:
    user_id: str
    token: str | None = None
    action_link: str | None = None


def _clean(email):
    return email.strip() if isinstance(email, str) else email


async def issue_otp(db: Session, email, sender, now: datetime | None = None) -> IssueResult:
    """
    Issue a new code for ``email`` and hand it to ``sender``

    Raises:
        OtpValidationError: malformed email, nothing was touched
        RateLimitedError: too many requests in the current window
        DeliveryError: the code was stored but could not be sent; it is invalidated
    """
    email = _clean(email)
    if not is_valid_email(email):
        logger.info("Invalid email format provided")
        raise OtpValidationError("Please provide a valid email address")

    email = normalize_email(email)
    now = now or utcnow()
    logger.info(f"OTP request received for {mask_email(email)}")

    decision = rate_limiter.check_and_record(db, email, now)
    if not decision.allowed:
        raise RateLimitedError(decision.retry_after)

    otp_store.invalidate_outstanding(db, email)

    otp = generate_otp()
    ttl = config.OTP_EXPIRY_SECONDS
    record = otp_store.store_code(db, email, hash_otp(otp), now, ttl)

    html_body = render_otp_email(otp, expiry_minutes=math.ceil(ttl / 60))
    try:
        await sender.send(email, OTP_EMAIL_SUBJECT, html_body)
    except Exception as e:
        logger.error(f"❌ OTP email to {mask_email(email)} failed: {e!r}")
        otp_store.invalidate(db, record, "undelivered")
        raise DeliveryError("Failed to send verification email") from e

    logger.info(f"✅ OTP email sent to {mask_email(email)}")
    return IssueResult(expires_in=ttl)


def _invalidate_stale(db: Session, record, reason: str):
    try:
        otp_store.invalidate(db, record, reason)
    except CodeConflictError:
        logger.info(f"OTP {record.id} already changed by a concurrent request")


def verify_otp(db: Session, email, otp, accounts, now: datetime | None = None) -> VerifyResult:
    """
    Check ``otp`` against the active code of ``email`` and open a session

    Args:
        db: Database session
        email: Email the code was sent to
        otp: Submitted 6-digit code
        accounts: Account/session provider
        now: Current time (UTC); defaults to the wall clock

    Returns:
        VerifyResult: user id plus the session token and action link

    Raises:
        OtpValidationError: malformed email or code, nothing was touched
        InvalidOrExpiredError: no active code, or wrong code (with remaining attempts)
        CodeExpiredError: the active code is past its expiry
        LockedOutError: the active code has no attempts left
    """
    email = _clean(email)
    if not is_valid_email(email):
        logger.info("Invalid email format")
        raise OtpValidationError("Invalid verification request")
    if not is_valid_otp(otp):
        logger.info("Invalid OTP format")
        raise OtpValidationError("Invalid verification code format")

    email = normalize_email(email)
    now = now or utcnow()
    max_attempts = config.OTP_MAX_VERIFICATION_ATTEMPTS

    record = otp_store.fetch_active(db, email)
    if record is None:
        logger.info(f"⚠️  No active OTP for {mask_email(email)}")
        raise InvalidOrExpiredError()

    if now > as_utc(record.expires_at):
        logger.info(f"⚠️  OTP {record.id} has expired")
        _invalidate_stale(db, record, "expired")
        raise CodeExpiredError()

    if record.attempts >= max_attempts:
        logger.warning(f"⚠️  OTP {record.id} has no attempts left")
        _invalidate_stale(db, record, "locked")
        raise LockedOutError()

    if not otp_matches(otp, record.otp_hash):
        try:
            record = otp_store.record_failed_attempt(db, record, max_attempts)
        except CodeConflictError as e:
            raise InvalidOrExpiredError() from e
        remaining = max(0, max_attempts - record.attempts)
        logger.info(f"⚠️  OTP mismatch for {mask_email(email)}, {remaining} attempt(s) left")
        raise InvalidOrExpiredError("Invalid verification code", remaining_attempts=remaining)

    try:
        otp_store.consume(db, record)
    except CodeConflictError as e:
        logger.warning(f"⚠️  OTP {record.id} was consumed or invalidated concurrently")
        raise InvalidOrExpiredError() from e

    user = accounts.resolve_or_create(db, email, now)
    session = accounts.mint_session(user)
    user_id = user.id

    rate_limiter.reset(db, email)

    logger.info(f"✅ Authentication successful for user {user_id}")
    return VerifyResult(user_id=user_id, token=session.token, action_link=session.action_link)
