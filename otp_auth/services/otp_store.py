"""
Persistence for issued OTP codes
UPDATED: every mutation runs in its own atomic transaction and goes through
the row's version column, so a stale read can never consume or unlock a code
that another request already changed.
"""
import logging
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from otp_auth.core.exceptions import CodeConflictError
from otp_auth.db.transactions import atomic_transaction
from otp_auth.models.verification_code import OtpCode
from otp_auth.services.otp_security import mask_email

logger = logging.getLogger(__name__)


def _flush_versioned(db: Session, code: OtpCode):
    try:
        db.flush()
    except StaleDataError as e:
        raise CodeConflictError(f"OTP record {code.id} changed concurrently") from e


@atomic_transaction
def invalidate_outstanding(db: Session, email: str) -> int:
    """
    Mark every unused code of ``email`` as used

    Called before a new code is stored, which keeps at most one active code
    per email. The version is bumped so in-flight verifications of the old
    codes fail on their own update.
    """
    count = (
        db.query(OtpCode)
        .filter(OtpCode.email == email, OtpCode.used.is_(False))
        .update({OtpCode.used: True, OtpCode.version: OtpCode.version + 1}, synchronize_session=False)
    )
    if count:
        logger.info(f"🔒 Invalidated {count} outstanding code(s) for {mask_email(email)}")
    return count


@atomic_transaction
def store_code(db: Session, email: str, otp_hash: str, now: datetime, ttl_seconds: int) -> OtpCode:
    """
    Persist a freshly issued code

    Args:
        db: Database session
        email: Normalized email
        otp_hash: SHA-256 hex digest of the plaintext code
        now: Issuance time (UTC)
        ttl_seconds: Seconds until the code expires

    Returns:
        OtpCode: Created record
    """
    db_code = OtpCode(
        email=email,
        otp_hash=otp_hash,
        created_at=now,
        expires_at=now + timedelta(seconds=ttl_seconds),
        used=False,
        attempts=0,
    )
    db.add(db_code)
    db.flush()
    db.refresh(db_code)

    logger.info(f"✅ OTP stored for {mask_email(email)}, expires at {db_code.expires_at.isoformat()}")
    return db_code


def fetch_active(db: Session, email: str) -> OtpCode | None:
    # Newest first; tolerates duplicates left behind by an issuance race
    return (
        db.query(OtpCode)
        .filter(OtpCode.email == email, OtpCode.used.is_(False))
        .order_by(OtpCode.created_at.desc(), OtpCode.id.desc())
        .first()
    )


@atomic_transaction
def record_failed_attempt(db: Session, code: OtpCode, max_attempts: int) -> OtpCode:
    code.attempts += 1
    if code.attempts >= max_attempts:
        code.used = True
        logger.warning(f"⚠️  OTP {code.id} locked after {code.attempts} failed attempts")
    _flush_versioned(db, code)
    return code


@atomic_transaction
def consume(db: Session, code: OtpCode) -> OtpCode:
    code.used = True
    _flush_versioned(db, code)
    logger.info(f"✅ OTP {code.id} consumed")
    return code


@atomic_transaction
def invalidate(db: Session, code: OtpCode, reason: str) -> OtpCode:
    code.used = True
    _flush_versioned(db, code)
    logger.info(f"🔒 OTP {code.id} invalidated ({reason})")
    return code


def purge_expired(db: Session, now: datetime, retention_seconds: int) -> int:
    cutoff = now - timedelta(seconds=retention_seconds)
    return db.query(OtpCode).filter(OtpCode.expires_at < cutoff).delete(synchronize_session=False)
