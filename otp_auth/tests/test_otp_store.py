from datetime import datetime, timedelta, timezone

import pytest

from otp_auth.core.exceptions import CodeConflictError
from otp_auth.models.verification_code import OtpCode
from otp_auth.services import otp_store
from otp_auth.services.otp_security import hash_otp

EMAIL = "user@example.com"
START = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def _active(db):
    db.expire_all()
    return db.query(OtpCode).filter_by(email=EMAIL, used=False).all()


def test_store_code_sets_expiry_and_defaults(db):
    code = otp_store.store_code(db, EMAIL, hash_otp("123456"), START, 300)
    assert code.used is False
    assert code.attempts == 0
    assert code.expires_at.replace(tzinfo=None) == (START + timedelta(seconds=300)).replace(tzinfo=None)
    assert code.otp_hash != "123456"


def test_invalidate_outstanding_leaves_no_active_code(db):
    otp_store.store_code(db, EMAIL, hash_otp("111111"), START, 300)
    otp_store.store_code(db, EMAIL, hash_otp("222222"), START, 300)
    otp_store.store_code(db, "other@example.com", hash_otp("333333"), START, 300)

    assert otp_store.invalidate_outstanding(db, EMAIL) == 2
    assert _active(db) == []
    assert otp_store.fetch_active(db, "other@example.com") is not None


def test_fetch_active_prefers_newest_duplicate(db):
    otp_store.store_code(db, EMAIL, hash_otp("111111"), START, 300)
    otp_store.store_code(db, EMAIL, hash_otp("222222"), START + timedelta(seconds=1), 300)
    # Same timestamp: creation order decides
    otp_store.store_code(db, EMAIL, hash_otp("333333"), START + timedelta(seconds=1), 300)

    assert otp_store.fetch_active(db, EMAIL).otp_hash == hash_otp("333333")


def test_fetch_active_none_when_everything_used(db):
    code = otp_store.store_code(db, EMAIL, hash_otp("111111"), START, 300)
    otp_store.consume(db, code)
    assert otp_store.fetch_active(db, EMAIL) is None


def test_failed_attempts_lock_code_at_max(db):
    code = otp_store.store_code(db, EMAIL, hash_otp("111111"), START, 300)
    for expected in range(1, 5):
        code = otp_store.record_failed_attempt(db, code, 5)
        assert code.attempts == expected
        assert code.used is False

    code = otp_store.record_failed_attempt(db, code, 5)
    assert code.attempts == 5
    assert code.used is True
    assert otp_store.fetch_active(db, EMAIL) is None


def test_consume_after_concurrent_invalidation_conflicts(session_factory):
    first, second = session_factory(), session_factory()
    try:
        otp_store.store_code(first, EMAIL, hash_otp("111111"), START, 300)
        stale = otp_store.fetch_active(second, EMAIL)

        otp_store.invalidate_outstanding(first, EMAIL)

        with pytest.raises(CodeConflictError):
            otp_store.consume(second, stale)
    finally:
        first.close()
        second.close()


def test_double_consume_conflicts(session_factory):
    first, second = session_factory(), session_factory()
    try:
        otp_store.store_code(first, EMAIL, hash_otp("111111"), START, 300)
        a = otp_store.fetch_active(first, EMAIL)
        b = otp_store.fetch_active(second, EMAIL)

        otp_store.consume(first, a)
        with pytest.raises(CodeConflictError):
            otp_store.consume(second, b)
    finally:
        first.close()
        second.close()


def test_purge_expired_keeps_recent_rows(db):
    otp_store.store_code(db, EMAIL, hash_otp("111111"), START - timedelta(hours=2), 300)
    otp_store.store_code(db, EMAIL, hash_otp("222222"), START - timedelta(minutes=30), 300)
    otp_store.store_code(db, EMAIL, hash_otp("333333"), START, 300)

    deleted = otp_store.purge_expired(db, START, 3600)
    db.commit()

    assert deleted == 1
    assert db.query(OtpCode).count() == 2
