from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from otp_auth.db.cleanup import cleanup_expired_otps
from otp_auth.models.rate_limit import OtpRateLimit
from otp_auth.models.verification_code import OtpCode
from otp_auth.services import otp_store, rate_limiter
from otp_auth.services.otp_security import hash_otp

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def test_cleanup_removes_only_stale_rows(db):
    # Expired 1h55m ago, expired 25m ago, still active
    otp_store.store_code(db, "old@example.com", hash_otp("111111"), NOW - timedelta(hours=2), 300)
    otp_store.store_code(db, "recent@example.com", hash_otp("222222"), NOW - timedelta(minutes=30), 300)
    otp_store.store_code(db, "live@example.com", hash_otp("333333"), NOW, 300)

    rate_limiter.check_and_record(db, "old@example.com", NOW - timedelta(minutes=11))
    rate_limiter.check_and_record(db, "live@example.com", NOW - timedelta(minutes=2))

    result = cleanup_expired_otps(db, NOW)

    assert result == {"codes_deleted": 1, "rate_limits_deleted": 1}
    assert {c.email for c in db.query(OtpCode).all()} == {"recent@example.com", "live@example.com"}
    assert [r.email for r in db.query(OtpRateLimit).all()] == ["live@example.com"]


def test_cleanup_rolls_back_when_sweep_fails(db):
    otp_store.store_code(db, "old@example.com", hash_otp("111111"), NOW - timedelta(hours=2), 300)

    with patch("otp_auth.db.cleanup.purge_lapsed_windows", side_effect=RuntimeError("db down")):
        with pytest.raises(RuntimeError):
            cleanup_expired_otps(db, NOW)

    assert db.query(OtpCode).count() == 1
