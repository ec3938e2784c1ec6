"""
Code generation, hashing and input checks for the OTP flow
"""
import hashlib
import hmac
import re
import secrets
from datetime import datetime, timezone
from pydantic import EmailStr, TypeAdapter, ValidationError

MAX_EMAIL_LENGTH = 255

_EMAIL_ADAPTER = TypeAdapter(EmailStr)
_OTP_RE = re.compile(r"[0-9]{6}")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_otp() -> str:
    """Uniform 6-digit code in [100000, 999999] from the OS CSPRNG."""
    return str(100000 + secrets.randbelow(900000))


def hash_otp(otp: str) -> str:
    return hashlib.sha256(otp.encode("utf-8")).hexdigest()


def otp_matches(otp: str, otp_hash: str) -> bool:
    return hmac.compare_digest(hash_otp(otp), otp_hash)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email) -> bool:
    if not email or not isinstance(email, str) or len(email) > MAX_EMAIL_LENGTH:
        return False
    try:
        validated = _EMAIL_ADAPTER.validate_python(email)
    except ValidationError:
        return False
    # EmailStr also accepts "Name <addr>"; only a bare address is allowed here
    return validated.lower() == email.lower()


def is_valid_otp(otp) -> bool:
    if not otp or not isinstance(otp, str):
        return False
    return bool(_OTP_RE.fullmatch(otp))


def mask_email(email) -> str:
    if not email:
        return "***"
    return f"{str(email)[:3]}***"
