"""
Account/session collaborator for the OTP flow
Turns a verified email into a user row and a signed session token.
"""
import jwt
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from otp_auth import config
from otp_auth.core.exceptions import AccountProviderError
from otp_auth.db.transactions import atomic_transaction
from otp_auth.models.user_model import User
from otp_auth.services.otp_security import mask_email, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionArtifact:
    token: str
    action_link: str | None = None


def create_access_token(data: dict):
    to_encode = data.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


@atomic_transaction
def login_or_register_otp(db: Session, email: str, now: datetime) -> User:
    """
    Login or register a user whose email was just verified by OTP

    Args:
        db: Database session
        email: Normalized, verified email
        now: Verification time (UTC)

    Returns:
        User: Existing or newly created user
    """
    user = db.query(User).filter_by(email=email).first()

    if not user:
        user = User(email=email, provider="otp", created_at=now)
        db.add(user)
        logger.info(f"✅ New OTP user registered: {mask_email(email)}")
    else:
        logger.info(f"✅ Existing user logged in via OTP: {mask_email(email)}")

    user.last_otp_verified_at = now
    db.flush()
    db.refresh(user)
    return user


class LocalAccountProvider:
    """Keeps accounts in the service's own ``users`` table and signs HS256 JWTs."""

    def resolve_or_create(self, db: Session, email: str, now: datetime | None = None) -> User:
        try:
            return login_or_register_otp(db, email, now or utcnow())
        except SQLAlchemyError as e:
            raise AccountProviderError(f"Failed to resolve account: {e!r}") from e

    def mint_session(self, user: User) -> SessionArtifact:
        try:
            token = create_access_token(
                data={
                    "sub": user.id,
                    "user_id": user.id,
                    "email": user.email,
                    "provider": user.provider,
                    "amr": ["otp"],
                }
            )
        except jwt.PyJWTError as e:
            raise AccountProviderError(f"Failed to sign session token: {e!r}") from e

        action_link = None
        if config.FRONTEND_URL:
            action_link = f"{config.FRONTEND_URL.rstrip('/')}/auth/callback?token={token}"
        return SessionArtifact(token=token, action_link=action_link)
