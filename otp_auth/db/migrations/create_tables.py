from otp_auth.models.base import Base
from otp_auth.models.user_model import User  # noqa: F401
from otp_auth.models.verification_code import OtpCode  # noqa: F401
from otp_auth.models.rate_limit import OtpRateLimit  # noqa: F401
from otp_auth.db.session import engine


def create_tables(bind=engine):
    Base.metadata.create_all(bind=bind)


if __name__ == "__main__":
    create_tables()
    print("Tablas creadas correctamente.")
