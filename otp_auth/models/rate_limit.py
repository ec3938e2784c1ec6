from sqlalchemy import Column, Integer, String, DateTime
from .base import Base


class OtpRateLimit(Base):
    __tablename__ = "otp_rate_limits"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False)
    request_count = Column(Integer, nullable=False, default=1)
    first_request_at = Column(DateTime(timezone=True), nullable=False)
    last_request_at = Column(DateTime(timezone=True), nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
