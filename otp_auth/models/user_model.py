import uuid
from sqlalchemy import Column, String, DateTime
from .base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    provider = Column(String, nullable=False, default='otp')
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_otp_verified_at = Column(DateTime(timezone=True), nullable=True)
