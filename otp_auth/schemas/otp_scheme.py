from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# Fields are plain optional strings: format checks happen in the service so
# that malformed input gets the same 400 body as any other rejection.

class SendOtpRequest(BaseModel):
    email: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "user@example.com"}}
    )


class VerifyOtpRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "user@example.com", "otp": "123456"}}
    )


class SendOtpResponse(BaseModel):
    success: bool = True
    message: str
    expires_in: int = Field(..., alias="expiresIn")

    model_config = ConfigDict(populate_by_name=True)


class VerifyOtpResponse(BaseModel):
    success: bool = True
    message: str
    user_id: str = Field(..., alias="userId")
    token: Optional[str] = None
    action_link: Optional[str] = Field(None, alias="actionLink")

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str
    retry_after: Optional[int] = Field(None, alias="retryAfter")
    remaining_attempts: Optional[int] = Field(None, alias="remainingAttempts")

    model_config = ConfigDict(populate_by_name=True)
