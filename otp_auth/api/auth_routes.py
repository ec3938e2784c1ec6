from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from otp_auth.db.session import SessionLocal
from otp_auth.schemas.otp_scheme import (
    SendOtpRequest,
    SendOtpResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
    ErrorResponse,
)
from otp_auth.services.auth_handlers import (
    send_otp as svc_send_otp,
    verify_otp_code as svc_verify_otp_code,
)
from otp_auth.services.auth_service import LocalAccountProvider
from otp_auth.services.email_service import SmtpEmailSender

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_email_sender():
    return SmtpEmailSender()


def get_account_provider():
    return LocalAccountProvider()


# Send a one-time code by email
@router.post("/send-otp", response_model=SendOtpResponse, responses=ERROR_RESPONSES)
async def send_otp(
    request: SendOtpRequest,
    db: Session = Depends(get_db),
    sender: SmtpEmailSender = Depends(get_email_sender),
):
    return await svc_send_otp(db, request.email, sender)


# Verify the code and open a session
@router.post(
    "/verify-otp",
    response_model=VerifyOtpResponse,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
)
async def verify_otp(
    request: VerifyOtpRequest,
    db: Session = Depends(get_db),
    accounts: LocalAccountProvider = Depends(get_account_provider),
):
    return svc_verify_otp_code(db, request.email, request.otp, accounts)
