import logging
from sqlalchemy.orm import Session
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from otp_auth.core.exceptions import GENERIC_ERROR_MESSAGE, OtpError
from otp_auth.services.otp_service import issue_otp, verify_otp

logger = logging.getLogger(__name__)

ISSUE_SUCCESS_MESSAGE = "If this email is registered, you will receive a verification code."
VERIFY_SUCCESS_MESSAGE = "Verification successful"


def _internal_error(operation: str, e: Exception) -> OtpError:
    # Full detail stays in the server log; the client only sees the generic message
    logger.error(f"❌ Error in {operation}: {e!r}", exc_info=e)
    return OtpError(GENERIC_ERROR_MESSAGE, status_code=HTTP_500_INTERNAL_SERVER_ERROR)


async def send_otp(db: Session, email, sender) -> dict:
    try:
        result = await issue_otp(db, email, sender)
    except OtpError:
        raise
    except Exception as e:
        raise _internal_error("send-otp", e) from e
    return {"success": True, "message": ISSUE_SUCCESS_MESSAGE, "expiresIn": result.expires_in}


def verify_otp_code(db: Session, email, otp, accounts) -> dict:
    try:
        result = verify_otp(db, email, otp, accounts)
    except OtpError:
        raise
    except Exception as e:
        raise _internal_error("verify-otp", e) from e
    return {
        "success": True,
        "message": VERIFY_SUCCESS_MESSAGE,
        "userId": result.user_id,
        "token": result.token,
        "actionLink": result.action_link,
    }
