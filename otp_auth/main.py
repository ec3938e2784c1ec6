import os
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from otp_auth import config
from otp_auth.api import auth_routes
from otp_auth.config import APP_NAME
from otp_auth.core.exceptions import GENERIC_ERROR_MESSAGE, OtpError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def warn_if_default_secret_key():
    if config.SECRET_KEY == config.DEFAULT_SECRET_KEY:
        logger.warning("⚠️  SECRET_KEY is not set, session tokens are signed with the development key")


warn_if_default_secret_key()

app = FastAPI(title=f"{APP_NAME} OTP authentication service")
app.include_router(auth_routes.router, prefix="/otp_authentication_path", tags=["otp_authentication"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OtpError)
async def otp_error_handler(request: Request, exc: OtpError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail, **exc.extra})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Malformed request body on {request.url.path}")
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.url.path}: {exc!r}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
