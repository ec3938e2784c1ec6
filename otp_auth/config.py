import os
from dotenv import load_dotenv

# Load a local .env when running outside the container
env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env')
load_dotenv(env_path)

APP_NAME = os.getenv("APP_NAME", "RainWater Harvest")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./otp_auth.db")

# OTP tunables, seconds unless stated otherwise
OTP_EXPIRY_SECONDS = int(os.getenv("OTP_EXPIRY_SECONDS", "300"))
OTP_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("OTP_RATE_LIMIT_WINDOW_SECONDS", "600"))
OTP_MAX_REQUESTS_PER_WINDOW = int(os.getenv("OTP_MAX_REQUESTS_PER_WINDOW", "3"))
OTP_MAX_VERIFICATION_ATTEMPTS = int(os.getenv("OTP_MAX_VERIFICATION_ATTEMPTS", "5"))
OTP_RETENTION_SECONDS = int(os.getenv("OTP_RETENTION_SECONDS", "3600"))

DEFAULT_SECRET_KEY = "otp-auth-development-secret-change-me"
SECRET_KEY = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Optional; without it verify-otp responds without an actionLink
FRONTEND_URL = os.getenv("FRONTEND_URL")

MAIL_USERNAME = os.getenv('MAIL_USERNAME')
_raw_password = os.getenv('MAIL_PASSWORD')
MAIL_PASSWORD = None
if _raw_password is not None:
    # Strip quotes; Gmail app passwords are shown with spaces but used without them
    cleaned = _raw_password.strip().strip('"').strip()
    MAIL_PASSWORD = cleaned.replace(' ', '') if 'gmail' in os.getenv('MAIL_SERVER', '').lower() else cleaned
MAIL_FROM = os.getenv('MAIL_FROM', MAIL_USERNAME)
MAIL_PORT = int(os.getenv('MAIL_PORT', '587'))
MAIL_SERVER = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
