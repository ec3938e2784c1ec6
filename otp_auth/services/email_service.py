from email.message import EmailMessage
from typing import Iterable
import aiosmtplib

from otp_auth import config
from otp_auth.core.exceptions import DeliveryError


OTP_EMAIL_SUBJECT = "Your Verification Code"


async def send_email_html(subject: str, recipients: Iterable[str], html_body: str, plain_fallback: str | None = None) -> None:
    """
    Send an HTML email over SMTP.

    - STARTTLS by default on port 587.
    - Direct TLS when the port is 465.
    - Needs MAIL_USERNAME and MAIL_PASSWORD; MAIL_FROM, MAIL_PORT and MAIL_SERVER are optional.
    """
    if not config.MAIL_USERNAME or not config.MAIL_PASSWORD:
        raise RuntimeError("MAIL_USERNAME/MAIL_PASSWORD not configured")

    recipients = list(recipients)
    if not recipients:
        raise ValueError("recipients must not be empty")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = config.MAIL_FROM or config.MAIL_USERNAME
    msg["To"] = ", ".join(recipients)

    if not plain_fallback:
        plain_fallback = "This email contains HTML content. Enable HTML in your mail client to view it."
    msg.set_content(plain_fallback)
    msg.add_alternative(html_body, subtype="html")

    use_tls_direct = config.MAIL_PORT == 465

    await aiosmtplib.send(
        msg,
        hostname=config.MAIL_SERVER,
        port=config.MAIL_PORT,
        username=config.MAIL_USERNAME,
        password=config.MAIL_PASSWORD,
        use_tls=use_tls_direct,
        start_tls=not use_tls_direct,
    )


class SmtpEmailSender:
    """Delivery collaborator: ``send(to, subject, html)``, raising DeliveryError on any failure."""

    async def send(self, to: str, subject: str, html_body: str) -> None:
        try:
            await send_email_html(subject, [to], html_body)
        except Exception as e:
            raise DeliveryError(f"SMTP delivery failed: {e!r}") from e


def render_otp_email(otp: str, expiry_minutes: int) -> str:
    return (
        f"<!DOCTYPE html>"
        f"<html>"
        f"<head><meta charset='utf-8'><meta name='viewport' content='width=device-width, initial-scale=1.0'></head>"
        f"<body style='font-family: -apple-system, BlinkMacSystemFont, Segoe UI, Roboto, sans-serif; margin: 0; padding: 20px; background-color: #f5f5f5;'>"
        f"<div style='max-width: 400px; margin: 0 auto; background: white; border-radius: 12px; padding: 40px;'>"
        f"<h1 style='color: #1f2937; font-size: 24px; text-align: center;'>Verification Code</h1>"
        f"<p style='color: #6b7280; font-size: 16px; text-align: center;'>Enter this code to verify your email address:</p>"
        f"<div style='background: #f3f4f6; border-radius: 8px; padding: 20px; text-align: center;'>"
        f"<span style='font-family: monospace; font-size: 32px; font-weight: bold; letter-spacing: 8px; color: #1f2937;'>{otp}</span>"
        f"</div>"
        f"<p style='color: #9ca3af; font-size: 14px; text-align: center;'>"
        f"This code expires in <strong>{expiry_minutes} minutes</strong>.<br>"
        f"If you didn't request this code, please ignore this email."
        f"</p>"
        f"<p style='color: #9ca3af; font-size: 12px; text-align: center;'>{config.APP_NAME}</p>"
        f"</div>"
        f"</body>"
        f"</html>"
    )
