import logging

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from pydantic import EmailStr

from pos_backend.core.config import settings

logger = logging.getLogger(__name__)


def get_mail_config() -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.MAIL_USERNAME,
        MAIL_PASSWORD=settings.MAIL_PASSWORD,
        MAIL_FROM=settings.MAIL_FROM,
        MAIL_FROM_NAME=settings.MAIL_FROM_NAME,
        MAIL_PORT=settings.MAIL_PORT,
        MAIL_SERVER=settings.MAIL_SERVER,
        MAIL_STARTTLS=settings.MAIL_STARTTLS,
        MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
        USE_CREDENTIALS=True,
        VALIDATE_CERTS=True
    )


def otp_email_html(full_name: str, otp: str, expires_in_minutes: int) -> str:
    return f"""
    <html>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <div style="background-color: #f4f4f4; padding: 20px;">
                <div style="background-color: white; padding: 20px; border-radius: 8px; max-width: 500px; margin: auto;">
                    <h2 style="color: #2c3e50;">Hello {full_name},</h2>
                    <p>Your One-Time Password (OTP) is:</p>
                    <p style="font-size: 1.5rem; font-weight: bold; letter-spacing: 0.1em;">{otp}</p>
                    <p>This code will expire in {expires_in_minutes} minutes.</p>
                    <p style="margin-top: 20px; font-size: 12px; color: #777;">
                        If you did not request this, you can safely ignore this email.
                    </p>
                </div>
            </div>
        </body>
    </html>
    """


async def send_otp_email(email_to: EmailStr, otp: str, full_name: str = "") -> bool:
    """
    Sends the password-reset OTP.
    Without SMTP credentials the code is written to the log instead, so local setups still work.
    """
    if not settings.mail_enabled:
        logger.warning("SMTP credentials not set; OTP for %s is %s", email_to, otp)
        return False

    message = MessageSchema(
        subject="Your One-Time Password",
        recipients=[email_to],
        body=otp_email_html(full_name or email_to, otp, settings.OTP_EXPIRE_MINUTES),
        subtype=MessageType.html
    )

    fm = FastMail(get_mail_config())
    await fm.send_message(message)
    logger.info("Sent OTP to %s", email_to)
    return True
