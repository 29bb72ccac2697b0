"""Outgoing mail for verification and password reset codes.

smtplib is blocking, so each send runs in a worker thread.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from scorehub.config import settings

logger = logging.getLogger("scorehub.email")


class EmailDeliveryError(RuntimeError):
    """The SMTP server rejected the message or could not be reached."""


def _build_message(to: str, subject: str, text: str, html: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = settings.MAIL_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(text)
    msg.add_alternative(html, subtype="html")
    return msg


def _send_sync(msg: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.HTTP_TIMEOUT_SECONDS) as smtp:
        if settings.SMTP_STARTTLS:
            smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        smtp.send_message(msg)


async def send_email(to: str, subject: str, text: str, html: str) -> None:
    msg = _build_message(to, subject, text, html)
    try:
        await asyncio.to_thread(_send_sync, msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Sending '%s' to %s failed: %s", subject, to, exc)
        raise EmailDeliveryError(str(exc)) from exc
    logger.info("Sent '%s' to %s", subject, to)


async def send_verification_email(to: str, username: str, otp: str) -> None:
    minutes = settings.OTP_EXPIRE_MINUTES
    await send_email(
        to,
        "Email Verification",
        f"Welcome to ScoreHub, {username}! Your verification code is: {otp}. "
        f"This code will expire in {minutes} minutes.",
        f"<h1>Welcome to ScoreHub!</h1>"
        f"<p>Hello {username},</p>"
        f"<p>Your verification code is: <strong>{otp}</strong></p>"
        f"<p>This code will expire in {minutes} minutes.</p>"
        f"<p>If you didn't request this code, please ignore this email.</p>",
    )


async def send_password_reset_email(to: str, code: str) -> None:
    minutes = settings.RESET_TOKEN_EXPIRE_MINUTES
    await send_email(
        to,
        "Password Reset Request",
        f"Your password reset code is: {code}. This code will expire in {minutes} minutes.",
        f"<h1>Password Reset Request</h1>"
        f"<p>Your password reset code is: <strong>{code}</strong></p>"
        f"<p>This code will expire in {minutes} minutes.</p>"
        f"<p>If you didn't request this code, please ignore this email.</p>",
    )
