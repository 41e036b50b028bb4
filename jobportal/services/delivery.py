"""
Outbound email / SMS delivery.

Email goes over SMTP (STARTTLS), SMS over the Twilio REST API. Both are
retried with backoff. When a provider is not configured the message is
logged instead, which is how local development sees its OTPs.

Two ways to send:
- dispatch(): hand the send to FastAPI BackgroundTasks. The request
  returns first; failures only reach the `jobportal.delivery` log.
- send_now(): send inline, raise UpstreamFailure so the caller can retry.
"""

import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Union

import requests
from fastapi import BackgroundTasks

from jobportal.core.config import Settings
from jobportal.core.errors import UpstreamFailure
from jobportal.core.log import get_logger
from jobportal.utils.retry import retry

log = get_logger("jobportal.delivery")

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str = ""


@dataclass
class SmsMessage:
    to: str
    body: str


Message = Union[EmailMessage, SmsMessage]


# ============================================================
# Providers
# ============================================================

def _rejected_by_twilio(exc: BaseException) -> bool:
    response = getattr(exc, "response", None)
    return response is not None and 400 <= response.status_code < 500


@retry(attempts=3, delay=2.0, on=(smtplib.SMTPException, OSError),
       give_up=lambda exc: isinstance(exc, smtplib.SMTPAuthenticationError))
def _smtp_send(host: str, port: int, user: str, password: str, from_addr: str, to_addr: str, msg: MIMEMultipart) -> None:
    with smtplib.SMTP(host, port, timeout=20) as server:
        server.starttls()
        server.login(user, password)
        server.sendmail(from_addr, [to_addr], msg.as_string())


@retry(attempts=2, delay=1.5, on=(requests.RequestException,), give_up=_rejected_by_twilio)
def _twilio_send(sid: str, auth_token: str, from_number: str, to: str, body: str) -> None:
    r = requests.post(
        TWILIO_MESSAGES_URL.format(sid=sid),
        data={"To": to, "From": from_number, "Body": body},
        auth=(sid, auth_token),
        timeout=15,
    )
    r.raise_for_status()


class EmailSender:

    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, message: EmailMessage) -> None:
        s = self.settings
        if not s.email_enabled:
            log.info("[DEV EMAIL] to=%s subject=%r\n%s", message.to, message.subject, message.text or message.html)
            return

        from_addr = s.mail_from or s.smtp_user
        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = from_addr
        msg["To"] = message.to
        if message.text:
            msg.attach(MIMEText(message.text, "plain", "utf-8"))
        msg.attach(MIMEText(message.html, "html", "utf-8"))

        _smtp_send(s.smtp_host, s.smtp_port, s.smtp_user, s.smtp_password, from_addr, message.to, msg)
        log.info("Email sent to %s", message.to)


class SmsSender:

    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, message: SmsMessage) -> None:
        s = self.settings
        if not s.sms_enabled:
            log.info("[DEV SMS] to=%s: %s", message.to, message.body)
            return
        _twilio_send(s.twilio_account_sid, s.twilio_auth_token, s.twilio_from_number, message.to, message.body)
        log.info("SMS sent to %s", message.to)


# ============================================================
# Dispatcher
# ============================================================

class DeliveryDispatcher:

    def __init__(self, settings: Settings, email_sender: EmailSender = None, sms_sender: SmsSender = None):
        self.email = email_sender or EmailSender(settings)
        self.sms = sms_sender or SmsSender(settings)

    def _send(self, message: Message) -> None:
        if isinstance(message, SmsMessage):
            self.sms.send(message)
        else:
            self.email.send(message)

    def send_now(self, message: Message) -> None:
        """Deliver before returning; provider failure -> UpstreamFailure."""
        try:
            self._send(message)
        except Exception as e:
            log.error("Delivery to %s failed: %s", message.to, e)
            raise UpstreamFailure("Failed to send the code. Try again later.")

    def dispatch(self, background_tasks: BackgroundTasks, message: Message) -> None:
        """Fire-and-forget: runs after the response is sent."""
        background_tasks.add_task(self._send_logged, message)

    def _send_logged(self, message: Message) -> None:
        try:
            self._send(message)
        except Exception:
            log.exception("Background delivery to %s failed", message.to)


# ============================================================
# Message templates
# ============================================================

def _code_block(title: str, code: str, minutes: int) -> str:
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #2563eb; text-align: center;">{title}</h2>
  <div style="background-color: #f8f9fa; border: 1px solid #e9ecef; border-radius: 8px; padding: 20px; margin: 20px 0; text-align: center;">
    <div style="font-size: 32px; font-weight: bold; color: #2563eb; letter-spacing: 4px;">{code}</div>
    <p style="color: #6c757d; font-size: 14px;">This code will expire in {minutes} minutes</p>
  </div>
  <p style="color: #6c757d; font-size: 12px;">This is an automated message from Job Portal. Please do not reply.</p>
</div>"""


def verification_email(to: str, code: str, minutes: int = 10) -> EmailMessage:
    return EmailMessage(
        to=to,
        subject="Email Verification OTP - Job Portal",
        html=_code_block("Welcome to Job Portal!", code, minutes),
        text=f"Your verification code is {code}. It expires in {minutes} minutes.",
    )


def password_reset_otp_email(to: str, code: str, minutes: int = 10) -> EmailMessage:
    return EmailMessage(
        to=to,
        subject="Password Reset OTP - Job Portal",
        html=_code_block("Password Reset Request", code, minutes),
        text=f"Your password reset code is {code}. It expires in {minutes} minutes.",
    )


def password_reset_link_email(to: str, reset_url: str, minutes: int = 10) -> EmailMessage:
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h2 style="color: #2563eb; text-align: center;">Password Reset Request</h2>
  <p>You requested a password reset for your Job Portal account.</p>
  <div style="text-align: center; margin: 30px 0;">
    <a href="{reset_url}" style="background-color: #2563eb; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">Reset Password</a>
  </div>
  <p style="color: #6c757d; font-size: 14px;">This link will expire in {minutes} minutes.</p>
  <p style="color: #6c757d; font-size: 14px;">If you didn't request this, please ignore this email.</p>
</div>"""
    return EmailMessage(
        to=to,
        subject="Password Reset - Job Portal",
        html=html,
        text=f"Reset your password: {reset_url} (expires in {minutes} minutes)",
    )


def phone_otp_sms(to: str, code: str, minutes: int = 10) -> SmsMessage:
    return SmsMessage(to=to, body=f"Your Job Portal verification code is {code}. It expires in {minutes} minutes.")
