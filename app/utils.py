import logging
import smtplib
from datetime import datetime, timezone
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from jinja2 import Environment, FileSystemLoader, select_autoescape
import os
from app.core.config import settings

logger = logging.getLogger(__name__)

template_dir = os.path.join(os.path.dirname(__file__), 'email_templates')
env = Environment(loader=FileSystemLoader(template_dir), autoescape=select_autoescape(['html']))


def utcnow() -> datetime:
    # naive UTC; SQLite drops tzinfo on the way back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def render_template(template_name: str, context: dict) -> str:
    return env.get_template(template_name).render(context)


def send_email(to_email: str, subject: str, template_name: str, context: dict) -> bool:
    html_content = render_template(template_name, context)

    if not settings.smtp_configured:
        logger.info("SMTP not configured, email to %s not sent (subject=%r)", to_email, subject)
        return False

    msg = MIMEMultipart()
    msg['From'] = settings.SMTP_USER
    msg['To'] = to_email
    msg['Subject'] = subject
    msg.attach(MIMEText(html_content, 'html'))

    try:
        with smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT) as server:
            server.starttls()
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.sendmail(settings.SMTP_USER, to_email, msg.as_string())
        return True
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send email to %s", to_email)
        return False


def send_otp_email(to_email: str, otp: str, purpose: str):
    if not settings.smtp_configured:
        # development delivery: the code only reaches the operator log
        logger.warning("OTP for %s (%s): %s (expires in %d minutes)",
                       to_email, purpose, otp, settings.OTP_EXPIRE_MINUTES)
        return False

    if purpose == "reset":
        subject = "Reset your VU Portal password"
        template_name = "password_reset.html"
    else:
        subject = "Verify your VU Portal account"
        template_name = "verification.html"
    return send_email(
        to_email=to_email,
        subject=subject,
        template_name=template_name,
        context={"otp": otp, "expires_minutes": settings.OTP_EXPIRE_MINUTES}
    )


def send_welcome_email(to_email: str, username: str):
    return send_email(
        to_email=to_email,
        subject="Welcome to VU Portal!",
        template_name="welcome.html",
        context={"username": username}
    )
