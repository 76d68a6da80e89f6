"""Jinja2 email template rendering."""

from pathlib import Path

import structlog
from jinja2 import Environment, FileSystemLoader

from app.core.config import get_settings

logger = structlog.get_logger()

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
_env = Environment(loader=FileSystemLoader(str(_TEMPLATE_DIR)), autoescape=True)


def render(template_name: str, **ctx) -> str:
    """Render an email template with the given context."""
    tpl = _env.get_template(template_name)
    return tpl.render(**ctx)


def build_otp_email(full_name: str, otp: str, expires_minutes: int) -> tuple[str, str]:
    """Return (subject, html) for a verification code email."""
    settings = get_settings()
    html = render(
        "email/otp_verification.html",
        user_name=full_name,
        otp=otp,
        expires_minutes=expires_minutes,
        app_name=settings.APP_NAME,
    )
    return f"Your {settings.APP_NAME} verification code", html


def dispatch_email(to: str, subject: str, html: str) -> None:
    """Hand a rendered email over for delivery.

    Delivery is not wired up; the message is only logged (without its body).
    """
    settings = get_settings()
    logger.info(
        "email_prepared",
        to=to,
        sender=settings.EMAIL_FROM,
        subject=subject,
        size=len(html),
    )
