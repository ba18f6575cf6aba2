"""
Email Service - transactional e-mail over SMTP.

When SMTP is not configured the message is logged and skipped, so local
development and tests never need a mail server. Sending never raises:
callers get True/False.
"""

import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional
from urllib.parse import quote

from monera.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

SMTP_TIMEOUT_SECONDS = 10

_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
    "{body}"
    "<p>Best regards,<br>The Monera Team</p>"
    "</div>"
)


def send_email(to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> bool:
    """Send one e-mail. Returns False when skipped or when delivery fails."""
    if not settings.smtp_configured:
        logger.info("SMTP not configured, skipping e-mail to %s: %s", to, subject)
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to
    msg.set_content(text_body or subject)
    msg.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)
        logger.info("E-mail sent to %s: %s", to, subject)
        return True
    except smtplib.SMTPException:
        logger.exception("SMTP error while sending e-mail to %s", to)
        return False
    except OSError:
        logger.exception("SMTP network error while sending e-mail to %s", to)
        return False


# ============================================================
# TEMPLATES
# ============================================================

class EmailTemplates:
    """Each template returns (subject, html, text)."""

    @staticmethod
    def email_verification(name: Optional[str], code: str, email: str):
        verify_url = f"{settings.frontend_url}/verify-email?email={quote(email)}"
        body = (
            "<h1>Verify Your Email Address</h1>"
            f"<p>Hi {html.escape(name or 'there')},</p>"
            "<p>Thank you for signing up for Monera! Enter the code below to verify your e-mail address:</p>"
            f'<p style="font-size: 32px; font-weight: bold; letter-spacing: 8px;">{code}</p>'
            "<p>This code expires in 10 minutes.</p>"
            f'<p>Or open <a href="{verify_url}">{verify_url}</a> and enter the code there.</p>'
        )
        text = f"Hi {name or 'there'}, your Monera verification code is {code}. It expires in 10 minutes."
        return "Verify Your Email - Monera", _WRAPPER.format(body=body), text

    @staticmethod
    def password_reset(name: Optional[str], token: str):
        reset_url = f"{settings.frontend_url}/reset-password?token={token}"
        body = (
            "<h1>Password Reset Request</h1>"
            f"<p>Hi {html.escape(name or 'there')},</p>"
            "<p>You requested to reset your password. Click the link below to reset it:</p>"
            f'<p><a href="{reset_url}">Reset Password</a></p>'
            "<p>This link will expire in 1 hour.</p>"
            "<p>If you didn't request this, please ignore this email.</p>"
        )
        text = f"Hi {name or 'there'}, click this link to reset your password: {reset_url}"
        return "Password Reset Request", _WRAPPER.format(body=body), text

    @staticmethod
    def new_application(recruiter_name: Optional[str], candidate_name: str, job_title: str):
        body = (
            "<h1>New Application Received</h1>"
            f"<p>Hi {html.escape(recruiter_name or 'there')},</p>"
            f"<p>You have received a new application from <strong>{html.escape(candidate_name)}</strong> "
            f"for the position of <strong>{html.escape(job_title)}</strong>.</p>"
            "<p>Log in to review the application.</p>"
        )
        text = f"Hi {recruiter_name or 'there'}, you have received a new application from {candidate_name} for {job_title}."
        return f"New Application - {job_title}", _WRAPPER.format(body=body), text

    @staticmethod
    def application_status_update(candidate_name: str, job_title: str, status: str, company_name: Optional[str] = None):
        at_company = f" at {html.escape(company_name)}" if company_name else ""
        body = (
            "<h1>Application Status Update</h1>"
            f"<p>Hi {html.escape(candidate_name)},</p>"
            f"<p>Your application for <strong>{html.escape(job_title)}</strong>{at_company} has been updated.</p>"
            f"<p><strong>New Status:</strong> {status}</p>"
            "<p>Log in to your account to view more details.</p>"
        )
        text = f"Hi {candidate_name}, your application for {job_title} status has been updated to {status}."
        return f"Application Update - {job_title}", _WRAPPER.format(body=body), text

    @staticmethod
    def new_talent_request(request: dict):
        admin_url = f"{settings.frontend_url}/admin/talent-requests/{request['id']}"
        rows = [
            ("Client Name", request["client_name"]),
            ("Email", request["email"]),
            ("Company", request.get("company") or "Not provided"),
            ("Talent Type", request["talent_type"]),
            ("Budget", request["budget"]),
            ("Notes", request.get("notes") or "No notes provided"),
        ]
        table = "".join(
            f"<tr><td><strong>{label}:</strong></td><td>{html.escape(str(value))}</td></tr>"
            for label, value in rows
        )
        body = (
            "<h1>New Talent Request Received</h1>"
            f"<table>{table}</table>"
            f'<p><a href="{admin_url}">View Request in Dashboard</a></p>'
        )
        text = "New Talent Request Received\n\n" + "\n".join(f"{label}: {value}" for label, value in rows)
        text += f"\n\nView request: {admin_url}"
        return "New Talent Request Received", _WRAPPER.format(body=body), text


email_templates = EmailTemplates()


def send_template(to: Optional[str], template) -> bool:
    """Send a (subject, html, text) tuple produced by EmailTemplates."""
    if not to:
        return False
    subject, html_body, text_body = template
    return send_email(to, subject, html_body, text_body)
