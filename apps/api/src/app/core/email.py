"""
Email Service using Resend

Handles sending emails for password resets and application notifications.
Sending never fails a request: errors are logged and reported as False.
"""

import asyncio
import logging
from html import escape

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = settings.resend_api_key

_LAYOUT = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
        .header {{ color: #7f1d1d; margin-bottom: 24px; }}
        .button {{ display: inline-block; background-color: #7f1d1d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
        .number {{ font-size: 20px; font-weight: bold; letter-spacing: 1px; }}
        .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
    </style>
</head>
<body>
    <div class="container">
        <h1 class="header">{title}</h1>
        {body}
        <div class="footer">
            <p>BMIET Admissions Office</p>
        </div>
    </div>
</body>
</html>
"""


def _render(title: str, body: str) -> str:
    return _LAYOUT.format(title=escape(title), body=body)


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_password_reset(to_email: str, name: str, token: str) -> bool:
    """Send a password reset link."""
    reset_url = f"{settings.frontend_url}/reset-password?token={token}"
    body = f"""
        <p>Hello {escape(name)},</p>
        <p>We received a request to reset the password for your admissions account.</p>
        <a href="{reset_url}" class="button">Reset Password</a>
        <p>Or copy and paste this link into your browser:</p>
        <p style="word-break: break-all; color: #3b82f6;">{reset_url}</p>
        <p><strong>This link expires in {settings.password_reset_token_hours} hour(s)
        and can only be used once.</strong></p>
        <p>If you didn't ask for a reset, you can safely ignore this email.</p>
    """
    return await send_email(
        to_email=to_email,
        subject="Reset your admissions portal password",
        html_content=_render("Password Reset", body),
    )


async def send_application_submitted(
    to_email: str,
    name: str,
    course_name: str,
    application_number: str,
) -> bool:
    """Confirm a submitted application and its number."""
    body = f"""
        <p>Hello {escape(name)},</p>
        <p>Your application for <strong>{escape(course_name)}</strong> has been submitted.</p>
        <p>Your application number is:</p>
        <p class="number">{escape(application_number)}</p>
        <p>Please quote this number in any correspondence with the admissions office.</p>
        <a href="{settings.frontend_url}/applications" class="button">View Application</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Application {application_number} received",
        html_content=_render("Application Submitted", body),
    )


async def send_application_decision(
    to_email: str,
    name: str,
    course_name: str,
    application_number: str | None,
    accepted: bool,
    comments: str | None = None,
) -> bool:
    """Notify the applicant of an accept/reject decision."""
    outcome = "accepted" if accepted else "not accepted"
    comments_html = (
        f"<p><strong>Comments from the admissions team:</strong></p><p>{escape(comments)}</p>"
        if comments
        else ""
    )
    reference = f" ({escape(application_number)})" if application_number else ""
    body = f"""
        <p>Hello {escape(name)},</p>
        <p>Your application{reference} for <strong>{escape(course_name)}</strong>
        has been <strong>{outcome}</strong>.</p>
        {comments_html}
        <a href="{settings.frontend_url}/applications" class="button">View Application</a>
    """
    title = "Congratulations!" if accepted else "Application Decision"
    return await send_email(
        to_email=to_email,
        subject=f"Decision on your application for {course_name}",
        html_content=_render(title, body),
    )
