"""Email service for report status notifications."""

import aiosmtplib
import html
import logging
import re
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from .config import get_settings

logger = logging.getLogger(__name__)


async def send_email(
    to_email: str, subject: str, html_body: str, text_body: Optional[str] = None
) -> bool:
    """
    Send an email using SMTP.

    Args:
        to_email: Recipient email address
        subject: Email subject
        html_body: HTML email body
        text_body: Plain text email body (optional, will be generated from HTML if not provided)

    Returns:
        True if email was sent successfully, False otherwise
    """
    settings = get_settings()
    try:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = settings.email_from
        message["To"] = to_email

        if not text_body:
            text_body = re.sub(r"<[^>]+>", "", html_body)
            text_body = text_body.replace("&nbsp;", " ").replace("&amp;", "&")

        message.attach(MIMEText(text_body, "plain"))
        message.attach(MIMEText(html_body, "html"))

        await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user or None,
            password=settings.smtp_password or None,
            use_tls=settings.smtp_use_tls,
            timeout=settings.email_timeout_seconds,
        )

        logger.info("Email sent successfully to %s: %s", to_email, subject)
        return True

    except Exception as e:
        logger.error("Failed to send email to %s: %s", to_email, e)
        # In development, log the email content instead of failing
        if settings.smtp_host == "localhost":
            logger.info("[DEV MODE] Would send email to %s:", to_email)
            logger.info("Subject: %s", subject)
            logger.info("Body: %s", text_body)
        return False


async def send_notification_email(email: str, subject: str, message: str) -> bool:
    """
    Send a report status notification email.

    Args:
        email: Recipient email address
        subject: Email subject
        message: Notification body as stored in the notification row

    Returns:
        True if email was sent successfully
    """
    paragraphs = "".join(
        f"<p>{html.escape(chunk).replace(chr(10), '<br>')}</p>"
        for chunk in message.split("\n\n")
        if chunk.strip()
    )

    html_body = f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="UTF-8"></head>
    <body style="margin: 0; background: #eef2f7; font-family: Helvetica, Arial, sans-serif; color: #1f2933;">
        <table role="presentation" width="100%" cellpadding="0" cellspacing="0">
            <tr><td align="center" style="padding: 24px;">
                <table role="presentation" width="560" cellpadding="0" cellspacing="0" style="background: #ffffff; border-top: 4px solid #0b6e4f;">
                    <tr><td style="padding: 20px 28px 0;"><strong>Participium</strong> &middot; {html.escape(subject)}</td></tr>
                    <tr><td style="padding: 12px 28px 20px; line-height: 1.5;">
                        <p>Dear citizen,</p>
                        {paragraphs}
                        <p>Open the Participium app to follow the report.</p>
                    </td></tr>
                    <tr><td style="padding: 12px 28px; font-size: 11px; color: #7b8794; border-top: 1px solid #e4e7eb;">
                        Email notifications can be switched off from your profile.
                    </td></tr>
                </table>
            </td></tr>
        </table>
    </body>
    </html>
    """

    text_body = f"""
    {subject}

    Dear citizen,

    {message}

    Open the Participium app to follow the report.
    """

    return await send_email(email, subject, html_body, text_body)
