import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from celery import Celery

from .config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "survey_tasks",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)


def build_receipt(username: str, survey_title: str, total_score: Optional[int]) -> str:
    lines = [
        f"Dear {username},",
        "",
        f'Thank you for completing the survey "{survey_title}".',
        "Your responses have been recorded successfully.",
    ]
    if total_score is not None:
        lines.append(f"Your score: {total_score}")
    lines.extend(["", "Best regards,", settings.EMAILS_FROM_NAME])
    return "\n".join(lines)


@celery_app.task
def send_submission_receipt(email: str, username: str, survey_title: str, total_score: Optional[int] = None):
    """Send the respondent an e-mail receipt for a stored submission."""
    if not settings.SMTP_HOST:
        logger.info("SMTP not configured, skipping receipt for %s", email)
        return {"status": "skipped"}

    msg = MIMEMultipart()
    msg["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
    msg["To"] = email
    msg["Subject"] = f"Survey Completion: {survey_title}"
    msg.attach(MIMEText(build_receipt(username, survey_title, total_score), "plain"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            if settings.SMTP_TLS:
                server.starttls()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send receipt to %s: %s", email, e)
        return {"status": "failed"}

    return {"status": "Email sent successfully"}
