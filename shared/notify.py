"""
Completion notifications: webhook reply and SendGrid email.
"""

import html
import logging
from datetime import datetime
from typing import Optional, Sequence

import httpx

from shared.errors import NotifyError

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
TIMEOUT = 30.0


def reply_to(url: str, bucket: str, key: str) -> None:
    """
    Tell the caller where the report landed.
    Raises:
        NotifyError: On transport errors or a non-2xx response.
    """
    try:
        r = httpx.put(
            url,
            json={"status": "completed", "csv_s3_bucket": bucket, "csv_s3_key": key},
            timeout=TIMEOUT,
        )
        r.raise_for_status()
    except httpx.HTTPError as e:
        raise NotifyError(f"Error updating report at {url}: {e}") from e
    logger.info("Replied to %s", url)


def email_body(title: str, link: str, start: datetime, end: datetime, group_name: Optional[str] = None) -> str:
    who = f" for {html.escape(group_name)}" if group_name else ""
    return (
        f"<p>Your {title}{who} covering {start:%Y-%m-%d} to {end:%Y-%m-%d} is ready.</p>"
        f'<p><a href="{html.escape(link)}">Download the report</a></p>'
        "<p>This link expires in 7 days.</p>"
    )


def send_report_email(
    api_key: str,
    from_email: str,
    recipients: Sequence[str],
    title: str,
    link: str,
    start: datetime,
    end: datetime,
    group_name: Optional[str] = None,
) -> None:
    """
    Email a download link through the SendGrid v3 mail endpoint.
    Raises:
        NotifyError: On transport errors or a non-2xx response.
    """
    payload = {
        "personalizations": [{"to": [{"email": email} for email in recipients]}],
        "from": {"email": from_email},
        "subject": f"{title}: {start:%Y-%m-%d} - {end:%Y-%m-%d}",
        "content": [
            {"type": "text/html", "value": email_body(title, link, start, end, group_name)}
        ],
    }
    try:
        r = httpx.post(
            SENDGRID_URL,
            json=payload,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=TIMEOUT,
        )
        r.raise_for_status()
    except httpx.HTTPError as e:
        raise NotifyError(f"Error emailing report: {e}") from e
    logger.info("Emailed report link to %d recipient(s)", len(recipients))
