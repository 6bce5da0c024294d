from __future__ import annotations
"""
Report Mailer
Delivers the generated report via the SendGrid API.
HTML summary body + plain text fallback, full HTML report attached.
"""

import base64
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Attachment, Disposition, FileContent, FileName, FileType, Mail


class ReportDeliveryError(Exception):
    """Raised when the report email could not be sent"""
    pass


def log_email(message: str):
    """Log email-related messages with timestamp"""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] [EMAIL] {message}")


def generate_plain_text(ctx: Dict[str, Any]) -> str:
    """Generate plain text version of the report email."""
    body = f"""Weekly Application & Payment Report
Period: {ctx['start_date']} to {ctx['end_date']}

Payments:
- Successful: {ctx['success_events']:,} events ({ctx['success_users']:,} users)
- Errors: {ctx['error_events']:,} events ({ctx['error_users']:,} users)
"""
    if ctx.get("applications_total") is not None:
        body += f"""
Applications:
- Total: {ctx['applications_total']:,}
- First time: {ctx['applications_first_time']:,}
"""
    body += "\nThe full report is attached.\n"
    return body


def generate_html_email(ctx: Dict[str, Any]) -> str:
    applications = ""
    if ctx.get("applications_total") is not None:
        applications = f"""
        <p><strong>Applications:</strong> {ctx['applications_total']:,} total,
        {ctx['applications_first_time']:,} first time</p>"""

    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; color: #111827;">
    <h2>Weekly Application &amp; Payment Report</h2>
    <p>Period: {ctx['start_date']} to {ctx['end_date']}</p>
    <p><strong>Successful payments:</strong> {ctx['success_events']:,} events ({ctx['success_users']:,} users)</p>
    <p><strong>Payment errors:</strong> {ctx['error_events']:,} events ({ctx['error_users']:,} users)</p>{applications}
    <p style="color: #6B7280; font-size: 13px;">The full report is attached.</p>
</body>
</html>
"""


def build_report_message(
    ctx: Dict[str, Any],
    report_path: Path,
    from_email: str,
    recipients: List[str],
) -> Mail:
    """Create multi-part SendGrid Mail object with the report attached"""
    message = Mail(
        from_email=from_email,
        to_emails=recipients,
        subject=f"Weekly Application & Payment Report ({ctx['start_date']} to {ctx['end_date']})",
        plain_text_content=generate_plain_text(ctx),
        html_content=generate_html_email(ctx),
    )

    encoded = base64.b64encode(Path(report_path).read_bytes()).decode()
    message.attachment = Attachment(
        FileContent(encoded),
        FileName(Path(report_path).name),
        FileType("text/html"),
        Disposition("attachment"),
    )
    return message


def send_report_email(
    settings,
    report_path: Path,
    ctx: Dict[str, Any],
    client: Optional[SendGridAPIClient] = None,
) -> None:
    """
    Send the report to REPORT_RECIPIENTS.

    Raises:
        ConfigurationError: SendGrid settings or recipients missing
        ReportDeliveryError: SendGrid rejected or failed the request
    """
    settings.require_email()
    recipients = settings.REPORT_RECIPIENTS

    message = build_report_message(ctx, report_path, settings.SENDGRID_FROM_EMAIL, recipients)

    log_email(f"Sending report to {len(recipients)} recipient(s)")
    try:
        sg = client or SendGridAPIClient(settings.SENDGRID_API_KEY)
        response = sg.send(message)
    except Exception as e:
        raise ReportDeliveryError(f"SendGrid request failed: {e}") from e

    if response.status_code not in (200, 202):
        raise ReportDeliveryError(f"SendGrid returned status {response.status_code}")

    for recipient in recipients:
        log_email(f"Sent to {recipient}")
    log_email("✅ Report email sent successfully")
