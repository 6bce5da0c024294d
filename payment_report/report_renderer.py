from __future__ import annotations
"""
HTML Report Renderer
Writes the payment & applications report as a standalone HTML file (tables only).
"""

from datetime import date, datetime
from html import escape
from pathlib import Path
from typing import Any, Dict, List, Optional

from payment_report.utils.windows import format_date


def log_report(message: str):
    """Log report messages with timestamp"""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] [REPORT] {message}")


STYLE = """
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; background: #f5f5f5; color: #111827; margin: 0; }
        .container { max-width: 1100px; margin: 0 auto; padding: 30px 20px; }
        .header h1 { color: #31C1FF; font-size: 24px; margin: 0 0 5px 0; }
        .subtitle { color: #484848; font-size: 14px; }
        .section { background: #fff; padding: 24px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); margin: 24px 0; }
        .section-title { font-size: 20px; font-weight: 600; margin-bottom: 12px; }
        .cards { overflow: hidden; }
        .card { float: left; width: 46%; margin-right: 4%; padding: 16px; border-radius: 8px; color: #fff; text-align: center; box-sizing: border-box; }
        .card.success { background: #11998e; }
        .card.error { background: #eb3349; }
        .card .number { font-size: 28px; font-weight: bold; }
        .card .label { font-size: 13px; opacity: 0.9; }
        table { width: 100%; border-collapse: collapse; font-size: 14px; }
        th, td { padding: 8px 10px; border-bottom: 1px solid #E5E7EB; text-align: left; }
        th { background: #F9FAFB; color: #6B7280; text-transform: uppercase; font-size: 12px; }
        td.num { text-align: right; }
"""


def _rows(items: List[Dict[str, Any]], label_key: str) -> str:
    return "\n".join(
        f"                <tr><td>{escape(str(item[label_key]))}</td>"
        f"<td class=\"num\">{item['count']:,}</td>"
        f"<td class=\"num\">{item['unique_users']:,}</td>"
        f"<td class=\"num\">{item['percentage']:.2f}%</td></tr>"
        for item in items
    )


def _applications_section(applications_data: Optional[Dict[str, Any]]) -> str:
    if not applications_data:
        return ""

    apps = applications_data.get("applications", {})
    please_wait = applications_data.get("please_wait_submissions", {})
    by_state = "\n".join(
        f"                <tr><td>{escape(state)}</td><td class=\"num\">{count:,}</td></tr>"
        for state, count in sorted(apps.get("by_state", {}).items(), key=lambda kv: kv[1], reverse=True)
    )
    other_actions = "\n".join(
        f"                <tr><td>{escape(action['label'])}</td><td class=\"num\">{action['total']:,}</td></tr>"
        for action in applications_data.get("other_actions", {}).values()
    )

    return f"""
        <div class="section">
            <div class="section-title">Applications</div>
            <table>
                <tr><td>Total applications</td><td class="num">{apps.get('total', 0):,}</td></tr>
                <tr><td>First-time applications</td><td class="num">{apps.get('first_time_applications', 0):,}</td></tr>
                <tr><td>Returning customers</td><td class="num">{apps.get('returning_customers', 0):,}</td></tr>
                <tr><td>From store kiosks</td><td class="num">{apps.get('from_store_kiosks', 0):,}</td></tr>
                <tr><td>Bank verifications</td><td class="num">{applications_data.get('bank_verification', {}).get('total', 0):,}</td></tr>
                <tr><td>Documentation uploads during application</td><td class="num">{applications_data.get('documentation_upload_during_application', {}).get('total', 0):,}</td></tr>
                <tr><td>"Please wait" submissions (complete / server error)</td><td class="num">{please_wait.get('total', 0):,} ({please_wait.get('complete', 0):,} / {please_wait.get('error_server', 0):,})</td></tr>
            </table>
        </div>

        <div class="section">
            <div class="section-title">Applications by State</div>
            <table>
                <tr><th>State</th><th>Applications</th></tr>
{by_state}
            </table>
        </div>

        <div class="section">
            <div class="section-title">Other Member Actions</div>
            <table>
                <tr><th>Action</th><th>Submissions</th></tr>
{other_actions}
            </table>
        </div>
"""


def generate_html(
    error_data: Dict[str, Any],
    success_data: Dict[str, Any],
    applications_data: Optional[Dict[str, Any]],
    start_date: date,
    end_date: date,
    generated_on: Optional[date] = None,
) -> str:
    generated_on = generated_on or datetime.now().date()
    days = (end_date - start_date).days + 1

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Weekly Application and Payment Report</title>
    <style>{STYLE}    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Application and Payment Report</h1>
            <div class="subtitle">{format_date(start_date)} to {format_date(end_date)} ({days} days) &middot; generated {generated_on.strftime('%m/%d/%Y')}</div>
        </div>

        <div class="section">
            <div class="section-title">Payment Summary</div>
            <div class="cards">
                <div class="card success">
                    <div class="number">{success_data['total_events']:,}</div>
                    <div class="label">Successful payments &middot; {success_data['total_users']:,} users</div>
                </div>
                <div class="card error">
                    <div class="number">{error_data['total_events']:,}</div>
                    <div class="label">Payment errors &middot; {error_data['total_users']:,} users</div>
                </div>
            </div>
        </div>

        <div class="section">
            <div class="section-title">Top Payment Error Reasons</div>
            <table>
                <tr><th>Reason</th><th>Events</th><th>Users</th><th>Share</th></tr>
{_rows(error_data['chart_reasons'], 'reason')}
            </table>
        </div>

        <div class="section">
            <div class="section-title">Payment Errors by Reason</div>
            <table>
                <tr><th>Reason</th><th>Events</th><th>Users</th><th>Share</th></tr>
{_rows(error_data['reasons'], 'reason')}
            </table>
        </div>

        <div class="section">
            <div class="section-title">Successful Payments by Merchant</div>
            <table>
                <tr><th>Merchant</th><th>Events</th><th>Users</th><th>Share</th></tr>
{_rows(success_data['merchants'], 'merchant_id')}
            </table>
        </div>
{_applications_section(applications_data)}
    </div>
</body>
</html>
"""


def render_html_report(
    error_data: Dict[str, Any],
    success_data: Dict[str, Any],
    applications_data: Optional[Dict[str, Any]],
    start_date: date,
    end_date: date,
    output_dir: Path,
) -> Path:
    """Write payment_report_<today>.html into output_dir and return its path"""
    today = datetime.now().date()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_file = output_dir / f"payment_report_{format_date(today)}.html"

    html = generate_html(error_data, success_data, applications_data, start_date, end_date, generated_on=today)
    output_file.write_text(html, encoding="utf-8")

    log_report(f"HTML report saved: {output_file}")
    return output_file
