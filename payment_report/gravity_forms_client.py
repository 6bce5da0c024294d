from __future__ import annotations
"""
Gravity Forms API Client
Fetches application and form submission entries from WordPress Gravity Forms.

- Consumer key/secret auth via query string
- Page-number pagination (100 entries per page)
- All forms fetched concurrently; each form handles its own failures
"""

import json
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from payment_report.aggregators import summarize_applications, summarize_please_wait
from payment_report.utils.windows import format_date, parse_date

PAGE_SIZE = 100
APPLICATIONS_FILENAME = "applications_data.json"

# Form IDs
FORMS = {
    "applications": 4,
    "bank_verification": 10,
    "change_password": 8,
    "documentation_upload": 11,
    "forgot_password": 7,
    "login": 6,
    "make_payment": 13,
    "please_wait": 14,
    "reset_password": 9,
    "upload_document": 12,
}

# Forms reported as a plain total under "other actions"
OTHER_ACTION_LABELS = {
    "upload_document": "Upload Document (Authenticated)",
    "change_password": "Change Password",
    "login": "Login to Member Area",
    "forgot_password": "Forgot Password",
    "reset_password": "Reset Password",
    "make_payment": "Make Payment (Form Submissions)",
}


class GravityFormsError(Exception):
    """Raised when a page of form entries cannot be fetched"""
    pass


def log_forms(message: str):
    """Log Gravity Forms messages with timestamp"""
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] [FORMS] {message}")


def entry_date(entry: Dict[str, Any]) -> Optional[date]:
    """
    date_created is 'YYYY-MM-DD HH:MM:SS'; only the date part matters.
    Returns None for missing or unreadable values so the entry is skipped.
    """
    created = entry.get("date_created")
    if not created or not isinstance(created, str):
        return None
    try:
        return parse_date(created.split(" ")[0])
    except ValueError:
        return None


class GravityFormsClient:
    """Client for the Gravity Forms REST API (v2)"""

    def __init__(
        self,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.entries_url = f"{base_url.rstrip('/')}/wp-json/gf/v2/entries"
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "GravityFormsClient":
        settings.require_gravity_forms()
        return cls(
            base_url=settings.GRAVITY_FORMS_URL,
            consumer_key=settings.GRAVITY_FORMS_KEY,
            consumer_secret=settings.GRAVITY_FORMS_SECRET,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            session=session,
        )

    def _get_page(self, form_id: int, page: int, start_str: str, end_str: str) -> List[Dict[str, Any]]:
        params = {
            "form_ids": form_id,
            "paging[page_size]": PAGE_SIZE,
            "paging[current_page]": page,
            "search": json.dumps({"start_date": start_str, "end_date": end_str}),
            "consumer_key": self.consumer_key,
            "consumer_secret": self.consumer_secret,
        }
        try:
            response = self.session.get(self.entries_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise GravityFormsError(f"Form {form_id} page {page}: {e}") from e

        if not isinstance(data, dict):
            raise GravityFormsError(f"Form {form_id} page {page}: expected a JSON object, got {type(data).__name__}")
        return data.get("entries") or []

    def fetch_form_entries(self, form_id: int, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        """
        Fetch entries of one form created within [start_date, end_date].
        A failing page stops pagination for this form; entries fetched so far are kept.
        """
        start_str = format_date(start_date)
        end_str = format_date(end_date)
        log_forms(f"Fetching Form {form_id} entries from {start_str} to {end_str}...")

        all_entries: List[Dict[str, Any]] = []
        page = 1

        while True:
            try:
                entries = self._get_page(form_id, page, start_str, end_str)
            except GravityFormsError as e:
                log_forms(f"⚠️  Error fetching form {form_id} page {page}: {e}")
                break

            if not entries:
                break

            for entry in entries:
                created = entry_date(entry)
                if created and start_date <= created <= end_date:
                    all_entries.append(entry)

            if len(entries) < PAGE_SIZE:
                break

            page += 1

        log_forms(f"Found {len(all_entries)} entries for Form {form_id}")
        return all_entries

    def fetch_all_forms(self, start_date: date, end_date: date, max_workers: int = len(FORMS)) -> Dict[str, List[Dict[str, Any]]]:
        """Fetch every configured form concurrently and wait for all of them"""
        results: Dict[str, List[Dict[str, Any]]] = {}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self.fetch_form_entries, form_id, start_date, end_date): name
                for name, form_id in FORMS.items()
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()

        return results


def build_applications_data(entries_by_form: Dict[str, List[Dict[str, Any]]], start_date: date, end_date: date) -> Dict[str, Any]:
    """Shape fetched entries into the applications document used by the report"""
    def total(name: str) -> int:
        return len(entries_by_form.get(name, []))

    return {
        "date_range_start": format_date(start_date),
        "date_range_end": format_date(end_date),
        "last_updated": format_date(datetime.now().date()),
        "applications": summarize_applications(entries_by_form.get("applications", [])),
        "please_wait_submissions": summarize_please_wait(entries_by_form.get("please_wait", [])),
        "bank_verification": {"total": total("bank_verification")},
        "documentation_upload_during_application": {"total": total("documentation_upload")},
        "other_actions": {
            name: {"label": label, "total": total(name)}
            for name, label in OTHER_ACTION_LABELS.items()
        },
    }


def fetch_gravity_forms_data(client: GravityFormsClient, start_date: date, end_date: date) -> Dict[str, Any]:
    log_forms("=== Fetching Gravity Forms Data ===")
    log_forms(f"Date range: {start_date} to {end_date}")

    entries_by_form = client.fetch_all_forms(start_date, end_date)
    data = build_applications_data(entries_by_form, start_date, end_date)

    apps = data["applications"]
    log_forms(f"Applications: {apps['total']} (first time {apps['first_time_applications']}, "
              f"returning {apps['returning_customers']}, kiosks {apps['from_store_kiosks']})")
    log_forms(f"Please Wait Submissions: {data['please_wait_submissions']['total']}")
    log_forms(f"Bank Verifications: {data['bank_verification']['total']}")
    log_forms(f"Logins: {data['other_actions']['login']['total']}")

    return data


def save_applications_data(data: Dict[str, Any], manual_dir: Path) -> Path:
    manual_dir = Path(manual_dir)
    manual_dir.mkdir(parents=True, exist_ok=True)
    output_path = manual_dir / APPLICATIONS_FILENAME
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    log_forms(f"Saved Gravity Forms data to: {output_path}")
    return output_path


def load_applications_data(manual_dir: Path) -> Optional[Dict[str, Any]]:
    path = Path(manual_dir) / APPLICATIONS_FILENAME
    if not path.exists():
        log_forms("⚠️  No applications data found")
        return None

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    log_forms(f"Loaded applications data ({data.get('date_range_start')} to {data.get('date_range_end')})")
    return data
