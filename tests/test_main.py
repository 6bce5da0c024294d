"""
Tests for main.py - the weekly pipeline with fake upstream clients and mailer.
"""
from datetime import date

import pytest

from payment_report.main import NoReportDataError, run_weekly_report
from payment_report.settings import ConfigurationError
from payment_report.sources import PAYMENT_ERROR

from conftest import make_event

START = date(2025, 10, 1)
END = date(2025, 10, 7)


class FakeSentryClient:

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.calls = []

    def fetch_events(self, source, start_date, end_date):
        self.calls.append((source.source_id, start_date, end_date))
        if source.source_id in self.fail_for:
            raise RuntimeError("sentry down")
        if source.kind == PAYMENT_ERROR:
            return [make_event("2025-10-02T10:00:00Z", "err-1", "u1", paymentErrorReason="Declined")]
        return [make_event("2025-10-03T10:00:00Z", "ok-1", "u2", merchant_id="m1")]


class FakeFormsClient:

    def __init__(self, fail=False):
        self.fail = fail

    def fetch_all_forms(self, start_date, end_date):
        if self.fail:
            raise RuntimeError("forms down")
        return {"applications": [{"151": "FirstApplication", "27": "UT", "date_created": "2025-10-02 10:00:00"}]}


class RecordingMailer:

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def __call__(self, settings, report_path, ctx):
        self.calls.append((report_path, ctx))
        if self.fail:
            raise RuntimeError("smtp exploded")


class TestRunWeeklyReport:

    def test_full_pipeline(self, settings):
        sentry = FakeSentryClient()
        mailer = RecordingMailer()

        result = run_weekly_report(
            settings, START, END, sentry_client=sentry, forms_client=FakeFormsClient(), mailer=mailer,
        )

        assert result["error_events"] == 1
        assert result["success_events"] == 1
        assert result["email_sent"] is True
        assert result["html_file"].exists()
        assert result["html_file"].parent == settings.PROCESSED_DIR
        assert (settings.MANUAL_DIR / "applications_data.json").exists()

        # One 30-day window per source covers the whole week
        assert [(c[1], c[2]) for c in sentry.calls] == [(START, END), (START, END)]

        report_path, ctx = mailer.calls[0]
        assert report_path == result["html_file"]
        assert ctx["error_events"] == 1
        assert ctx["success_users"] == 1
        assert ctx["applications_total"] == 1
        assert ctx["applications_first_time"] == 1

    def test_second_run_uses_cache(self, settings):
        run_weekly_report(settings, START, END, sentry_client=FakeSentryClient(),
                          forms_client=FakeFormsClient(), mailer=RecordingMailer())

        again = FakeSentryClient()
        run_weekly_report(settings, START, END, sentry_client=again,
                          forms_client=FakeFormsClient(), mailer=RecordingMailer())

        assert again.calls == []

    def test_upstream_failures_are_not_fatal(self, settings, error_source):
        mailer = RecordingMailer(fail=True)

        result = run_weekly_report(
            settings, START, END,
            sentry_client=FakeSentryClient(fail_for={error_source.source_id}),
            forms_client=FakeFormsClient(fail=True),
            mailer=mailer,
        )

        assert result["error_events"] == 0
        assert result["success_events"] == 1
        assert result["email_sent"] is False
        assert len(mailer.calls) == 1

    def test_skip_flags(self, settings):
        # Seed the cache as a previous run would have
        run_weekly_report(settings, START, END, sentry_client=FakeSentryClient(),
                          skip_gravity_forms=True, skip_email=True)

        mailer = RecordingMailer()
        result = run_weekly_report(
            settings, START, END, skip_sentry=True, skip_gravity_forms=True, skip_email=True, mailer=mailer,
        )

        assert result["error_events"] == 1
        assert result["email_sent"] is False
        assert mailer.calls == []

    def test_missing_sentry_token_fails_before_any_work(self, settings):
        settings.SENTRY_TOKEN = None
        forms = FakeFormsClient()

        with pytest.raises(ConfigurationError):
            run_weekly_report(settings, START, END, forms_client=forms, mailer=RecordingMailer())

        assert not settings.MANUAL_DIR.exists()

    def test_missing_sentry_token_ok_when_skipped(self, settings):
        settings.SENTRY_TOKEN = None

        result = run_weekly_report(settings, START, END, skip_sentry=True,
                                   forms_client=FakeFormsClient(), skip_email=True)

        assert result["error_events"] == 0

    def test_no_data_at_all_is_fatal(self, settings):
        with pytest.raises(NoReportDataError):
            run_weekly_report(settings, START, END, skip_sentry=True, skip_gravity_forms=True, skip_email=True)
