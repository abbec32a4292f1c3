# accounting/tests/test_closing_checks.py

import threading
from datetime import date
from decimal import Decimal
from unittest import mock

from django.test import TestCase, override_settings

from accounting.models import JournalDocument, Period
from accounting.services import closing_checks, period_service, posting
from accounting.services.closing_checks import (
    BUSINESS,
    COMPLETED,
    EXECUTION,
    FAILED,
    CheckDefinition,
    ClosingCheckItem,
)
from accounting.services.exceptions import (
    ClosingBlockedError,
    ClosingChecksCancelled,
    NoChecksSelectedError,
    PeriodCloseInProgressError,
    PeriodNotFound,
)
from accounting.tests.factories import build_chart, draft, line, make_period, posted

NOV_END = date(2024, 11, 30)


def _item(check_id, status, required=True):
    return ClosingCheckItem(
        id=check_id,
        name=check_id,
        category=closing_checks.PERIODS,
        description="",
        required=required,
        status=status,
    )


class SummaryTests(TestCase):
    def test_success_rate_rounds_half_up(self):
        summary = closing_checks.summarize(
            [_item("a", COMPLETED), _item("b", COMPLETED), _item("c", FAILED, required=False)]
        )
        self.assertEqual(summary.success_rate, 67)
        self.assertTrue(summary.can_close)

    def test_one_of_eight_is_13(self):
        items = [_item("ok", COMPLETED)] + [_item(f"f{i}", FAILED, required=False) for i in range(7)]
        self.assertEqual(closing_checks.summarize(items).success_rate, 13)

    def test_required_failure_blocks(self):
        summary = closing_checks.summarize([_item("a", COMPLETED), _item("b", FAILED)])
        self.assertEqual(summary.success_rate, 50)
        self.assertFalse(summary.can_close)

    def test_empty_battery(self):
        summary = closing_checks.summarize([])
        self.assertEqual(summary.total, 0)
        self.assertEqual(summary.success_rate, 0)


class CatalogTests(TestCase):
    def test_external_checks_omitted_without_source(self):
        ids = [c.id for c in closing_checks.available_checks()]
        self.assertEqual(
            ids,
            [
                "no_draft_documents",
                "documents_balanced",
                "trial_balance",
                "temporary_accounts",
                "postable_accounts",
                "previous_periods_closed",
            ],
        )

    @override_settings(LEDGER_CHECK_SOURCES={"bank_reconciliation": "accounting.tests.sources.passing"})
    def test_configured_external_check_listed(self):
        ids = [c.id for c in closing_checks.available_checks(category=closing_checks.BANK_RECONCILIATION)]
        self.assertEqual(ids, ["bank_reconciliation"])

    def test_filter_by_required(self):
        optional = closing_checks.available_checks(required=False)
        self.assertEqual([c.id for c in optional], ["temporary_accounts", "previous_periods_closed"])

    @override_settings(
        LEDGER_CLOSING_CHECKS=[
            {"id": "previous_periods_closed", "required": True},
            {"id": "postable_accounts", "enabled": False},
            {"id": "temporary_accounts", "required": True},
        ]
    )
    def test_settings_overrides(self):
        checks = {c.id: c for c in closing_checks.available_checks()}
        self.assertTrue(checks["previous_periods_closed"].required)
        self.assertNotIn("postable_accounts", checks)
        self.assertTrue(checks["temporary_accounts"].required)


class RunTests(TestCase):
    def setUp(self):
        self.accounts = build_chart()
        self.cash = self.accounts["1111"]
        self.loan = self.accounts["2111"]
        self.equity = self.accounts["3111"]
        self.sales = self.accounts["4111"]
        self.rent = self.accounts["5111"]
        self.period = make_period("Nov", date(2024, 11, 1), NOV_END)

    def _by_id(self, result):
        return {item.id: item for item in result.results}

    def test_clean_period_passes(self):
        posted(self.period, self.cash, self.loan)

        result = closing_checks.run(self.period.pk)

        self.assertTrue(result.summary.can_close)
        self.assertEqual(result.summary.success_rate, 100)
        self.assertTrue(all(item.executed_at is not None for item in result.results))
        self.assertTrue(all(item.period_id == self.period.pk for item in result.results))

    def test_repeated_runs_agree(self):
        posted(self.period, self.cash, self.sales, number="JV-1")
        posted(self.period, self.rent, self.cash, amount="40.00", number="JV-2")

        first = closing_checks.run(self.period.pk)
        second = closing_checks.run(self.period.pk)

        self.assertEqual(first.summary, second.summary)
        self.assertEqual(
            [(item.id, item.status) for item in first.results],
            [(item.id, item.status) for item in second.results],
        )
        self.assertEqual(self._by_id(first)["trial_balance"].status, COMPLETED)
        self.assertTrue(first.summary.can_close)

    def test_run_is_read_only(self):
        posted(self.period, self.cash, self.sales)
        before = Period.objects.get(pk=self.period.pk)

        closing_checks.run(self.period.pk)

        after = Period.objects.get(pk=self.period.pk)
        self.assertEqual(after.version, before.version)
        self.assertFalse(after.is_closed)

    def test_selected_subset_only(self):
        result = closing_checks.run(self.period.pk, check_ids=["trial_balance", "trial_balance"])
        self.assertEqual([item.id for item in result.results], ["trial_balance"])

    def test_empty_selection_rejected(self):
        with self.assertRaises(NoChecksSelectedError):
            closing_checks.run(self.period.pk, check_ids=[])

    def test_unknown_check_rejected(self):
        with self.assertRaises(NoChecksSelectedError) as ctx:
            closing_checks.run(self.period.pk, check_ids=["trial_balance", "nope"])
        self.assertEqual(ctx.exception.unknown, ["nope"])

    def test_unknown_period(self):
        with self.assertRaises(PeriodNotFound):
            closing_checks.run(999999)

    def test_draft_reported_as_business_failure(self):
        draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")], number="JV-42")

        item = self._by_id(closing_checks.run(self.period.pk))["no_draft_documents"]

        self.assertEqual(item.status, FAILED)
        self.assertEqual(item.error_kind, BUSINESS)
        self.assertIn("JV-42", item.error_message)

    def test_running_total_drift_detected(self):
        posted(self.period, self.cash, self.sales, amount="10.00")
        Period.objects.filter(pk=self.period.pk).update(total_revenue=Decimal("11.00"))

        item = self._by_id(closing_checks.run(self.period.pk))["trial_balance"]

        self.assertEqual(item.status, FAILED)
        self.assertIn("total_revenue", item.error_message)

    def test_inactive_account_flagged(self):
        posted(self.period, self.cash, self.sales)
        self.sales.is_active = False
        self.sales.save()

        item = self._by_id(closing_checks.run(self.period.pk))["postable_accounts"]
        self.assertEqual(item.status, FAILED)
        self.assertIn("4111", item.error_message)

    def test_unsettled_temporary_accounts_are_advisory(self):
        posted(self.period, self.cash, self.sales, number="JV-1")
        posted(self.period, self.rent, self.cash, amount="40.00", number="JV-2")

        result = closing_checks.run(self.period.pk)

        item = self._by_id(result)["temporary_accounts"]
        self.assertEqual(item.status, FAILED)
        self.assertEqual(item.error_kind, BUSINESS)
        self.assertIn("4111 (-100.00)", item.error_message)
        self.assertIn("5111 (40.00)", item.error_message)
        self.assertTrue(result.summary.can_close)
        self.assertEqual(result.summary.success_rate, 83)

    def test_closing_document_settles_temporary_accounts(self):
        posted(self.period, self.cash, self.sales, number="JV-1")
        posted(self.period, self.rent, self.cash, amount="40.00", number="JV-2")
        closing = draft(
            self.period,
            [
                line(self.sales, debit="100.00"),
                line(self.rent, credit="40.00"),
                line(self.equity, credit="60.00"),
            ],
            number="CL-1",
            on=NOV_END,
            doc_type=JournalDocument.CLOSING,
        )
        posting.post(closing.pk)

        item = self._by_id(closing_checks.run(self.period.pk))["temporary_accounts"]
        self.assertEqual(item.status, COMPLETED)

    @override_settings(LEDGER_CLOSING_CHECKS=[{"id": "temporary_accounts", "required": True}])
    def test_temporary_accounts_can_be_made_required(self):
        posted(self.period, self.cash, self.sales)

        with self.assertRaises(ClosingBlockedError) as ctx:
            period_service.request_close(self.period.pk, closing_date=NOV_END)

        self.assertEqual([c.id for c in ctx.exception.failed_checks], ["temporary_accounts"])
        self.assertFalse(Period.objects.get(pk=self.period.pk).is_closed)

    def test_open_earlier_period_is_advisory(self):
        make_period("Oct", date(2024, 10, 1), date(2024, 10, 31))

        result = closing_checks.run(self.period.pk)

        item = self._by_id(result)["previous_periods_closed"]
        self.assertEqual(item.status, FAILED)
        self.assertFalse(item.required)
        self.assertTrue(result.summary.can_close)

    def test_raising_ledger_check_is_execution_failure(self):
        def explode(period):
            raise RuntimeError("boom")

        broken = CheckDefinition(
            id="broken",
            name="Broken",
            category=closing_checks.PERIODS,
            required=True,
            func=explode,
        )
        with mock.patch.object(closing_checks, "DEFAULT_CHECKS", [broken]):
            with self.assertLogs("accounting.services.closing_checks", level="ERROR"):
                result = closing_checks.run(self.period.pk)

        item = result.results[0]
        self.assertEqual(item.status, FAILED)
        self.assertEqual(item.error_kind, EXECUTION)
        self.assertEqual(item.error_message, "boom")
        self.assertFalse(result.summary.can_close)

    def test_pre_cancelled(self):
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(ClosingChecksCancelled):
            closing_checks.run(self.period.pk, cancel_event=cancel)


class ExternalSourceTests(TestCase):
    def setUp(self):
        self.period = make_period("Nov", date(2024, 11, 1), NOV_END)

    def _run(self, source, **kwargs):
        sources = {"bank_reconciliation": f"accounting.tests.sources.{source}"}
        with override_settings(LEDGER_CHECK_SOURCES=sources):
            result = closing_checks.run(self.period.pk, check_ids=["bank_reconciliation"], **kwargs)
        return result.results[0]

    def test_bool_source(self):
        self.assertEqual(self._run("passing").status, COMPLETED)

    def test_dict_source(self):
        self.assertEqual(self._run("as_dict").status, COMPLETED)

    def test_failing_source_is_business_failure(self):
        item = self._run("failing")
        self.assertEqual(item.status, FAILED)
        self.assertEqual(item.error_kind, BUSINESS)
        self.assertIn("120.00", item.error_message)

    def test_raising_source_is_execution_failure(self):
        item = self._run("raising")
        self.assertEqual(item.error_kind, EXECUTION)
        self.assertIn("bank feed unavailable", item.error_message)

    def test_bad_return_type(self):
        item = self._run("bad_return")
        self.assertEqual(item.status, FAILED)
        self.assertEqual(item.error_kind, EXECUTION)

    def test_timeout_becomes_failed_item(self):
        item = self._run("hanging", timeout=0.1)

        self.assertEqual(item.status, FAILED)
        self.assertEqual(item.error_kind, EXECUTION)
        self.assertIn("Timed out", item.error_message)

    def test_cancel_while_waiting(self):
        cancel = threading.Event()
        timer = threading.Timer(0.1, cancel.set)
        timer.start()
        try:
            with self.assertRaises(ClosingChecksCancelled):
                self._run("hanging", timeout=5, cancel_event=cancel)
        finally:
            timer.cancel()


class CloseGateTests(TestCase):
    def setUp(self):
        self.accounts = build_chart()
        self.cash = self.accounts["1111"]
        self.sales = self.accounts["4111"]
        self.period = make_period("Nov", date(2024, 11, 1), NOV_END)

    @override_settings(LEDGER_CHECK_SOURCES={"bank_reconciliation": "accounting.tests.sources.hanging"})
    def test_timed_out_required_source_blocks_close(self):
        with self.assertRaises(ClosingBlockedError) as ctx:
            period_service.request_close(self.period.pk, closing_date=NOV_END, timeout=0.1)

        self.assertEqual([c.id for c in ctx.exception.failed_checks], ["bank_reconciliation"])
        self.assertFalse(Period.objects.get(pk=self.period.pk).is_closed)

    def test_post_during_close_is_refused(self):
        doc = draft(self.period, [line(self.cash, debit="5"), line(self.sales, credit="5")])
        refused = []

        def try_post(period):
            try:
                posting.post(doc.pk)
            except PeriodCloseInProgressError as exc:
                refused.append(exc)
            return None

        posting_attempt = CheckDefinition(
            id="posting_attempt",
            name="Posting attempt",
            category=closing_checks.PERIODS,
            required=True,
            func=try_post,
        )
        with mock.patch.object(closing_checks, "DEFAULT_CHECKS", [posting_attempt]):
            closed = period_service.request_close(self.period.pk, closing_date=NOV_END)

        self.assertEqual(len(refused), 1)
        self.assertTrue(closed.is_closed)
        self.assertEqual(closed.total_debit, Decimal("0.00"))
