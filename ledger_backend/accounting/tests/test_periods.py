# accounting/tests/test_periods.py

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models import JournalDocument, Period
from accounting.services import period_service, posting
from accounting.services.exceptions import (
    ClosingBlockedError,
    DocumentOutsidePeriodError,
    InvalidClosingDateError,
    InvalidPeriodRangeError,
    InvalidStateTransition,
    PeriodClosedError,
    PeriodOverlapError,
)
from accounting.tests.factories import build_chart, draft, line, make_period, posted

NOV_START, NOV_END = date(2024, 11, 1), date(2024, 11, 30)


class PeriodCrudTests(TestCase):
    """
    GUARANTEES:
    - end_date > start_date
    - Periods never overlap (inclusive bounds)
    - Closed periods cannot be edited or deleted
    """

    def test_adjacent_periods_allowed(self):
        make_period("Nov", NOV_START, NOV_END)
        dec = make_period("Dec", date(2024, 12, 1), date(2024, 12, 30))
        self.assertEqual(Period.objects.count(), 2)
        self.assertFalse(dec.is_closed)

    def test_overlap_rejected(self):
        nov = make_period("Nov", NOV_START, NOV_END)
        with self.assertRaises(PeriodOverlapError) as ctx:
            make_period("Mid", date(2024, 11, 15), date(2024, 12, 5))
        self.assertEqual(ctx.exception.conflicting_ids, [nov.pk])

    def test_shared_boundary_day_is_overlap(self):
        make_period("Nov", NOV_START, NOV_END)
        with self.assertRaises(PeriodOverlapError):
            make_period("Dec", NOV_END, date(2024, 12, 31))

    def test_end_must_follow_start(self):
        with self.assertRaises(InvalidPeriodRangeError):
            make_period("Bad", NOV_END, NOV_START)
        with self.assertRaises(InvalidPeriodRangeError):
            make_period("Same day", NOV_START, NOV_START)

    def test_update_rechecks_overlap(self):
        make_period("Nov", NOV_START, NOV_END)
        dec = make_period("Dec", date(2024, 12, 1), date(2024, 12, 31))

        with self.assertRaises(PeriodOverlapError):
            period_service.update_period(dec.pk, start_date=date(2024, 11, 20))

    def test_update_keeps_documents_inside(self):
        accounts = build_chart()
        nov = make_period("Nov", NOV_START, NOV_END)
        draft(nov, [line(accounts["1111"], debit="1"), line(accounts["4111"], credit="1")], on=date(2024, 11, 25))

        with self.assertRaises(DocumentOutsidePeriodError):
            period_service.update_period(nov.pk, end_date=date(2024, 11, 20))

        renamed = period_service.update_period(nov.pk, name="November")
        self.assertEqual(renamed.name, "November")

    def test_delete_requires_no_documents(self):
        accounts = build_chart()
        nov = make_period("Nov", NOV_START, NOV_END)
        draft(nov, [line(accounts["1111"], debit="1"), line(accounts["4111"], credit="1")])

        with self.assertRaises(InvalidStateTransition):
            period_service.delete_period(nov.pk)

    def test_delete_empty_period(self):
        nov = make_period("Nov", NOV_START, NOV_END)
        period_service.delete_period(nov.pk)
        self.assertFalse(Period.objects.filter(pk=nov.pk).exists())

    def test_closed_period_is_frozen(self):
        nov = make_period("Nov", NOV_START, NOV_END)
        Period.objects.filter(pk=nov.pk).update(is_closed=True)

        with self.assertRaises(PeriodClosedError):
            period_service.update_period(nov.pk, name="Renamed")
        with self.assertRaises(PeriodClosedError):
            period_service.delete_period(nov.pk)

        nov.refresh_from_db()
        nov.name = "Renamed"
        with self.assertRaises(ValidationError):
            nov.save()


class PeriodCloseTests(TestCase):
    def setUp(self):
        self.accounts = build_chart()
        self.cash = self.accounts["1111"]
        self.sales = self.accounts["4111"]
        self.expense = self.accounts["5111"]
        self.period = make_period("Nov", NOV_START, NOV_END)

    def test_close_freezes_totals(self):
        posted(self.period, self.cash, self.sales, amount="1000.00", number="JV-1")
        posted(self.period, self.expense, self.cash, amount="400.00", number="JV-2")

        closed = period_service.request_close(
            self.period.pk,
            closing_date=NOV_END,
            description="  month end  ",
        )

        self.assertTrue(closed.is_closed)
        self.assertFalse(closed.is_closing)
        self.assertIsNotNone(closed.closed_at)
        self.assertEqual(closed.closing_date, NOV_END)
        self.assertEqual(closed.closing_description, "month end")
        self.assertEqual(closed.total_debit, Decimal("1400.00"))
        self.assertEqual(closed.total_credit, Decimal("1400.00"))
        self.assertEqual(closed.total_revenue, Decimal("1000.00"))
        self.assertEqual(closed.total_expenses, Decimal("400.00"))
        self.assertEqual(closed.net_income, Decimal("600.00"))

    def test_cancelled_documents_do_not_block(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        posting.cancel(doc.pk)

        closed = period_service.request_close(self.period.pk, closing_date=NOV_END)
        self.assertTrue(closed.is_closed)
        self.assertEqual(closed.total_debit, Decimal("0.00"))

    def test_draft_blocks_close_and_rolls_back(self):
        draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])

        with self.assertRaises(ClosingBlockedError) as ctx:
            period_service.request_close(self.period.pk, closing_date=NOV_END)

        self.assertEqual([c.id for c in ctx.exception.failed_checks], ["no_draft_documents"])
        self.assertFalse(ctx.exception.result.summary.can_close)

        period = Period.objects.get(pk=self.period.pk)
        self.assertFalse(period.is_closed)
        self.assertFalse(period.is_closing)

    def test_closing_date_before_end_rejected(self):
        with self.assertRaises(InvalidClosingDateError):
            period_service.request_close(self.period.pk, closing_date=date(2024, 11, 29))

    def test_close_twice_refused(self):
        period_service.request_close(self.period.pk, closing_date=NOV_END)
        with self.assertRaises(PeriodClosedError):
            period_service.request_close(self.period.pk, closing_date=NOV_END)

    def test_no_posting_after_close(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        posting.cancel(doc.pk)
        period_service.request_close(self.period.pk, closing_date=NOV_END)

        with self.assertRaises(PeriodClosedError):
            draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")], number="JV-2")

        self.assertEqual(
            JournalDocument.objects.filter(period=self.period).count(),
            1,
        )

    def test_recompute_ignores_drafts(self):
        posted(self.period, self.cash, self.sales, amount="50.00", number="JV-1")
        draft(self.period, [line(self.cash, debit="999"), line(self.sales, credit="999")], number="JV-2")

        totals = period_service.recompute_totals(self.period)
        self.assertEqual(totals.total_debit, Decimal("50.00"))
        self.assertEqual(totals.net_income, Decimal("50.00"))
