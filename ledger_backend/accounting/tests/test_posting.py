# accounting/tests/test_posting.py

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from accounting.models import JournalDocument, JournalLine, Period
from accounting.services import posting
from accounting.services.exceptions import (
    AccountNotPostable,
    DocumentOutsidePeriodError,
    DuplicateDocumentNumberError,
    EmptyLineError,
    InsufficientLinesError,
    InvalidLineAmountError,
    InvalidLineDescriptionError,
    InvalidStateTransition,
    LedgerIntegrityError,
    PeriodCloseInProgressError,
    PeriodClosedError,
    UnbalancedEntryError,
)
from accounting.tests.factories import build_chart, draft, line, make_period, posted


class DraftTests(TestCase):
    """
    Drafts are free-form: no balance check, missing accounts allowed,
    but structural rules (leaf accounts, one side per line) hold from the start.
    """

    def setUp(self):
        self.accounts = build_chart()
        self.cash = self.accounts["1111"]
        self.sales = self.accounts["4111"]
        self.period = make_period()

    def test_unbalanced_draft_is_accepted(self):
        doc = draft(self.period, [line(self.cash, debit="100"), line(self.sales, credit="40")])

        self.assertEqual(doc.status, JournalDocument.DRAFT)
        self.assertEqual(doc.lines.count(), 2)
        self.assertEqual(doc.total_debit, Decimal("0.00"))

    def test_draft_may_leave_account_empty(self):
        doc = draft(self.period, [line(None, debit="100"), line(self.sales, credit="100")])
        self.assertIsNone(doc.lines.get(line_no=1).account_id)

    def test_draft_needs_two_lines(self):
        with self.assertRaises(InsufficientLinesError):
            draft(self.period, [line(self.cash, debit="100")])

    def test_draft_rejects_group_account(self):
        with self.assertRaises(AccountNotPostable) as ctx:
            draft(self.period, [line(self.accounts["111"], debit="1"), line(self.sales, credit="1")])
        self.assertEqual(ctx.exception.line_no, 1)

    def test_draft_rejects_two_sided_line(self):
        with self.assertRaises(InvalidLineAmountError):
            draft(self.period, [line(self.cash, debit="5", credit="5"), line(self.sales, credit="0")])

    def test_draft_rejects_negative_amount(self):
        with self.assertRaises(InvalidLineAmountError):
            draft(self.period, [line(self.cash, debit="-5"), line(self.sales, credit="5")])

    def test_number_unique_per_period(self):
        draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")], number="JV-7")
        with self.assertRaises(DuplicateDocumentNumberError):
            draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")], number="JV-7")

    def test_same_number_allowed_in_other_period(self):
        december = make_period("Dec 2024", date(2024, 12, 1), date(2024, 12, 31))
        draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")], number="JV-7")
        doc = draft(december, [line(self.cash, debit="1"), line(self.sales, credit="1")], number="JV-7")
        self.assertEqual(doc.period_id, december.pk)

    def test_date_must_fall_in_period(self):
        with self.assertRaises(DocumentOutsidePeriodError):
            draft(
                self.period,
                [line(self.cash, debit="1"), line(self.sales, credit="1")],
                on=date(2024, 12, 2),
            )

    def test_overlong_line_description_rejected(self):
        with self.assertRaises(InvalidLineDescriptionError) as ctx:
            draft(
                self.period,
                [line(self.cash, debit="1"), line(self.sales, credit="1", description="x" * 256)],
            )
        self.assertEqual(ctx.exception.line_no, 2)

        doc = draft(
            self.period,
            [line(self.cash, debit="1", description="x" * 255), line(self.sales, credit="1")],
        )
        self.assertEqual(len(doc.lines.get(line_no=1).description), 255)

    def test_update_replaces_lines(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])

        posting.update_draft(
            doc.pk,
            description="Corrected",
            lines=[
                line(self.cash, debit="250"),
                line(self.sales, credit="200"),
                line(self.sales, credit="50"),
            ],
        )

        doc.refresh_from_db()
        self.assertEqual(doc.description, "Corrected")
        self.assertEqual(
            list(doc.lines.order_by("line_no").values_list("credit", flat=True)),
            [Decimal("0.00"), Decimal("200.00"), Decimal("50.00")],
        )

    def test_update_rejects_unknown_field(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        with self.assertRaises(TypeError):
            posting.update_draft(doc.pk, status=JournalDocument.POSTED)

    def test_draft_moves_between_open_periods(self):
        december = make_period("Dec 2024", date(2024, 12, 1), date(2024, 12, 31))
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])

        posting.update_draft(doc.pk, period_id=december.pk, date=date(2024, 12, 3))

        doc.refresh_from_db()
        self.assertEqual(doc.period_id, december.pk)

    def test_draft_left_in_closed_period_is_frozen(self):
        december = make_period("Dec 2024", date(2024, 12, 1), date(2024, 12, 31))
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        Period.objects.filter(pk=self.period.pk).update(is_closed=True)

        with self.assertRaises(PeriodClosedError):
            posting.update_draft(doc.pk, period_id=december.pk, date=date(2024, 12, 3))
        with self.assertRaises(PeriodClosedError):
            posting.cancel(doc.pk)
        with self.assertRaises(PeriodClosedError):
            posting.delete(doc.pk)

        doc.refresh_from_db()
        self.assertEqual(doc.status, JournalDocument.DRAFT)
        self.assertEqual(doc.period_id, self.period.pk)

    def test_cancel_while_close_in_flight(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        Period.objects.filter(pk=self.period.pk).update(is_closing=True)

        with self.assertRaises(PeriodCloseInProgressError):
            posting.cancel(doc.pk)

    def test_delete_draft(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        posting.delete(doc.pk)

        self.assertFalse(JournalDocument.objects.filter(pk=doc.pk).exists())
        self.assertFalse(JournalLine.objects.filter(document_id=doc.pk).exists())


class PostTests(TestCase):
    def setUp(self):
        self.accounts = build_chart()
        self.cash = self.accounts["1111"]
        self.payables = self.accounts["2111"]
        self.sales = self.accounts["4111"]
        self.rent = self.accounts["5111"]
        self.period = make_period()

    def test_post_balanced(self):
        doc = posted(self.period, self.cash, self.sales, amount="5000000.00")

        self.assertEqual(doc.status, JournalDocument.POSTED)
        self.assertEqual(doc.total_debit, Decimal("5000000.00"))
        self.assertEqual(doc.total_credit, Decimal("5000000.00"))
        self.assertIsNotNone(doc.posted_at)

    def test_post_updates_period_running_totals(self):
        posted(self.period, self.cash, self.sales, amount="300.00", number="JV-1")
        posted(self.period, self.rent, self.cash, amount="120.00", number="JV-2")

        period = Period.objects.get(pk=self.period.pk)
        self.assertEqual(period.total_debit, Decimal("420.00"))
        self.assertEqual(period.total_credit, Decimal("420.00"))
        self.assertEqual(period.total_revenue, Decimal("300.00"))
        self.assertEqual(period.total_expenses, Decimal("120.00"))
        self.assertEqual(period.net_income, Decimal("180.00"))
        self.assertEqual(period.version, 2)

    def test_unbalanced_post_reports_difference(self):
        doc = draft(
            self.period,
            [line(self.cash, debit="5000000"), line(self.sales, credit="4999000")],
        )

        with self.assertRaises(UnbalancedEntryError) as ctx:
            posting.post(doc.pk)

        self.assertEqual(ctx.exception.difference, Decimal("1000.00"))
        doc.refresh_from_db()
        self.assertEqual(doc.status, JournalDocument.DRAFT)
        self.assertEqual(Period.objects.get(pk=self.period.pk).total_debit, Decimal("0.00"))

    def test_difference_within_epsilon_posts(self):
        doc = draft(self.period, [line(self.cash, debit="100.01"), line(self.sales, credit="100.00")])
        posted_doc = posting.post(doc.pk)
        self.assertEqual(posted_doc.status, JournalDocument.POSTED)

    @override_settings(LEDGER_BALANCE_EPSILON=Decimal("0"))
    def test_zero_epsilon_is_strict(self):
        doc = draft(self.period, [line(self.cash, debit="100.01"), line(self.sales, credit="100.00")])
        with self.assertRaises(UnbalancedEntryError):
            posting.post(doc.pk)

    def test_post_rejects_missing_account(self):
        doc = draft(self.period, [line(None, debit="10"), line(self.sales, credit="10")])
        with self.assertRaises(EmptyLineError) as ctx:
            posting.post(doc.pk)
        self.assertEqual(ctx.exception.line_no, 1)

    def test_post_rejects_zero_line(self):
        doc = draft(
            self.period,
            [line(self.cash, debit="10"), line(self.sales, credit="10"), line(self.rent)],
        )
        with self.assertRaises(EmptyLineError) as ctx:
            posting.post(doc.pk)
        self.assertEqual(ctx.exception.line_no, 3)

    def test_post_rejects_account_deactivated_after_draft(self):
        doc = draft(self.period, [line(self.cash, debit="10"), line(self.sales, credit="10")])
        self.sales.is_active = False
        self.sales.save()

        with self.assertRaises(AccountNotPostable):
            posting.post(doc.pk)

    def test_post_twice_is_refused(self):
        doc = posted(self.period, self.cash, self.sales)
        with self.assertRaises(InvalidStateTransition):
            posting.post(doc.pk)

    def test_posted_document_is_immutable(self):
        doc = posted(self.period, self.cash, self.sales)

        with self.assertRaises(InvalidStateTransition):
            posting.update_draft(doc.pk, description="changed")
        with self.assertRaises(InvalidStateTransition):
            posting.delete(doc.pk)
        with self.assertRaises(InvalidStateTransition):
            posting.cancel(doc.pk)

        doc.description = "changed"
        with self.assertRaises(ValidationError):
            doc.save()

        first = doc.lines.first()
        first.debit = Decimal("1.00")
        with self.assertRaises(ValidationError):
            first.save()

    def test_cancelled_is_terminal(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        posting.cancel(doc.pk)

        with self.assertRaises(InvalidStateTransition):
            posting.post(doc.pk)
        with self.assertRaises(InvalidStateTransition):
            posting.update_draft(doc.pk, description="x")

    def test_post_into_closed_period(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        Period.objects.filter(pk=self.period.pk).update(is_closed=True)

        with self.assertRaises(PeriodClosedError):
            posting.post(doc.pk)

    def test_draft_into_closed_period(self):
        Period.objects.filter(pk=self.period.pk).update(is_closed=True)
        with self.assertRaises(PeriodClosedError):
            draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])

    def test_post_while_close_in_flight(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")])
        Period.objects.filter(pk=self.period.pk).update(is_closing=True)

        with self.assertRaises(PeriodCloseInProgressError) as ctx:
            posting.post(doc.pk)
        self.assertTrue(ctx.exception.retryable)


class ReverseTests(TestCase):
    def setUp(self):
        self.accounts = build_chart()
        self.cash = self.accounts["1111"]
        self.sales = self.accounts["4111"]
        self.period = make_period()
        self.original = posted(self.period, self.cash, self.sales, amount="75.00", number="JV-9")

    def test_reversal_mirrors_lines(self):
        reversal = posting.reverse(self.original.pk, period_id=self.period.pk, date=date(2024, 11, 20))

        self.assertEqual(reversal.status, JournalDocument.POSTED)
        self.assertEqual(reversal.doc_type, JournalDocument.REVERSAL)
        self.assertEqual(reversal.number, "JV-9-R")
        self.assertEqual(reversal.reversal_of_id, self.original.pk)

        first = reversal.lines.get(line_no=1)
        self.assertEqual(first.account_id, self.cash.pk)
        self.assertEqual(first.credit, Decimal("75.00"))

        period = Period.objects.get(pk=self.period.pk)
        self.assertEqual(period.total_revenue, Decimal("0.00"))
        self.assertEqual(period.total_debit, Decimal("150.00"))

        self.original.refresh_from_db()
        self.assertEqual(self.original.status, JournalDocument.POSTED)

    def test_second_reversal_refused(self):
        posting.reverse(self.original.pk, period_id=self.period.pk, date=date(2024, 11, 20))
        with self.assertRaises(InvalidStateTransition):
            posting.reverse(
                self.original.pk,
                period_id=self.period.pk,
                date=date(2024, 11, 21),
                number="JV-9-R2",
            )

    def test_reversing_tampered_document_is_integrity_error(self):
        self.original.lines.filter(line_no=1).update(debit=Decimal("70.00"))

        with self.assertRaises(LedgerIntegrityError) as ctx:
            posting.reverse(self.original.pk, period_id=self.period.pk, date=date(2024, 11, 20))

        self.assertEqual(ctx.exception.document_id, self.original.pk)
        self.assertFalse(JournalDocument.objects.filter(reversal_of=self.original).exists())

    def test_draft_cannot_be_reversed(self):
        doc = draft(self.period, [line(self.cash, debit="1"), line(self.sales, credit="1")], number="JV-10")
        with self.assertRaises(InvalidStateTransition):
            posting.reverse(doc.pk, period_id=self.period.pk, date=date(2024, 11, 20))
