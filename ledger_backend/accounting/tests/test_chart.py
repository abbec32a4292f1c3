# accounting/tests/test_chart.py

from io import StringIO

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase

from accounting.models import Account
from accounting.services import chart_service
from accounting.services.exceptions import AccountNotFound, AccountNotPostable
from accounting.tests.factories import build_chart, make_period, posted


class AccountTreeTests(TestCase):
    """
    GUARANTEES:
    - GROUP → MAIN → SUB → DETAIL, one level at a time
    - Children share the parent's type and code prefix
    - Only active DETAIL accounts are postable
    """

    def setUp(self):
        self.accounts = build_chart()

    def test_group_cannot_have_parent(self):
        acc = Account(
            code="19",
            name="Bad group",
            account_type=Account.ASSET,
            level=Account.GROUP,
            parent=self.accounts["1"],
        )
        with self.assertRaises(ValidationError):
            acc.save()

    def test_level_cannot_be_skipped(self):
        acc = Account(
            code="1999",
            name="Detail under group",
            account_type=Account.ASSET,
            level=Account.DETAIL,
            parent=self.accounts["1"],
        )
        with self.assertRaises(ValidationError):
            acc.save()

    def test_child_type_must_match_parent(self):
        acc = Account(
            code="112",
            name="Revenue under assets",
            account_type=Account.REVENUE,
            level=Account.SUB,
            parent=self.accounts["11"],
        )
        with self.assertRaises(ValidationError):
            acc.save()

    def test_child_code_must_extend_parent_code(self):
        acc = Account(
            code="9112",
            name="Wrong prefix",
            account_type=Account.ASSET,
            level=Account.SUB,
            parent=self.accounts["11"],
        )
        with self.assertRaises(ValidationError):
            acc.save()

    def test_only_detail_is_postable(self):
        self.assertTrue(self.accounts["1111"].is_postable)
        self.assertFalse(self.accounts["111"].is_postable)

        leaf = self.accounts["1111"]
        leaf.is_active = False
        leaf.save()
        self.assertFalse(leaf.is_postable)

    def test_identity_frozen_once_posted(self):
        period = make_period()
        posted(period, self.accounts["1111"], self.accounts["4111"])

        cash = Account.objects.get(code="1111")
        cash.code = "1112"
        with self.assertRaises(ValidationError):
            cash.save()

        # Renaming stays allowed
        cash = Account.objects.get(code="1111")
        cash.name = "Cash on hand"
        cash.save()
        self.assertEqual(Account.objects.get(pk=cash.pk).name, "Cash on hand")


class ChartServiceTests(TestCase):
    def setUp(self):
        self.accounts = build_chart()

    def test_roots_are_groups(self):
        codes = [a.code for a in chart_service.children_of()]
        self.assertEqual(codes, ["1", "2", "3", "4", "5"])

    def test_children_one_level_down(self):
        children = chart_service.children_of(self.accounts["11"].pk)
        self.assertEqual([a.code for a in children], ["111"])
        self.assertTrue(all(a.level == Account.SUB for a in children))

    def test_wrong_level_filter_returns_empty(self):
        self.assertEqual(chart_service.children_of(self.accounts["1"].pk, level=Account.SUB), [])

    def test_detail_has_no_children(self):
        self.assertEqual(chart_service.children_of(self.accounts["1111"].pk), [])

    def test_inactive_children_hidden_by_default(self):
        leaf = self.accounts["1111"]
        leaf.is_active = False
        leaf.save()

        self.assertEqual(chart_service.children_of(self.accounts["111"].pk), [])
        self.assertEqual(
            len(chart_service.children_of(self.accounts["111"].pk, active_only=False)),
            1,
        )

    def test_unknown_parent(self):
        with self.assertRaises(AccountNotFound):
            chart_service.children_of(999999)

    def test_resolve_leaf_rejects_non_detail(self):
        with self.assertRaises(AccountNotPostable) as ctx:
            chart_service.resolve_leaf(self.accounts["111"].pk, line_no=2)
        self.assertEqual(ctx.exception.line_no, 2)

    def test_account_path(self):
        path = chart_service.account_path(self.accounts["4111"])
        self.assertEqual([a.code for a in path], ["4", "41", "411", "4111"])


class SeedChartCommandTests(TestCase):
    def test_seed_is_idempotent(self):
        call_command("seed_chart", stdout=StringIO())
        first = Account.objects.count()

        call_command("seed_chart", stdout=StringIO())

        self.assertEqual(Account.objects.count(), first)
        self.assertEqual(Account.objects.get(code="1121").parent.code, "112")
        self.assertTrue(Account.objects.get(code="5121").is_postable)
