from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20, unique=True)),
                ("name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("ASSET", "Asset"),
                            ("LIABILITY", "Liability"),
                            ("EQUITY", "Equity"),
                            ("REVENUE", "Revenue"),
                            ("EXPENSE", "Expense"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "level",
                    models.CharField(
                        choices=[
                            ("GROUP", "Group"),
                            ("MAIN", "Main"),
                            ("SUB", "Sub"),
                            ("DETAIL", "Detail"),
                        ],
                        max_length=10,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="children",
                        to="accounting.account",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["code"],
                "indexes": [
                    models.Index(fields=["parent", "level"], name="acct_parent_level_idx"),
                    models.Index(fields=["account_type"], name="acct_type_idx"),
                    models.Index(fields=["is_active"], name="acct_active_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("code", ""), _negated=True),
                        name="chk_account_code_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("name", ""), _negated=True),
                        name="chk_account_name_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("level", "GROUP"), ("parent__isnull", True)),
                            models.Q(models.Q(("level", "GROUP"), _negated=True), ("parent__isnull", False)),
                            _connector="OR",
                        ),
                        name="chk_account_parent_matches_level",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Period",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("is_closed", models.BooleanField(default=False)),
                (
                    "is_closing",
                    models.BooleanField(
                        default=False,
                        help_text="Set while a close is running inside its transaction",
                    ),
                ),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("closing_date", models.DateField(blank=True, null=True)),
                ("closing_description", models.TextField(blank=True, default="")),
                ("total_debit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("total_credit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("total_revenue", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("total_expenses", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("net_income", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "closed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Accounting Period",
                "verbose_name_plural": "Accounting Periods",
                "ordering": ["-start_date"],
                "permissions": [("close_period", "Can close accounting period")],
                "indexes": [
                    models.Index(fields=["start_date", "end_date"], name="period_range_idx"),
                    models.Index(fields=["is_closed"], name="period_closed_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gt", models.F("start_date"))),
                        name="chk_period_end_after_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalDocument",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.CharField(max_length=50)),
                ("date", models.DateField(help_text="Accounting effective date")),
                (
                    "doc_type",
                    models.CharField(
                        choices=[
                            ("MANUAL", "Manual"),
                            ("RECEIPT", "Receipt"),
                            ("PAYMENT", "Payment"),
                            ("PURCHASE", "Purchase"),
                            ("SALES", "Sales"),
                            ("PAYROLL", "Payroll"),
                            ("ADJUSTMENT", "Adjustment"),
                            ("CLOSING", "Closing"),
                            ("RETURN_PURCHASE", "Purchase return"),
                            ("RETURN_SALES", "Sales return"),
                            ("REVERSAL", "Reversal"),
                        ],
                        default="MANUAL",
                        max_length=20,
                    ),
                ),
                ("currency", models.CharField(default="IRR", max_length=3)),
                ("exchange_rate", models.DecimalField(decimal_places=6, default=Decimal("1"), max_digits=18)),
                ("description", models.TextField(blank=True, default="")),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Draft"), ("POSTED", "Posted"), ("CANCELLED", "Cancelled")],
                        default="DRAFT",
                        max_length=10,
                    ),
                ),
                ("total_debit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("total_credit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "period",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="documents",
                        to="accounting.period",
                    ),
                ),
                (
                    "reversal_of",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reversed_by",
                        to="accounting.journaldocument",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "posted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Document",
                "verbose_name_plural": "Journal Documents",
                "ordering": ["-date", "-created_at"],
                "permissions": [("post_journaldocument", "Can post journal document")],
                "indexes": [
                    models.Index(fields=["period", "status"], name="jdoc_period_status_idx"),
                    models.Index(fields=["date"], name="jdoc_date_idx"),
                    models.Index(fields=["status"], name="jdoc_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("period", "number"),
                        name="uniq_journal_document_number_per_period",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("exchange_rate__gt", 0)),
                        name="chk_journal_document_exchange_rate_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField()),
                (
                    "debit",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=18,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "credit",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        max_digits=18,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("foreign_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ("foreign_currency", models.CharField(blank=True, default="", max_length=3)),
                (
                    "account",
                    models.ForeignKey(
                        blank=True,
                        help_text="May be empty while the document is a draft",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_lines",
                        to="accounting.account",
                    ),
                ),
                (
                    "document",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="accounting.journaldocument",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Line",
                "verbose_name_plural": "Journal Lines",
                "ordering": ["document", "line_no"],
                "indexes": [
                    models.Index(fields=["account"], name="jline_account_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("document", "line_no"),
                        name="uniq_journal_line_no_per_document",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit__gte", 0), ("credit__gte", 0)),
                        name="chk_journal_line_amounts_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit", 0), ("credit", 0), _connector="OR"),
                        name="chk_journal_line_single_side",
                    ),
                ],
            },
        ),
    ]
