# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL DOCUMENT + JOURNAL LINE MODELS

A journal document is the header of one accounting transaction; its lines
carry the individual debit / credit amounts.

Guarantees:
- Document numbers are unique within a period
- Only DRAFT documents (and their lines) can be modified or deleted
- POSTED and CANCELLED documents are frozen
- Line amounts are never negative and never carry both sides at once
- total_debit / total_credit are written once, by the poster, at post time
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.period import Period

ZERO = Decimal("0.00")


class JournalDocument(models.Model):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    CANCELLED = "CANCELLED"

    STATUSES = [
        (DRAFT, "Draft"),
        (POSTED, "Posted"),
        (CANCELLED, "Cancelled"),
    ]

    MANUAL = "MANUAL"
    RECEIPT = "RECEIPT"
    PAYMENT = "PAYMENT"
    PURCHASE = "PURCHASE"
    SALES = "SALES"
    PAYROLL = "PAYROLL"
    ADJUSTMENT = "ADJUSTMENT"
    CLOSING = "CLOSING"
    RETURN_PURCHASE = "RETURN_PURCHASE"
    RETURN_SALES = "RETURN_SALES"
    REVERSAL = "REVERSAL"

    DOC_TYPES = [
        (MANUAL, "Manual"),
        (RECEIPT, "Receipt"),
        (PAYMENT, "Payment"),
        (PURCHASE, "Purchase"),
        (SALES, "Sales"),
        (PAYROLL, "Payroll"),
        (ADJUSTMENT, "Adjustment"),
        (CLOSING, "Closing"),
        (RETURN_PURCHASE, "Purchase return"),
        (RETURN_SALES, "Sales return"),
        (REVERSAL, "Reversal"),
    ]

    number = models.CharField(max_length=50)
    date = models.DateField(help_text="Accounting effective date")

    doc_type = models.CharField(
        max_length=20,
        choices=DOC_TYPES,
        default=MANUAL,
    )

    currency = models.CharField(max_length=3, default="IRR")
    exchange_rate = models.DecimalField(
        max_digits=18,
        decimal_places=6,
        default=Decimal("1"),
    )

    description = models.TextField(blank=True, default="")
    reference_number = models.CharField(max_length=100, blank=True, default="")

    status = models.CharField(
        max_length=10,
        choices=STATUSES,
        default=DRAFT,
    )

    period = models.ForeignKey(
        Period,
        on_delete=models.PROTECT,
        related_name="documents",
    )

    total_debit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total_credit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    reversal_of = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        related_name="reversed_by",
        null=True,
        blank=True,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )

    posted_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "-created_at"]
        indexes = [
            models.Index(fields=["period", "status"], name="jdoc_period_status_idx"),
            models.Index(fields=["date"], name="jdoc_date_idx"),
            models.Index(fields=["status"], name="jdoc_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["period", "number"],
                name="uniq_journal_document_number_per_period",
            ),
            models.CheckConstraint(
                condition=Q(exchange_rate__gt=0),
                name="chk_journal_document_exchange_rate_positive",
            ),
        ]
        permissions = [
            ("post_journaldocument", "Can post journal document"),
        ]
        verbose_name = "Journal Document"
        verbose_name_plural = "Journal Documents"

    def __str__(self):
        return f"{self.number} ({self.status}) – {self.date}"

    @property
    def is_draft(self) -> bool:
        return self.status == self.DRAFT

    def _stored_status(self) -> str | None:
        if not self.pk:
            return None
        return (
            JournalDocument.objects.filter(pk=self.pk)
            .values_list("status", flat=True)
            .first()
        )

    def clean(self):
        self.number = (self.number or "").strip()
        if not self.number:
            raise ValidationError({"number": "Document number is required"})

        self.description = (self.description or "").strip()
        self.reference_number = (self.reference_number or "").strip()
        self.currency = (self.currency or "").strip().upper()
        if not self.currency:
            raise ValidationError({"currency": "Currency is required"})

        if self.exchange_rate is None or self.exchange_rate <= 0:
            raise ValidationError({"exchange_rate": "Exchange rate must be > 0"})

    def save(self, *args, **kwargs):
        stored = self._stored_status()
        if stored is not None and stored != self.DRAFT:
            raise ValidationError(f"Journal document {self.number} is {stored} and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        stored = self._stored_status()
        if stored is not None and stored != self.DRAFT:
            raise ValidationError(f"Journal document {self.number} is {stored} and cannot be deleted")
        return super().delete(*args, **kwargs)


class JournalLine(models.Model):
    document = models.ForeignKey(
        JournalDocument,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    line_no = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
        null=True,
        blank=True,
        help_text="May be empty while the document is a draft",
    )

    debit = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=ZERO,
        validators=[MinValueValidator(ZERO)],
    )
    credit = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=ZERO,
        validators=[MinValueValidator(ZERO)],
    )

    description = models.CharField(max_length=255, blank=True, default="")

    foreign_amount = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        null=True,
        blank=True,
    )
    foreign_currency = models.CharField(max_length=3, blank=True, default="")

    class Meta:
        ordering = ["document", "line_no"]
        indexes = [
            models.Index(fields=["account"], name="jline_account_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["document", "line_no"],
                name="uniq_journal_line_no_per_document",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_journal_line_amounts_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(debit=0) | Q(credit=0),
                name="chk_journal_line_single_side",
            ),
        ]
        verbose_name = "Journal Line"
        verbose_name_plural = "Journal Lines"

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit else f"Cr {self.credit}"
        return f"#{self.line_no} {side} → {self.account_id}"

    def clean(self):
        self.description = (self.description or "").strip()
        self.foreign_currency = (self.foreign_currency or "").strip().upper()

        if self.debit is None or self.credit is None:
            raise ValidationError("Line amounts are required")
        if self.debit < 0 or self.credit < 0:
            raise ValidationError("Line amounts cannot be negative")
        if self.debit > 0 and self.credit > 0:
            raise ValidationError("A line cannot carry both a debit and a credit")

    def save(self, *args, **kwargs):
        if self.document_id and self.document.status != JournalDocument.DRAFT:
            raise ValidationError("Lines of a posted or cancelled document are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)
