# accounting/models/period.py

"""
======================================================
PATH: accounting/models/period.py
======================================================
ACCOUNTING PERIOD MODEL

A contiguous, non-overlapping date range that owns journal documents and
accumulates the running totals of its POSTED documents.

Guarantees:
- start_date < end_date
- Periods never overlap (inclusive bounds; checked in clean())
- Closing is one-way: a closed period is immutable
- Running totals are only written through queryset F() updates by the
  poster and by the close; `version` bumps on every write
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

ZERO = Decimal("0.00")


class Period(models.Model):
    name = models.CharField(max_length=100)

    start_date = models.DateField()
    end_date = models.DateField()

    is_closed = models.BooleanField(default=False)
    is_closing = models.BooleanField(
        default=False,
        help_text="Set while a close is running inside its transaction",
    )

    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    closing_date = models.DateField(null=True, blank=True)
    closing_description = models.TextField(blank=True, default="")

    total_debit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total_credit = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total_revenue = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    total_expenses = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)
    net_income = models.DecimalField(max_digits=18, decimal_places=2, default=ZERO)

    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_date"]
        indexes = [
            models.Index(fields=["start_date", "end_date"], name="period_range_idx"),
            models.Index(fields=["is_closed"], name="period_closed_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gt=F("start_date")),
                name="chk_period_end_after_start",
            ),
        ]
        permissions = [
            ("close_period", "Can close accounting period"),
        ]
        verbose_name = "Accounting Period"
        verbose_name_plural = "Accounting Periods"

    def __str__(self):
        state = "closed" if self.is_closed else "open"
        return f"{self.name} {self.start_date} → {self.end_date} ({state})"

    def contains(self, day) -> bool:
        return self.start_date <= day <= self.end_date

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "Period name is required"})

        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({"end_date": "end_date must be after start_date"})

        if self.start_date and self.end_date:
            qs = Period.objects.filter(
                start_date__lte=self.end_date,
                end_date__gte=self.start_date,
            )
            if self.pk:
                qs = qs.exclude(pk=self.pk)
            if qs.exists():
                raise ValidationError("This period overlaps an existing period")

    def save(self, *args, **kwargs):
        if self.pk:
            stored_closed = (
                Period.objects.filter(pk=self.pk)
                .values_list("is_closed", flat=True)
                .first()
            )
            if stored_closed:
                raise ValidationError(f"Period {self.name} is closed and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.is_closed:
            raise ValidationError(f"Period {self.name} is closed and cannot be deleted")
        return super().delete(*args, **kwargs)
