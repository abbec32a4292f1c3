# accounting/models/account.py

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Account(models.Model):
    """
    Represents a single node of the Chart of Accounts tree.

    Guarantees:
    - Account codes are globally unique and hierarchical (child code starts
      with the parent code)
    - GROUP accounts are roots; every other level has exactly one parent
      at the level directly above, with the same account type
    - Only DETAIL accounts are postable
    - Identity (code, type, level, parent) is frozen once a posted line
      references the account
    """

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (REVENUE, "Revenue"),
        (EXPENSE, "Expense"),
    ]

    GROUP = "GROUP"
    MAIN = "MAIN"
    SUB = "SUB"
    DETAIL = "DETAIL"

    LEVELS = [
        (GROUP, "Group"),
        (MAIN, "Main"),
        (SUB, "Sub"),
        (DETAIL, "Detail"),
    ]

    # Level order, root first.
    LEVEL_ORDER = [GROUP, MAIN, SUB, DETAIL]

    IDENTITY_FIELDS = ("code", "account_type", "level", "parent_id")

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=150)

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPES,
    )

    level = models.CharField(
        max_length=10,
        choices=LEVELS,
    )

    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="children",
        null=True,
        blank=True,
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["parent", "level"], name="acct_parent_level_idx"),
            models.Index(fields=["account_type"], name="acct_type_idx"),
            models.Index(fields=["is_active"], name="acct_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
            models.CheckConstraint(
                condition=(Q(level="GROUP") & Q(parent__isnull=True))
                | (~Q(level="GROUP") & Q(parent__isnull=False)),
                name="chk_account_parent_matches_level",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    # ----------------------------
    # Tree helpers
    # ----------------------------

    @classmethod
    def level_below(cls, level: str | None) -> str | None:
        """Level directly below `level` (None means "above the roots")."""
        if level is None:
            return cls.GROUP
        idx = cls.LEVEL_ORDER.index(level)
        if idx + 1 >= len(cls.LEVEL_ORDER):
            return None
        return cls.LEVEL_ORDER[idx + 1]

    @property
    def is_postable(self) -> bool:
        return self.level == self.DETAIL and self.is_active

    def has_posted_lines(self) -> bool:
        if not self.pk:
            return False
        return self.journal_lines.filter(document__status="POSTED").exists()

    # ----------------------------
    # Validation
    # ----------------------------

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")

        if self.level == self.GROUP:
            if self.parent_id is not None:
                raise ValidationError({"parent": "GROUP accounts cannot have a parent"})
            return

        if self.parent_id is None:
            raise ValidationError({"parent": f"{self.level} accounts require a parent"})

        parent = self.parent
        if self.level_below(parent.level) != self.level:
            raise ValidationError(
                {"parent": f"Parent of a {self.level} account must be {self._level_above()}"}
            )
        if parent.account_type != self.account_type:
            raise ValidationError(
                {"account_type": "Account type must match the parent account type"}
            )
        if not self.code.startswith(parent.code):
            raise ValidationError(
                {"code": f"Account code must start with parent code {parent.code}"}
            )

    def _level_above(self) -> str:
        idx = self.LEVEL_ORDER.index(self.level)
        return self.LEVEL_ORDER[idx - 1]

    def save(self, *args, **kwargs):
        if self.pk:
            previous = (
                Account.objects.filter(pk=self.pk)
                .values(*self.IDENTITY_FIELDS)
                .first()
            )
            if previous and self.has_posted_lines():
                changed = [
                    f for f in self.IDENTITY_FIELDS if previous[f] != getattr(self, f)
                ]
                if changed:
                    raise ValidationError(
                        f"Account {previous['code']} is referenced by posted entries; "
                        f"cannot change {', '.join(changed)}"
                    )

        self.full_clean()
        return super().save(*args, **kwargs)
