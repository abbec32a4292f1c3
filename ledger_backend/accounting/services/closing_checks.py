# accounting/services/closing_checks.py

"""
======================================================
PATH: accounting/services/closing_checks.py
======================================================
CLOSING-CHECK ENGINE

Runs the pre-close validation battery for one period and aggregates the
verdict that gates request_close().

Guarantees:
- Never writes: ledger checks run inside their own savepoint and only read
- Every selected check yields exactly one item (COMPLETED or FAILED);
  nothing is dropped, including timeouts
- can_close iff every required check is COMPLETED
- Results are generated fresh per run and never persisted

Check kinds:
- ledger checks: query the ledger tables directly (this process, this
  transaction)
- external checks: call a configured source (check_sources) on a worker
  pool, bounded by a timeout; omitted from the battery when no source is
  configured
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

from django.conf import settings
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from accounting.models import Account, JournalDocument, JournalLine, Period
from accounting.services import check_sources, period_service
from accounting.services.exceptions import ClosingChecksCancelled, NoChecksSelectedError

logger = logging.getLogger(__name__)

PENDING = "PENDING"
COMPLETED = "COMPLETED"
FAILED = "FAILED"

BUSINESS = "business"
EXECUTION = "execution"

# Categories
FINANCIAL_DOCUMENTS = "FINANCIAL_DOCUMENTS"
ACCOUNT_BALANCE = "ACCOUNT_BALANCE"
TEMPORARY_ACCOUNTS = "TEMPORARY_ACCOUNTS"
CHART_OF_ACCOUNTS = "CHART_OF_ACCOUNTS"
PERIODS = "PERIODS"
BANK_RECONCILIATION = "BANK_RECONCILIATION"
INVENTORY = "INVENTORY"
ACCOUNTS_RECEIVABLE = "ACCOUNTS_RECEIVABLE"
ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE"

CATEGORIES = [
    FINANCIAL_DOCUMENTS,
    ACCOUNT_BALANCE,
    TEMPORARY_ACCOUNTS,
    CHART_OF_ACCOUNTS,
    PERIODS,
    BANK_RECONCILIATION,
    INVENTORY,
    ACCOUNTS_RECEIVABLE,
    ACCOUNTS_PAYABLE,
]

CANCEL_POLL_SECONDS = 0.05


# ============================================================
# RESULT TYPES
# ============================================================


@dataclass
class ClosingCheckItem:
    id: str
    name: str
    category: str
    description: str
    required: bool
    status: str = PENDING
    error_message: str | None = None
    error_kind: str | None = None
    period_id: int | None = None
    executed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED


@dataclass(frozen=True)
class ClosingCheckSummary:
    total: int
    completed: int
    failed: int
    success_rate: int
    can_close: bool


@dataclass(frozen=True)
class ClosingCheckResult:
    results: list[ClosingCheckItem]
    summary: ClosingCheckSummary
    period_id: int
    executed_at: datetime

    @property
    def failed_checks(self) -> list[ClosingCheckItem]:
        return [item for item in self.results if item.status == FAILED]


# A ledger check returns None when it passes, or a failure message.
LedgerCheck = Callable[[Period], "str | None"]


@dataclass(frozen=True)
class CheckDefinition:
    id: str
    name: str
    category: str
    required: bool
    description: str = ""
    func: LedgerCheck | None = None
    external: bool = False

    def pending_item(self, period_id=None) -> ClosingCheckItem:
        return ClosingCheckItem(
            id=self.id,
            name=self.name,
            category=self.category,
            description=self.description,
            required=self.required,
            period_id=period_id,
        )


# ============================================================
# LEDGER CHECKS
# ============================================================


def _epsilon() -> Decimal:
    return Decimal(str(getattr(settings, "LEDGER_BALANCE_EPSILON", "0.01")))


def check_no_draft_documents(period: Period) -> str | None:
    drafts = JournalDocument.objects.filter(period=period, status=JournalDocument.DRAFT)
    count = drafts.count()
    if count:
        numbers = list(drafts.order_by("number").values_list("number", flat=True)[:10])
        return f"{count} draft document(s) remain in the period: {', '.join(numbers)}"
    return None


def check_documents_balanced(period: Period) -> str | None:
    eps = _epsilon()
    rows = (
        JournalDocument.objects.filter(period=period, status=JournalDocument.POSTED)
        .annotate(line_debit=Sum("lines__debit"), line_credit=Sum("lines__credit"))
        .values_list("number", "total_debit", "total_credit", "line_debit", "line_credit")
    )

    bad = []
    for number, total_debit, total_credit, line_debit, line_credit in rows:
        line_debit = line_debit or Decimal("0")
        line_credit = line_credit or Decimal("0")
        if abs(line_debit - line_credit) > eps or line_debit != total_debit or line_credit != total_credit:
            bad.append(number)

    if bad:
        return f"Posted documents out of balance: {', '.join(bad[:10])}"
    return None


def check_trial_balance(period: Period) -> str | None:
    totals = period_service.recompute_totals(period)
    diff = abs(totals.total_debit - totals.total_credit)
    if diff > _epsilon():
        return (
            f"Trial balance does not balance: debit={totals.total_debit} "
            f"credit={totals.total_credit} difference={diff}"
        )

    current = Period.objects.get(pk=period.pk)
    drift = [
        name
        for name in ("total_debit", "total_credit", "total_revenue", "total_expenses")
        if getattr(current, name) != getattr(totals, name)
    ]
    if drift:
        return f"Running totals drifted from posted documents: {', '.join(drift)}"
    return None


def check_temporary_accounts_settled(period: Period) -> str | None:
    """
    REVENUE and EXPENSE accounts must net to zero over the period's posted
    lines, i.e. a posted CLOSING document has moved their balances to equity.
    """
    eps = _epsilon()
    rows = (
        JournalLine.objects.filter(
            document__period=period,
            document__status=JournalDocument.POSTED,
            account__account_type__in=(Account.REVENUE, Account.EXPENSE),
        )
        .values("account__code")
        .annotate(sum_debit=Sum("debit"), sum_credit=Sum("credit"))
        .order_by("account__code")
    )
    unsettled = [
        f"{row['account__code']} ({row['sum_debit'] - row['sum_credit']})"
        for row in rows
        if abs(row["sum_debit"] - row["sum_credit"]) > eps
    ]
    if unsettled:
        return f"Temporary accounts not settled: {', '.join(unsettled[:10])}"
    return None


def check_postable_accounts(period: Period) -> str | None:
    offending = (
        JournalLine.objects.filter(document__period=period)
        .exclude(document__status=JournalDocument.CANCELLED)
        .filter(account__isnull=False)
        .filter(~Q(account__level=Account.DETAIL) | Q(account__is_active=False))
        .order_by()
        .values_list("account__code", flat=True)
        .distinct()
    )
    codes = sorted(offending)
    if codes:
        return f"Lines reference non-postable accounts: {', '.join(codes[:10])}"
    return None


def check_previous_periods_closed(period: Period) -> str | None:
    open_before = Period.objects.filter(
        end_date__lt=period.start_date,
        is_closed=False,
    ).order_by("start_date")
    names = list(open_before.values_list("name", flat=True))
    if names:
        return f"Earlier periods are still open: {', '.join(names)}"
    return None


DEFAULT_CHECKS: list[CheckDefinition] = [
    CheckDefinition(
        id="no_draft_documents",
        name="No draft documents",
        category=FINANCIAL_DOCUMENTS,
        required=True,
        description="Every document in the period is posted or cancelled",
        func=check_no_draft_documents,
    ),
    CheckDefinition(
        id="documents_balanced",
        name="Posted documents balanced",
        category=ACCOUNT_BALANCE,
        required=True,
        description="Each posted document's lines balance and match its frozen totals",
        func=check_documents_balanced,
    ),
    CheckDefinition(
        id="trial_balance",
        name="Trial balance",
        category=ACCOUNT_BALANCE,
        required=True,
        description="Period debits equal credits and running totals match posted documents",
        func=check_trial_balance,
    ),
    CheckDefinition(
        id="temporary_accounts",
        name="Temporary accounts settled",
        category=TEMPORARY_ACCOUNTS,
        required=False,
        description="Revenue and expense balances are closed out to equity",
        func=check_temporary_accounts_settled,
    ),
    CheckDefinition(
        id="postable_accounts",
        name="Postable accounts",
        category=CHART_OF_ACCOUNTS,
        required=True,
        description="Every line references an active DETAIL account",
        func=check_postable_accounts,
    ),
    CheckDefinition(
        id="previous_periods_closed",
        name="Previous periods closed",
        category=PERIODS,
        required=False,
        description="All earlier periods are closed",
        func=check_previous_periods_closed,
    ),
    CheckDefinition(
        id="bank_reconciliation",
        name="Bank reconciliation",
        category=BANK_RECONCILIATION,
        required=True,
        description="Bank balances reconcile with statements",
        external=True,
    ),
    CheckDefinition(
        id="inventory_valuation",
        name="Inventory valuation",
        category=INVENTORY,
        required=True,
        description="Inventory valuation matches the ledger",
        external=True,
    ),
    CheckDefinition(
        id="accounts_receivable",
        name="Accounts receivable review",
        category=ACCOUNTS_RECEIVABLE,
        required=False,
        description="Receivable balances reviewed",
        external=True,
    ),
    CheckDefinition(
        id="accounts_payable",
        name="Accounts payable review",
        category=ACCOUNTS_PAYABLE,
        required=False,
        description="Payable balances reviewed",
        external=True,
    ),
]


# ============================================================
# CATALOG
# ============================================================


def _catalog() -> list[CheckDefinition]:
    """
    Default battery with settings.LEDGER_CLOSING_CHECKS overrides applied.

    Override keys: id (required), required, name, description, enabled.
    External checks without a configured source are left out.
    """
    overrides = {o["id"]: o for o in getattr(settings, "LEDGER_CLOSING_CHECKS", []) or []}

    catalog: list[CheckDefinition] = []
    for definition in DEFAULT_CHECKS:
        override = overrides.get(definition.id, {})
        if override.get("enabled", True) is False:
            continue
        if definition.external and not check_sources.is_configured(definition.id):
            continue

        changes = {k: override[k] for k in ("required", "name", "description") if k in override}
        catalog.append(replace(definition, **changes) if changes else definition)
    return catalog


def available_checks(*, category: str | None = None, required: bool | None = None) -> list[CheckDefinition]:
    checks = _catalog()
    if category:
        checks = [c for c in checks if c.category == category]
    if required is not None:
        checks = [c for c in checks if c.required == required]
    return checks


def _select(check_ids: list[str] | None) -> list[CheckDefinition]:
    catalog = _catalog()
    if check_ids is None:
        return catalog

    wanted = list(dict.fromkeys(check_ids))
    if not wanted:
        raise NoChecksSelectedError()

    known = {c.id for c in catalog}
    unknown = [cid for cid in wanted if cid not in known]
    if unknown:
        raise NoChecksSelectedError(unknown=unknown)

    return [c for c in catalog if c.id in wanted]


# ============================================================
# EXECUTION
# ============================================================


def _finish(item: ClosingCheckItem, *, message: str | None = None, kind: str | None = None) -> ClosingCheckItem:
    item.executed_at = timezone.now()
    if message is None and kind is None:
        item.status = COMPLETED
        return item
    item.status = FAILED
    item.error_message = message
    item.error_kind = kind
    return item


def _raise_if_cancelled(cancel_event: threading.Event | None, period_id) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ClosingChecksCancelled(period_id=period_id)


def _run_ledger_check(definition: CheckDefinition, period: Period) -> ClosingCheckItem:
    item = definition.pending_item(period.pk)
    try:
        with transaction.atomic():
            message = definition.func(period)
    except Exception as exc:
        logger.exception(
            "Closing check raised",
            extra={"check_id": definition.id, "period_id": period.pk},
        )
        return _finish(item, message=str(exc) or exc.__class__.__name__, kind=EXECUTION)

    if message:
        return _finish(item, message=message, kind=BUSINESS)
    return _finish(item)


def _collect_external(
    definition: CheckDefinition,
    future,
    *,
    period: Period,
    deadline: float,
    timeout: float,
    cancel_event: threading.Event | None,
) -> ClosingCheckItem:
    item = definition.pending_item(period.pk)

    # Finished futures are collected even past the shared deadline.
    while True:
        _raise_if_cancelled(cancel_event, period.pk)
        remaining = deadline - time.monotonic()
        done, _ = wait([future], timeout=max(0.0, min(remaining, CANCEL_POLL_SECONDS)))
        if done:
            break
        if remaining <= 0:
            future.cancel()
            logger.warning(
                "Closing check source timed out",
                extra={"check_id": definition.id, "period_id": period.pk, "timeout": timeout},
            )
            return _finish(item, message=f"Timed out after {timeout}s", kind=EXECUTION)

    try:
        report = future.result()
    except Exception as exc:
        logger.warning(
            "Closing check source failed",
            extra={"check_id": definition.id, "period_id": period.pk, "error": str(exc)},
        )
        return _finish(item, message=str(exc) or exc.__class__.__name__, kind=EXECUTION)

    if report.ok:
        return _finish(item)
    return _finish(item, message=report.message or f"{definition.name} failed", kind=BUSINESS)


def summarize(results: list[ClosingCheckItem]) -> ClosingCheckSummary:
    total = len(results)
    completed = sum(1 for r in results if r.status == COMPLETED)
    failed = sum(1 for r in results if r.status == FAILED)

    if total:
        rate = (Decimal(completed) * 100 / Decimal(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        success_rate = int(rate)
    else:
        success_rate = 0

    can_close = all(r.status == COMPLETED for r in results if r.required)
    return ClosingCheckSummary(
        total=total,
        completed=completed,
        failed=failed,
        success_rate=success_rate,
        can_close=can_close,
    )


def run(
    period_id,
    *,
    check_ids: list[str] | None = None,
    timeout: float | None = None,
    cancel_event: threading.Event | None = None,
) -> ClosingCheckResult:
    """
    Execute the selected checks for a period and aggregate the verdict.

    Raises:
        PeriodNotFound, NoChecksSelectedError, ClosingChecksCancelled
    """
    period = period_service.get_period(period_id)
    definitions = _select(check_ids)
    if timeout is None:
        timeout = float(getattr(settings, "LEDGER_CHECK_TIMEOUT_SECONDS", 10.0))

    _raise_if_cancelled(cancel_event, period.pk)

    external = [d for d in definitions if d.external]
    pool = None
    futures = {}
    if external:
        workers = max(1, min(len(external), int(getattr(settings, "LEDGER_CHECK_WORKERS", 4))))
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="closing-check")
        futures = {d.id: pool.submit(check_sources.call_source, d.id, period) for d in external}
    deadline = time.monotonic() + timeout

    results: list[ClosingCheckItem] = []
    try:
        for definition in definitions:
            _raise_if_cancelled(cancel_event, period.pk)
            if definition.external:
                item = _collect_external(
                    definition,
                    futures[definition.id],
                    period=period,
                    deadline=deadline,
                    timeout=timeout,
                    cancel_event=cancel_event,
                )
            else:
                item = _run_ledger_check(definition, period)
            results.append(item)
    except ClosingChecksCancelled:
        logger.info("Closing checks cancelled", extra={"period_id": period.pk})
        raise
    finally:
        if pool is not None:
            # Hung sources are abandoned, not awaited.
            pool.shutdown(wait=False, cancel_futures=True)

    summary = summarize(results)
    logger.info(
        "Closing checks executed",
        extra={
            "period_id": period.pk,
            "total": summary.total,
            "failed": summary.failed,
            "can_close": summary.can_close,
        },
    )
    return ClosingCheckResult(
        results=results,
        summary=summary,
        period_id=period.pk,
        executed_at=timezone.now(),
    )
