# accounting/services/exceptions.py

"""
LEDGER SERVICE ERRORS

Centralized domain errors for the ledger core.

Every error carries a machine-readable `code` and structured `details()`;
presentation (messages, HTTP status) belongs to the API layer.
"""

from __future__ import annotations

from decimal import Decimal


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    code = "ledger_error"
    retryable = False

    def details(self) -> dict:
        return {}


# ============================================================
# VALIDATION (client-fixable, never retried)
# ============================================================


class LedgerValidationError(LedgerError):
    code = "validation_error"


class UnbalancedEntryError(LedgerValidationError):
    code = "unbalanced"

    def __init__(self, *, debit_total: Decimal, credit_total: Decimal):
        self.debit_total = debit_total
        self.credit_total = credit_total
        self.difference = abs(debit_total - credit_total)
        super().__init__(
            f"Entry not balanced: debit={debit_total} credit={credit_total} "
            f"difference={self.difference}"
        )

    def details(self) -> dict:
        return {
            "debit_total": self.debit_total,
            "credit_total": self.credit_total,
            "difference": self.difference,
        }


class _LineError(LedgerValidationError):
    def __init__(self, message: str, *, line_no: int | None = None):
        self.line_no = line_no
        super().__init__(message)

    def details(self) -> dict:
        return {"line_no": self.line_no}


class EmptyLineError(_LineError):
    code = "empty_line"


class InvalidLineAmountError(_LineError):
    code = "invalid_line_amount"


class InvalidLineDescriptionError(_LineError):
    code = "invalid_line_description"


class InsufficientLinesError(LedgerValidationError):
    code = "insufficient_lines"

    def __init__(self, *, count: int):
        self.count = count
        super().__init__(f"A journal document needs at least 2 lines (got {count})")

    def details(self) -> dict:
        return {"count": self.count}


class AccountNotPostable(LedgerValidationError):
    code = "account_not_postable"

    def __init__(self, *, account_id, reason: str, line_no: int | None = None):
        self.account_id = account_id
        self.reason = reason
        self.line_no = line_no
        super().__init__(f"Account {account_id} is not postable: {reason}")

    def details(self) -> dict:
        return {"account_id": self.account_id, "reason": self.reason, "line_no": self.line_no}


class DuplicateDocumentNumberError(LedgerValidationError):
    code = "duplicate_number"

    def __init__(self, *, number: str, period_id):
        self.number = number
        self.period_id = period_id
        super().__init__(f"Document number {number} already exists in period {period_id}")

    def details(self) -> dict:
        return {"number": self.number, "period_id": self.period_id}


class DocumentOutsidePeriodError(LedgerValidationError):
    code = "date_outside_period"

    def __init__(self, *, date, period_id, start_date, end_date):
        self.date = date
        self.period_id = period_id
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"Date {date} is outside period {period_id} ({start_date} → {end_date})"
        )

    def details(self) -> dict:
        return {
            "date": self.date,
            "period_id": self.period_id,
            "start_date": self.start_date,
            "end_date": self.end_date,
        }


class InvalidPeriodRangeError(LedgerValidationError):
    code = "invalid_period_range"

    def __init__(self, *, start_date, end_date):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(f"end_date {end_date} must be after start_date {start_date}")

    def details(self) -> dict:
        return {"start_date": self.start_date, "end_date": self.end_date}


class InvalidClosingDateError(LedgerValidationError):
    code = "invalid_closing_date"

    def __init__(self, *, closing_date, end_date):
        self.closing_date = closing_date
        self.end_date = end_date
        super().__init__(f"Closing date {closing_date} precedes period end {end_date}")

    def details(self) -> dict:
        return {"closing_date": self.closing_date, "end_date": self.end_date}


class NoChecksSelectedError(LedgerValidationError):
    code = "no_checks_selected"

    def __init__(self, *, unknown: list[str] | None = None):
        self.unknown = list(unknown or [])
        msg = "No closing checks selected"
        if self.unknown:
            msg = f"Unknown closing checks: {', '.join(self.unknown)}"
        super().__init__(msg)

    def details(self) -> dict:
        return {"unknown": self.unknown}


# ============================================================
# STATE (conflicts with the current lifecycle state)
# ============================================================


class InvalidStateTransition(LedgerError):
    code = "invalid_state"

    def __init__(self, *, entity: str, entity_id, from_state: str, to_state: str):
        self.entity = entity
        self.entity_id = entity_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"{entity} {entity_id} cannot transition from '{from_state}' to '{to_state}'"
        )

    def details(self) -> dict:
        return {
            "entity": self.entity,
            "id": self.entity_id,
            "from": self.from_state,
            "to": self.to_state,
        }


class PeriodOverlapError(LedgerError):
    code = "period_overlap"

    def __init__(self, *, start_date, end_date, conflicting_ids: list):
        self.start_date = start_date
        self.end_date = end_date
        self.conflicting_ids = list(conflicting_ids)
        super().__init__(
            f"Range {start_date} → {end_date} overlaps period(s) {self.conflicting_ids}"
        )

    def details(self) -> dict:
        return {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "conflicting_ids": self.conflicting_ids,
        }


# ============================================================
# NOT FOUND
# ============================================================


class _NotFound(LedgerError):
    entity = "object"

    def __init__(self, object_id):
        self.object_id = object_id
        super().__init__(f"{self.entity} {object_id} not found")

    def details(self) -> dict:
        return {"id": self.object_id}


class AccountNotFound(_NotFound):
    code = "account_not_found"
    entity = "Account"


class DocumentNotFound(_NotFound):
    code = "document_not_found"
    entity = "Journal document"


class PeriodNotFound(_NotFound):
    code = "period_not_found"
    entity = "Period"


# ============================================================
# CONFLICT (refetch and retry)
# ============================================================


class PeriodClosedError(LedgerError):
    code = "period_closed"

    def __init__(self, *, period_id, name: str = ""):
        self.period_id = period_id
        self.name = name
        super().__init__(f"Period {name or period_id} is closed")

    def details(self) -> dict:
        return {"period_id": self.period_id}


class PeriodCloseInProgressError(LedgerError):
    code = "period_close_in_progress"
    retryable = True

    def __init__(self, *, period_id):
        self.period_id = period_id
        super().__init__(f"Period {period_id} is being closed; retry later")

    def details(self) -> dict:
        return {"period_id": self.period_id, "retryable": True}


# ============================================================
# GATE / CANCELLATION / FATAL
# ============================================================


class ClosingBlockedError(LedgerError):
    code = "closing_blocked"

    def __init__(self, *, period_id, failed_checks: list, result):
        self.period_id = period_id
        self.failed_checks = list(failed_checks)
        self.result = result
        names = ", ".join(c.id for c in self.failed_checks)
        super().__init__(f"Period {period_id} cannot be closed; failed checks: {names}")

    def details(self) -> dict:
        return {
            "period_id": self.period_id,
            "failed_checks": [c.id for c in self.failed_checks],
        }


class ClosingChecksCancelled(LedgerError):
    code = "closing_checks_cancelled"

    def __init__(self, *, period_id):
        self.period_id = period_id
        super().__init__(f"Closing checks for period {period_id} were cancelled")

    def details(self) -> dict:
        return {"period_id": self.period_id}


class LedgerIntegrityError(LedgerError):
    """Stored state contradicts a ledger invariant. Never a client error."""

    code = "integrity_error"

    def __init__(self, message: str, *, document_id=None):
        self.document_id = document_id
        super().__init__(message)

    def details(self) -> dict:
        return {"document_id": self.document_id}
