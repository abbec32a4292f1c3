# accounting/services/check_sources.py

"""
EXTERNAL CLOSING-CHECK SOURCES

Some closing checks need data the ledger does not own (bank statements,
stock valuation, receivable / payable sub-ledgers). Each one is served by a
collaborator configured in settings.LEDGER_CHECK_SOURCES:

    LEDGER_CHECK_SOURCES = {
        "bank_reconciliation": "treasury.closing.bank_reconciliation",
    }

A source is any callable accepting `period=` and returning one of:
- SourceReport
- bool (True = pass)
- {"ok": bool, "message": str}
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.utils.module_loading import import_string


@dataclass(frozen=True)
class SourceReport:
    ok: bool
    message: str = ""


def configured_sources() -> dict[str, str]:
    return dict(getattr(settings, "LEDGER_CHECK_SOURCES", {}) or {})


def is_configured(check_id: str) -> bool:
    return bool((configured_sources().get(check_id) or "").strip())


def load_source(check_id: str):
    path = (configured_sources().get(check_id) or "").strip()
    if not path:
        raise LookupError(f"No data source configured for closing check {check_id}")
    return import_string(path)


def call_source(check_id: str, period) -> SourceReport:
    source = load_source(check_id)
    raw = source(period=period)

    if isinstance(raw, SourceReport):
        return raw
    if isinstance(raw, bool):
        return SourceReport(ok=raw)
    if isinstance(raw, dict) and "ok" in raw:
        return SourceReport(ok=bool(raw["ok"]), message=str(raw.get("message") or ""))

    raise TypeError(
        f"Source for {check_id} returned {type(raw).__name__}; "
        "expected SourceReport, bool or {'ok': ..., 'message': ...}"
    )
