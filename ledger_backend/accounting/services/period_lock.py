# accounting/services/period_lock.py

"""
======================================================
PATH: accounting/services/period_lock.py
======================================================
PERIOD LOCK GUARD

Purpose:
- Serialize writers of one period (posts vs. the close) on the period row.
- Prevent posting ANY journal document whose date falls within a closed
  period, or into a period whose close is in flight.

Design:
- Thin, reusable guard
- Called by posting (engine choke-point) and period_service
- Must run inside transaction.atomic (row locks live until commit)
"""

from __future__ import annotations

import logging
from datetime import date

from django.conf import settings
from django.db import OperationalError, connection

from accounting.models import Period
from accounting.services.exceptions import (
    PeriodCloseInProgressError,
    PeriodClosedError,
    PeriodNotFound,
)

logger = logging.getLogger(__name__)


def _nowait_requested(nowait: bool | None) -> bool:
    if nowait is None:
        nowait = getattr(settings, "LEDGER_POST_LOCK_NOWAIT", False)
    return bool(nowait) and connection.features.has_select_for_update_nowait


def lock_period(period_id, *, nowait: bool | None = None) -> Period:
    """
    SELECT ... FOR UPDATE the period row.

    With nowait, a row already locked by a running close (or another
    writer) fails fast with the retryable PeriodCloseInProgressError.
    """
    use_nowait = _nowait_requested(nowait)
    try:
        period = (
            Period.objects.select_for_update(nowait=use_nowait)
            .filter(pk=period_id)
            .first()
        )
    except OperationalError as exc:
        logger.info(
            "Period row busy; failing fast",
            extra={"period_id": period_id},
        )
        raise PeriodCloseInProgressError(period_id=period_id) from exc
    except (ValueError, TypeError) as exc:
        raise PeriodNotFound(period_id) from exc

    if period is None:
        raise PeriodNotFound(period_id)
    return period


def assert_period_open(*, period: Period, on_date: date | None = None) -> None:
    """
    Assert that `period` accepts postings dated `on_date`.

    Raises:
        PeriodCloseInProgressError if a close of this period is in flight
        PeriodClosedError if the period, or any closed period containing
        on_date, is closed
    """
    if period.is_closing:
        raise PeriodCloseInProgressError(period_id=period.pk)

    if period.is_closed:
        raise PeriodClosedError(period_id=period.pk, name=period.name)

    if on_date is None:
        return

    locked = (
        Period.objects.filter(
            is_closed=True,
            start_date__lte=on_date,
            end_date__gte=on_date,
        )
        .exclude(pk=period.pk)
        .first()
    )
    if locked is not None:
        raise PeriodClosedError(period_id=locked.pk, name=locked.name)
