# accounting/services/chart_service.py

"""
======================================================
PATH: accounting/services/chart_service.py
======================================================
CHART OF ACCOUNTS LOOKUPS

Answers the questions the cascading account pickers and the poster ask:
- Which accounts sit one level below this one?
- Is this account a postable leaf?
- What is the GROUP → ... → DETAIL path of this account?

Read-only. Takes no locks.
"""

from __future__ import annotations

from accounting.models import Account
from accounting.services.exceptions import AccountNotFound, AccountNotPostable


def children_of(parent_id=None, *, level: str | None = None, active_only: bool = True) -> list[Account]:
    """
    Accounts one level below `parent_id` (GROUP accounts when parent_id is None).

    If `level` is given and is not the level directly below the parent,
    the result is empty.
    """
    if parent_id is None:
        expected = Account.GROUP
        qs = Account.objects.filter(parent__isnull=True)
    else:
        parent = Account.objects.filter(pk=parent_id).only("level").first()
        if parent is None:
            raise AccountNotFound(parent_id)
        expected = Account.level_below(parent.level)
        qs = Account.objects.filter(parent_id=parent_id)

    if expected is None or (level and level != expected):
        return []

    qs = qs.filter(level=expected)
    if active_only:
        qs = qs.filter(is_active=True)
    return list(qs.order_by("code"))


def resolve_leaf(account_id, *, line_no: int | None = None) -> Account:
    try:
        account = Account.objects.get(pk=account_id)
    except (Account.DoesNotExist, ValueError, TypeError) as exc:
        raise AccountNotFound(account_id) from exc

    if account.level != Account.DETAIL:
        raise AccountNotPostable(
            account_id=account_id,
            reason=f"level {account.level} is not postable",
            line_no=line_no,
        )
    if not account.is_active:
        raise AccountNotPostable(account_id=account_id, reason="inactive", line_no=line_no)

    return account


def account_path(account: Account) -> list[Account]:
    """Ancestors from the GROUP root down to `account` (inclusive)."""
    path = [account]
    node = account
    # Depth is bounded by the four levels.
    while node.parent_id is not None and len(path) < len(Account.LEVEL_ORDER):
        node = node.parent
        path.append(node)
    path.reverse()
    return path


def get_account(account_id) -> Account:
    try:
        return Account.objects.select_related("parent").get(pk=account_id)
    except (Account.DoesNotExist, ValueError, TypeError) as exc:
        raise AccountNotFound(account_id) from exc
