"""
JOURNAL DOCUMENT LIFECYCLE RULES

This module defines the ONLY allowed lifecycle transitions
for journal documents.

DESIGN PRINCIPLES:
- No database writes
- No side effects
- Single source of truth
"""

from accounting.models import JournalDocument
from accounting.services.exceptions import InvalidStateTransition

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    JournalDocument.POSTED,
    JournalDocument.CANCELLED,
}

ALLOWED_TRANSITIONS = {
    JournalDocument.DRAFT: {
        JournalDocument.POSTED,
        JournalDocument.CANCELLED,
    },
}

# Pseudo-targets for edits / deletes: only drafts accept them.
EDIT = "EDIT"
DELETE = "DELETE"


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    if to_status in (EDIT, DELETE):
        return from_status == JournalDocument.DRAFT

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, document: JournalDocument, target_status: str):
    if not can_transition(
        from_status=document.status,
        to_status=target_status,
    ):
        raise InvalidStateTransition(
            entity="JournalDocument",
            entity_id=document.pk,
            from_state=document.status,
            to_state=target_status,
        )

