"""Data models and enumerations for Mortgage CRM.

Enums serialize as their string value.
Deals and needs items are frozen; every operation returns a new value
built with dataclasses.replace. A deal's needs list is stored as a tuple.

This module defines:
    - Enumerations for stage and deal type
    - Dataclasses for deals and needs items
    - Stage labels and the id generator
"""

import random
import string
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional

# =============================================================================
# ENUMERATIONS
# =============================================================================


class Stage(str, Enum):
    """Where a deal lives in the pipeline.

    Values:
        ACTIVE_LEAD: New lead, chased twice a week
        OLD_LEAD: Lead that went quiet for 30+ days, monthly touch
        PRE_APPROVAL: Borrower pre-approved, monthly touch
        ACTIVE_DEAL: Under contract, tracked by borrower needs
        CLOSED_DEAL: Funded and done
    """

    ACTIVE_LEAD = "active_lead"
    OLD_LEAD = "old_lead"
    PRE_APPROVAL = "pre_approval"
    ACTIVE_DEAL = "active_deal"
    CLOSED_DEAL = "closed_deal"


class DealType(str, Enum):
    """Loan purpose."""

    PURCHASE = "Purchase"
    REFINANCE = "Refinance"


# Pipeline order is enum declaration order
STAGE_ORDER: list[Stage] = list(Stage)

STAGE_LABELS: dict[Stage, str] = {
    Stage.ACTIVE_LEAD: "Active Leads",
    Stage.OLD_LEAD: "Old Leads",
    Stage.PRE_APPROVAL: "Pre-Approvals",
    Stage.ACTIVE_DEAL: "Active Deals",
    Stage.CLOSED_DEAL: "Closed Deals",
}


def stage_label(stage: Stage) -> str:
    """Return display label for a stage."""
    return STAGE_LABELS[stage]


# =============================================================================
# IDENTIFIERS
# =============================================================================

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def new_id() -> str:
    """Generate an opaque record id.

    Format: base-36 epoch milliseconds, underscore, six random base-36 chars.

    Examples:
        'm5x2k1qz_4f9a0c'
    """
    stamp = _to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"{stamp}_{suffix}"


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass(frozen=True)
class NeedsItem:
    """Document or request outstanding from the borrower.

    Attributes:
        id: Unique within the parent deal
        text: What is needed (non-empty, trimmed)
        done: Received flag, changed only by toggling
        added_at: When the item was added
    """

    id: str = field(default_factory=new_id)
    text: str = ""
    done: bool = False
    added_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Deal:
    """Mortgage deal record.

    Attributes:
        id: Opaque unique identifier
        name: Display name (required)
        type: Purchase or Refinance
        referral: Who sent the deal
        stage: Pipeline location
        created_at: Record creation time, never rewritten
        stage_entered_at: When the current stage was entered
        last_follow_up: Date the user last marked a follow-up done
        needs_list: Items needed from the borrower, in insertion order
        notes: Free-text notes
    """

    id: str = field(default_factory=new_id)
    name: str = ""
    type: DealType = DealType.PURCHASE
    referral: str = ""
    stage: Stage = Stage.ACTIVE_LEAD
    created_at: datetime = field(default_factory=datetime.now)
    stage_entered_at: Optional[datetime] = None
    last_follow_up: Optional[date] = None
    needs_list: tuple[NeedsItem, ...] = ()
    notes: str = ""

    def __post_init__(self) -> None:
        if self.stage_entered_at is None:
            object.__setattr__(self, "stage_entered_at", self.created_at)
        object.__setattr__(self, "needs_list", tuple(self.needs_list))

    @property
    def open_needs_count(self) -> int:
        """Return number of needs items not yet received."""
        return sum(1 for item in self.needs_list if not item.done)

    @property
    def stage_label(self) -> str:
        """Return display label of the current stage."""
        return STAGE_LABELS[self.stage]
