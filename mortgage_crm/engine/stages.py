"""Stage transitions and lead auto-aging.

The only code allowed to change a deal's stage. Every transition stamps
stage_entered_at, which restarts interval reminders and the aging clock.

Any stage may move to any other stage; the pipeline has no forbidden
moves. Moving to the current stage is allowed and still restamps
stage_entered_at.

Usage:
    from mortgage_crm.engine.stages import apply_auto_aging, move_stage

    deal = move_stage(deal, Stage.PRE_APPROVAL, datetime.now())
    deals, changed = apply_auto_aging(deals, date.today())
"""

from dataclasses import replace
from datetime import date, datetime
from typing import Union

from mortgage_crm.core.exceptions import InvalidStageError
from mortgage_crm.core.logging import get_logger
from mortgage_crm.db.models import STAGE_ORDER, Deal, Stage
from mortgage_crm.engine.dates import days_between, start_of_day

logger = get_logger(__name__)

DEFAULT_AGING_DAYS = 30


def parse_stage(value: Union[Stage, str]) -> Stage:
    """Resolve a stage key.

    Args:
        value: Stage or its string key (e.g. "old_lead")

    Returns:
        Matching Stage

    Raises:
        InvalidStageError: If value is not one of the five stages
    """
    try:
        return Stage(value)
    except ValueError:
        raise InvalidStageError(f"Unknown stage: {value!r}") from None


def move_stage(deal: Deal, new_stage: Union[Stage, str], now: datetime) -> Deal:
    """Move a deal to a stage.

    Args:
        deal: Deal to move
        new_stage: Target stage
        now: Transition time, stored as stage_entered_at

    Returns:
        New deal value; the input is not modified

    Raises:
        InvalidStageError: If new_stage is not recognized
    """
    target = parse_stage(new_stage)
    moved = replace(deal, stage=target, stage_entered_at=now)

    logger.info(
        "Deal stage changed",
        extra={
            "context": {
                "deal_id": deal.id,
                "from": deal.stage.value,
                "to": target.value,
            }
        },
    )
    return moved


def mark_followed_up(deal: Deal, today: date) -> Deal:
    """Record a follow-up, restarting the interval reminder.

    Stage and stage_entered_at are left alone.
    """
    return replace(deal, last_follow_up=today)


def available_moves(deal: Deal) -> list[Stage]:
    """Return every stage other than the current one, in pipeline order."""
    return [stage for stage in STAGE_ORDER if stage != deal.stage]


def is_stale_lead(deal: Deal, today: date, aging_days: int = DEFAULT_AGING_DAYS) -> bool:
    """Check whether an active lead has waited long enough to age out."""
    if deal.stage != Stage.ACTIVE_LEAD:
        return False
    entered = deal.stage_entered_at or deal.created_at
    return days_between(entered, today) >= aging_days


def apply_auto_aging(
    deals: list[Deal],
    today: date,
    aging_days: int = DEFAULT_AGING_DAYS,
) -> tuple[list[Deal], bool]:
    """Move stale active leads to old leads.

    A lead that aged today has stage_entered_at set to today, so a
    second run on the same day changes nothing.

    Args:
        deals: Current collection
        today: Calendar day to evaluate
        aging_days: Days in active_lead before aging out

    Returns:
        (updated collection, whether any deal changed)
    """
    stamp = start_of_day(today)
    updated: list[Deal] = []
    aged: list[str] = []

    for deal in deals:
        if is_stale_lead(deal, today, aging_days):
            updated.append(move_stage(deal, Stage.OLD_LEAD, stamp))
            aged.append(deal.id)
        else:
            updated.append(deal)

    if aged:
        logger.info(
            "Stale leads aged out",
            extra={"context": {"count": len(aged), "deal_ids": aged}},
        )
    return updated, bool(aged)
