"""Stage reminder rules and due-date queries.

Each stage carries exactly one follow-up rule:
    1. Weekly: due on fixed weekdays (active leads, Mon & Thu)
    2. Interval: due once N days have passed since the anchor date
    3. None: never due (active and closed deals)

The anchor for interval rules is the last follow-up if one was logged,
otherwise the day the deal entered its stage, otherwise its creation day.

Usage:
    from mortgage_crm.engine.reminders import is_due_today, next_due_date

    if is_due_today(deal, date.today()):
        ...
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from mortgage_crm.db.models import Deal, Stage
from mortgage_crm.engine.dates import add_days, days_between, to_date, weekday_index

# =============================================================================
# RULE TYPES
# =============================================================================


@dataclass(frozen=True)
class WeeklyRule:
    """Due on every listed weekday.

    Attributes:
        days_of_week: Sunday-first weekday indices (0-6)
        label: Human description shown next to the stage
    """

    days_of_week: frozenset[int]
    label: str


@dataclass(frozen=True)
class IntervalRule:
    """Due once interval_days have elapsed since the anchor date.

    Attributes:
        interval_days: Positive day count
        label: Human description shown next to the stage
    """

    interval_days: int
    label: str


@dataclass(frozen=True)
class NoReminder:
    """Never due."""

    label: str = "No scheduled follow-up"


StageRule = Union[WeeklyRule, IntervalRule, NoReminder]


# =============================================================================
# RULE TABLE
# =============================================================================

MONDAY = 1
THURSDAY = 4

REMINDER_RULES: dict[Stage, StageRule] = {
    Stage.ACTIVE_LEAD: WeeklyRule(frozenset({MONDAY, THURSDAY}), "Follow up every Mon & Thu"),
    Stage.OLD_LEAD: IntervalRule(30, "Follow up every 30 days"),
    Stage.PRE_APPROVAL: IntervalRule(30, "Follow up every 30 days"),
    Stage.ACTIVE_DEAL: NoReminder(),
    Stage.CLOSED_DEAL: NoReminder(),
}

AUTO_AGING_NOTE = "Auto-moves to Old Leads after 30 days"


def get_rule(stage: Stage) -> StageRule:
    """Return the reminder rule for a stage."""
    return REMINDER_RULES[Stage(stage)]


def describe_rule(stage: Stage) -> str:
    """Return the human label for a stage's cadence.

    Active leads also mention auto-aging.
    """
    label = get_rule(stage).label
    if Stage(stage) == Stage.ACTIVE_LEAD:
        return f"{label}. {AUTO_AGING_NOTE}"
    return label


# =============================================================================
# QUERIES
# =============================================================================


def anchor_date(deal: Deal) -> date:
    """Return the date interval reminders count from.

    Priority: last_follow_up, then stage_entered_at, then created_at.
    """
    anchor = deal.last_follow_up or deal.stage_entered_at or deal.created_at
    return to_date(anchor)


def is_due_today(deal: Deal, today: date) -> bool:
    """Check whether a deal needs follow-up on the given day.

    Args:
        deal: Deal to check
        today: Calendar day to evaluate

    Returns:
        True if the stage rule says the deal is due
    """
    rule = get_rule(deal.stage)
    if isinstance(rule, NoReminder):
        return False
    if isinstance(rule, WeeklyRule):
        return weekday_index(today) in rule.days_of_week
    if isinstance(rule, IntervalRule):
        return days_between(anchor_date(deal), today) >= rule.interval_days
    raise TypeError(f"Unhandled reminder rule: {rule!r}")


def next_due_date(deal: Deal, today: date) -> Optional[date]:
    """Return the next follow-up date for a deal.

    Weekly rules look strictly ahead: a rule that matches today
    reports the following week's occurrence, so the result is
    always 1-7 days out. Interval rules return anchor + interval,
    which may already be in the past for an overdue deal.

    Args:
        deal: Deal to check
        today: Calendar day to count from

    Returns:
        Next due date, or None if the stage has no reminders
    """
    rule = get_rule(deal.stage)
    if isinstance(rule, NoReminder):
        return None
    if isinstance(rule, WeeklyRule):
        dow = weekday_index(today)
        offsets = []
        for day in rule.days_of_week:
            offset = day - dow
            if offset <= 0:
                offset += 7
            offsets.append(offset)
        return add_days(today, min(offsets))
    if isinstance(rule, IntervalRule):
        return add_days(anchor_date(deal), rule.interval_days)
    raise TypeError(f"Unhandled reminder rule: {rule!r}")
