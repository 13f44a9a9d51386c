"""Daily brief generation.

The dashboard as a short text memo:
    - Pipeline summary (deal count per stage)
    - Today's follow-ups (deals due per their stage rule)
    - Outstanding borrower needs (active deals with open items)

Usage:
    from mortgage_crm.content.daily_brief import generate_daily_brief

    brief = generate_daily_brief(store, date.today())
    print(brief.full_text)
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

import jinja2

from mortgage_crm.core.logging import get_logger
from mortgage_crm.db.models import STAGE_LABELS, STAGE_ORDER, Deal
from mortgage_crm.engine.needs import open_items
from mortgage_crm.engine.reminders import describe_rule, next_due_date
from mortgage_crm.engine.store import DealStore

logger = get_logger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"
TEMPLATE_NAME = "daily_brief.txt.j2"

_env: Optional[jinja2.Environment] = None


def _get_env() -> jinja2.Environment:
    """Get or create the Jinja2 environment."""
    global _env
    if _env is None:
        _env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )
    return _env


@dataclass
class FollowUpLine:
    """One deal due today."""

    deal_id: str
    name: str
    stage_label: str
    referral: str
    cadence: str
    next_due: Optional[date]


@dataclass
class NeedsLine:
    """One active deal with outstanding items."""

    deal_id: str
    name: str
    items: list[str]


@dataclass
class DailyBrief:
    """Daily brief content."""

    date: str
    full_text: str

    # Structured data for callers that render their own view
    stage_counts: dict[str, int] = field(default_factory=dict)
    follow_ups: list[FollowUpLine] = field(default_factory=list)
    open_needs: list[NeedsLine] = field(default_factory=list)
    total_deals: int = 0


def _follow_up_line(deal: Deal, today: date) -> FollowUpLine:
    return FollowUpLine(
        deal_id=deal.id,
        name=deal.name,
        stage_label=deal.stage_label,
        referral=deal.referral,
        cadence=describe_rule(deal.stage),
        next_due=next_due_date(deal, today),
    )


def generate_daily_brief(store: DealStore, today: date) -> DailyBrief:
    """Build the daily brief from the current collection.

    Args:
        store: Loaded deal store
        today: Calendar day the brief is for

    Returns:
        DailyBrief with rendered text and structured sections
    """
    counts = store.counts_by_stage()
    stage_counts = {STAGE_LABELS[stage]: counts[stage] for stage in STAGE_ORDER}
    follow_ups = [_follow_up_line(deal, today) for deal in store.due_today(today)]
    open_needs = [
        NeedsLine(deal_id=deal.id, name=deal.name, items=[item.text for item in open_items(deal)])
        for deal in store.open_needs_deals()
    ]

    template = _get_env().get_template(TEMPLATE_NAME)
    full_text = template.render(
        today=today,
        weekday=today.strftime("%A"),
        stage_counts=stage_counts,
        total_deals=len(store),
        follow_ups=follow_ups,
        open_needs=open_needs,
    )

    logger.info(
        "Daily brief generated",
        extra={
            "context": {
                "date": today.isoformat(),
                "follow_ups": len(follow_ups),
                "open_needs": len(open_needs),
            }
        },
    )

    return DailyBrief(
        date=today.isoformat(),
        full_text=full_text,
        stage_counts=stage_counts,
        follow_ups=follow_ups,
        open_needs=open_needs,
        total_deals=len(store),
    )
