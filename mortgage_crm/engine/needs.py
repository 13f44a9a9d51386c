"""Borrower needs checklist.

Per-deal list of documents or answers still owed by the borrower.
Items are added, toggled between open and received, and removed;
nothing else changes them.

Usage:
    from mortgage_crm.engine.needs import add_item, toggle_item

    deal = add_item(deal, "2 months bank statements", datetime.now())
    deal = toggle_item(deal, deal.needs_list[-1].id)
"""

from dataclasses import replace
from datetime import datetime

from mortgage_crm.core.exceptions import EmptyTextError, NotFoundError
from mortgage_crm.db.models import Deal, NeedsItem, new_id


def _unique_item_id(deal: Deal) -> str:
    existing = {item.id for item in deal.needs_list}
    item_id = new_id()
    while item_id in existing:
        item_id = new_id()
    return item_id


def add_item(deal: Deal, text: str, now: datetime) -> Deal:
    """Append an open needs item.

    Args:
        deal: Deal to add to
        text: What is needed; surrounding whitespace is stripped
        now: Stored as added_at

    Returns:
        New deal value with the item at the end of needs_list

    Raises:
        EmptyTextError: If text is empty or whitespace
    """
    cleaned = (text or "").strip()
    if not cleaned:
        raise EmptyTextError("Needs item text is required")

    item = NeedsItem(id=_unique_item_id(deal), text=cleaned, done=False, added_at=now)
    return replace(deal, needs_list=[*deal.needs_list, item])


def toggle_item(deal: Deal, item_id: str) -> Deal:
    """Flip an item between open and received.

    Raises:
        NotFoundError: If the deal has no item with item_id
    """
    if not any(item.id == item_id for item in deal.needs_list):
        raise NotFoundError(f"Needs item {item_id} not found on deal {deal.id}")

    needs = [
        replace(item, done=not item.done) if item.id == item_id else item
        for item in deal.needs_list
    ]
    return replace(deal, needs_list=needs)


def remove_item(deal: Deal, item_id: str) -> Deal:
    """Remove an item. Unknown ids are ignored."""
    return replace(deal, needs_list=[item for item in deal.needs_list if item.id != item_id])


def open_items(deal: Deal) -> list[NeedsItem]:
    """Items still outstanding, in insertion order."""
    return [item for item in deal.needs_list if not item.done]


def completed_items(deal: Deal) -> list[NeedsItem]:
    """Items already received, in insertion order."""
    return [item for item in deal.needs_list if item.done]


def ordered_items(deal: Deal) -> list[NeedsItem]:
    """Display order: open items first, then received items."""
    return open_items(deal) + completed_items(deal)
