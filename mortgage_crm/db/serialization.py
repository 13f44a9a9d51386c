"""JSON snapshot codec for the deal collection.

The whole collection is stored as one JSON array, one object per deal,
using the camelCase keys of the browser version of the tracker so old
snapshots load unchanged:

    [{"id": "...", "name": "...", "type": "Purchase", "referral": "",
      "stage": "active_lead", "createdAt": "2025-01-01T09:30:00",
      "stageEnteredAt": "2025-01-01T09:30:00", "lastFollowUp": null,
      "needsList": [{"id": "...", "text": "...", "done": false,
                     "addedAt": "2025-01-02T10:00:00"}],
      "notes": ""}]

Timestamps are ISO-8601. Date-only strings read as local midnight and
UTC stamps ("...Z") are converted to local time, since reminders work
at local-date granularity. There is no schema version field: missing
optional keys fall back to defaults.
"""

import json
from datetime import date, datetime
from typing import Any, Optional

from mortgage_crm.core.exceptions import StorageError
from mortgage_crm.db.models import Deal, DealType, NeedsItem, Stage

# =============================================================================
# TIMESTAMPS
# =============================================================================


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 date or date-time string.

    Aware values are converted to naive local time.

    Raises:
        StorageError: If the string is not ISO-8601
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise StorageError(f"Invalid timestamp: {value!r}") from e
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_date(value: str) -> date:
    """Parse an ISO-8601 date, accepting a full timestamp too."""
    return parse_timestamp(value).date()


def _optional_timestamp(value: Optional[str]) -> Optional[datetime]:
    return parse_timestamp(value) if value else None


# =============================================================================
# RECORDS
# =============================================================================


def needs_item_to_dict(item: NeedsItem) -> dict[str, Any]:
    """Convert a needs item to its JSON object."""
    return {
        "id": item.id,
        "text": item.text,
        "done": item.done,
        "addedAt": item.added_at.isoformat(),
    }


def needs_item_from_dict(data: dict[str, Any]) -> NeedsItem:
    """Build a needs item from its JSON object.

    Raises:
        StorageError: If id or text is missing
    """
    try:
        return NeedsItem(
            id=str(data["id"]),
            text=str(data["text"]),
            done=bool(data.get("done", False)),
            added_at=parse_timestamp(data["addedAt"]) if data.get("addedAt") else datetime.now(),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise StorageError(f"Malformed needs item: {data!r}") from e


def deal_to_dict(deal: Deal) -> dict[str, Any]:
    """Convert a deal to its JSON object."""
    return {
        "id": deal.id,
        "name": deal.name,
        "type": deal.type.value,
        "referral": deal.referral,
        "stage": deal.stage.value,
        "createdAt": deal.created_at.isoformat(),
        "stageEnteredAt": deal.stage_entered_at.isoformat() if deal.stage_entered_at else None,
        "lastFollowUp": deal.last_follow_up.isoformat() if deal.last_follow_up else None,
        "needsList": [needs_item_to_dict(item) for item in deal.needs_list],
        "notes": deal.notes,
    }


def deal_from_dict(data: dict[str, Any]) -> Deal:
    """Build a deal from its JSON object.

    Raises:
        StorageError: If required keys are missing or values are invalid
    """
    try:
        created_at = parse_timestamp(data["createdAt"])
        last_follow_up = data.get("lastFollowUp")
        return Deal(
            id=str(data["id"]),
            name=str(data["name"]),
            type=DealType(data.get("type") or DealType.PURCHASE.value),
            referral=data.get("referral") or "",
            stage=Stage(data["stage"]),
            created_at=created_at,
            stage_entered_at=_optional_timestamp(data.get("stageEnteredAt")) or created_at,
            last_follow_up=parse_date(last_follow_up) if last_follow_up else None,
            needs_list=[needs_item_from_dict(item) for item in data.get("needsList") or []],
            notes=data.get("notes") or "",
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise StorageError(f"Malformed deal record {data.get('id', '?')!r}: {e}") from e


# =============================================================================
# COLLECTIONS
# =============================================================================


def dumps_deals(deals: list[Deal]) -> str:
    """Serialize a deal collection to a JSON string."""
    return json.dumps([deal_to_dict(deal) for deal in deals])


def loads_deals(payload: str) -> list[Deal]:
    """Deserialize a deal collection.

    Raises:
        StorageError: If payload is not a JSON array of deal objects
    """
    try:
        records = json.loads(payload)
    except json.JSONDecodeError as e:
        raise StorageError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(records, list):
        raise StorageError("Snapshot must be a JSON array of deals")

    deals = []
    for record in records:
        if not isinstance(record, dict):
            raise StorageError(f"Malformed deal record: {record!r}")
        deals.append(deal_from_dict(record))
    return deals
