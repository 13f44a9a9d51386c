"""In-memory deal collection with full-snapshot persistence.

DealStore owns the authoritative list of deals for a session. Every
mutation builds the complete new collection, commits it in memory, then
hands the whole collection to the repository. A failed save is logged
and ignored: memory stays authoritative until the next successful save.

Derived views (due today, open needs, per-stage filters and counts) are
computed from the committed collection on every call.

Usage:
    from mortgage_crm.engine.store import DealStore

    store = DealStore(repository)
    store.load(date.today())          # runs lead auto-aging once
    deal = store.create_deal("Smith Family Purchase", referral="Agent Kim")
    store.move_stage(deal.id, Stage.PRE_APPROVAL)
    for deal in store.due_today(date.today()):
        ...
"""

from dataclasses import replace
from datetime import date, datetime
from typing import Any, Optional, Union

from mortgage_crm.core.exceptions import (
    NotFoundError,
    PipelineError,
    StorageError,
    ValidationError,
)
from mortgage_crm.core.logging import get_logger
from mortgage_crm.db.models import STAGE_ORDER, Deal, DealType, Stage, new_id
from mortgage_crm.engine import dates, needs, stages
from mortgage_crm.engine.reminders import is_due_today

logger = get_logger(__name__)

EDITABLE_FIELDS = frozenset({"name", "type", "referral", "notes", "stage"})


def _require_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Deal name is required")
    return cleaned


def _parse_deal_type(value: Union[DealType, str]) -> DealType:
    try:
        return DealType(value)
    except ValueError:
        valid = ", ".join(t.value for t in DealType)
        raise ValidationError(f"Unknown deal type {value!r} (expected one of: {valid})") from None


def _checked(deal: Deal) -> Deal:
    """Validate a deal and return it with enum stage and type."""
    _require_name(deal.name)
    return replace(
        deal,
        stage=stages.parse_stage(deal.stage),
        type=_parse_deal_type(deal.type),
    )


class DealStore:
    """Authoritative deal collection for one session.

    Attributes:
        repository: Persistence collaborator with load() and save(deals),
            or None to keep the collection in memory only
        aging_days: Days an active lead waits before auto-aging
        version: Incremented on every committed mutation
        last_save_ok: Result of the most recent save (None before any save)
    """

    def __init__(self, repository: Any = None, aging_days: int = stages.DEFAULT_AGING_DAYS):
        self.repository = repository
        self.aging_days = aging_days
        self.version = 0
        self.last_save_ok: Optional[bool] = None
        self._deals: list[Deal] = []
        self._loaded = repository is None

    # =========================================================================
    # LOAD / SAVE
    # =========================================================================

    def load(self, today: Optional[date] = None) -> bool:
        """Load the saved collection and age stale leads.

        Auto-aging runs here and nowhere else, before any other mutation.
        If it changed anything the aged collection is saved back.

        Args:
            today: Calendar day for the aging check (defaults to today)

        Returns:
            True if auto-aging changed any deal

        Raises:
            StorageError: If the saved snapshot cannot be read
        """
        today = today or dates.today()
        loaded = self.repository.load() if self.repository is not None else None
        aged, changed = stages.apply_auto_aging(loaded or [], today, self.aging_days)

        self._deals = aged
        self._loaded = True
        self.version += 1

        logger.info(
            "Deals loaded",
            extra={"context": {"deals": len(aged), "aged": changed}},
        )
        if changed:
            self._persist()
        return changed

    def _persist(self) -> None:
        """Hand the full collection to the repository, best effort."""
        if self.repository is None:
            return
        try:
            self.repository.save(list(self._deals))
            self.last_save_ok = True
        except (StorageError, OSError) as e:
            self.last_save_ok = False
            logger.warning(
                f"Save failed, keeping in-memory state: {e}",
                extra={"context": {"deals": len(self._deals)}},
            )

    def _commit(self, deals: list[Deal]) -> None:
        self._deals = deals
        self.version += 1
        self._persist()

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            raise PipelineError("Store must be loaded before it can be changed")

    # =========================================================================
    # LOOKUP
    # =========================================================================

    @property
    def deals(self) -> list[Deal]:
        """Committed collection in insertion order (a copy)."""
        return list(self._deals)

    def __len__(self) -> int:
        return len(self._deals)

    def get(self, deal_id: str) -> Optional[Deal]:
        """Return the deal with deal_id, or None."""
        for deal in self._deals:
            if deal.id == deal_id:
                return deal
        return None

    def require(self, deal_id: str) -> Deal:
        """Return the deal with deal_id.

        Raises:
            NotFoundError: If no such deal exists
        """
        deal = self.get(deal_id)
        if deal is None:
            raise NotFoundError(f"Deal {deal_id} not found")
        return deal

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def create_deal(
        self,
        name: str,
        deal_type: Union[DealType, str] = DealType.PURCHASE,
        referral: str = "",
        stage: Union[Stage, str] = Stage.ACTIVE_LEAD,
        notes: str = "",
        now: Optional[datetime] = None,
    ) -> Deal:
        """Create and add a deal.

        Raises:
            ValidationError: If name is blank or deal_type is unknown
            InvalidStageError: If stage is unknown
        """
        now = now or dates.now()
        deal = Deal(
            id=self._unique_deal_id(),
            name=_require_name(name),
            type=_parse_deal_type(deal_type),
            referral=(referral or "").strip(),
            stage=stages.parse_stage(stage),
            created_at=now,
            stage_entered_at=now,
            notes=notes or "",
        )
        return self.add(deal)

    def add(self, deal: Deal) -> Deal:
        """Append a deal to the collection.

        Stage and type are normalized to their enums before the deal is
        committed.

        Raises:
            ValidationError: If the name is blank, the type is unknown or
                the id is already taken
            InvalidStageError: If the stage is unknown
        """
        self._ensure_loaded()
        deal = _checked(deal)
        if self.get(deal.id) is not None:
            raise ValidationError(f"Deal id {deal.id} already exists")

        self._commit([*self._deals, deal])
        logger.info(
            "Deal added",
            extra={"context": {"deal_id": deal.id, "stage": deal.stage.value}},
        )
        return deal

    def replace_deal(self, deal: Deal) -> Deal:
        """Commit a new value for an existing deal, keeping its position.

        Raises:
            NotFoundError: If no deal has deal.id
            ValidationError: If the name is blank or the type is unknown
            InvalidStageError: If the stage is unknown
        """
        self._ensure_loaded()
        self.require(deal.id)
        deal = _checked(deal)
        self._commit([deal if d.id == deal.id else d for d in self._deals])
        return deal

    def update(self, deal_id: str, now: Optional[datetime] = None, **fields: Any) -> Deal:
        """Edit deal details.

        Editable fields: name, type, referral, notes, stage. A changed
        stage goes through the stage transition engine, so
        stage_entered_at is restamped; an unchanged stage is left alone.

        Raises:
            NotFoundError: If the deal does not exist
            ValidationError: If a field is not editable or a value is invalid
            InvalidStageError: If stage is unknown
        """
        deal = self.require(deal_id)

        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

        changes: dict[str, Any] = {}
        if "name" in fields:
            changes["name"] = _require_name(fields["name"])
        if "type" in fields:
            changes["type"] = _parse_deal_type(fields["type"])
        if "referral" in fields:
            changes["referral"] = (fields["referral"] or "").strip()
        if "notes" in fields:
            changes["notes"] = fields["notes"] or ""

        updated = replace(deal, **changes)
        if "stage" in fields:
            target = stages.parse_stage(fields["stage"])
            if target != deal.stage:
                updated = stages.move_stage(updated, target, now or dates.now())

        self.replace_deal(updated)
        logger.info("Deal updated", extra={"context": {"deal_id": deal_id}})
        return updated

    def delete(self, deal_id: str) -> bool:
        """Remove a deal. Returns False if it did not exist."""
        self._ensure_loaded()
        if self.get(deal_id) is None:
            return False
        self._commit([d for d in self._deals if d.id != deal_id])
        logger.info("Deal deleted", extra={"context": {"deal_id": deal_id}})
        return True

    def move_stage(
        self,
        deal_id: str,
        new_stage: Union[Stage, str],
        now: Optional[datetime] = None,
    ) -> Deal:
        """Move a deal to a stage and commit it."""
        moved = stages.move_stage(self.require(deal_id), new_stage, now or dates.now())
        return self.replace_deal(moved)

    def mark_followed_up(self, deal_id: str, today: Optional[date] = None) -> Deal:
        """Record today's follow-up on a deal and commit it."""
        return self.replace_deal(
            stages.mark_followed_up(self.require(deal_id), today or dates.today())
        )

    def add_need(self, deal_id: str, text: str, now: Optional[datetime] = None) -> Deal:
        """Add a needs item to a deal and commit it."""
        return self.replace_deal(needs.add_item(self.require(deal_id), text, now or dates.now()))

    def toggle_need(self, deal_id: str, item_id: str) -> Deal:
        """Toggle a needs item and commit the deal."""
        return self.replace_deal(needs.toggle_item(self.require(deal_id), item_id))

    def remove_need(self, deal_id: str, item_id: str) -> Deal:
        """Remove a needs item (if present) and commit the deal."""
        return self.replace_deal(needs.remove_item(self.require(deal_id), item_id))

    def _unique_deal_id(self) -> str:
        deal_id = new_id()
        while self.get(deal_id) is not None:
            deal_id = new_id()
        return deal_id

    # =========================================================================
    # VIEWS
    # =========================================================================

    def due_today(self, today: Optional[date] = None) -> list[Deal]:
        """Deals whose stage rule says they are due on today."""
        today = today or dates.today()
        return [deal for deal in self._deals if is_due_today(deal, today)]

    def open_needs_deals(self) -> list[Deal]:
        """Active deals with at least one outstanding needs item."""
        return [
            deal
            for deal in self._deals
            if deal.stage == Stage.ACTIVE_DEAL and deal.open_needs_count > 0
        ]

    def filter_by_stage(self, stage: Union[Stage, str], query: str = "") -> list[Deal]:
        """Deals in a stage, optionally filtered by search text.

        The query matches case-insensitively anywhere in the name or
        referral. An empty query matches every deal in the stage.

        Raises:
            InvalidStageError: If stage is unknown
        """
        target = stages.parse_stage(stage)
        needle = (query or "").lower()

        def _matches(deal: Deal) -> bool:
            if not needle:
                return True
            return needle in deal.name.lower() or needle in (deal.referral or "").lower()

        return [deal for deal in self._deals if deal.stage == target and _matches(deal)]

    def counts_by_stage(self) -> dict[Stage, int]:
        """Number of deals per stage, every stage present."""
        counts = {stage: 0 for stage in STAGE_ORDER}
        for deal in self._deals:
            counts[deal.stage] += 1
        return counts
