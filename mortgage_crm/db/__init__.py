"""Database package - models, snapshot codec, key-value store, backup.

Modules:
    - models: Dataclasses and enumerations
    - serialization: JSON snapshot codec for the deal collection
    - storage: SQLite key-value store and deal repository
    - backup: Backup system
"""

from mortgage_crm.db.models import (
    STAGE_LABELS,
    STAGE_ORDER,
    Deal,
    DealType,
    NeedsItem,
    Stage,
)

__all__ = [
    # Enums
    "Stage",
    "DealType",
    # Dataclasses
    "Deal",
    "NeedsItem",
    # Stage metadata
    "STAGE_LABELS",
    "STAGE_ORDER",
]
