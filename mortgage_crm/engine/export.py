"""Deal list export.

Provides:
    - CSV export of any deal list (a stage view, search results, everything)
    - Excel (.xlsx) export of the same rows

Each row carries the deal fields plus the reminder view as of the export
day: whether the deal is due and when it is next due.

Usage:
    from mortgage_crm.engine.export import export_deals

    export_deals(store.deals, Path("pipeline.xlsx"), today=date.today())
"""

import csv
from datetime import date
from pathlib import Path
from typing import Any, Optional

import openpyxl
from openpyxl.styles import Font

from mortgage_crm.core.exceptions import ValidationError
from mortgage_crm.core.logging import get_logger
from mortgage_crm.db.models import Deal
from mortgage_crm.engine import dates
from mortgage_crm.engine.reminders import is_due_today, next_due_date

logger = get_logger(__name__)

EXPORT_COLUMNS = [
    "id",
    "name",
    "type",
    "referral",
    "stage",
    "created_at",
    "stage_entered_at",
    "last_follow_up",
    "due_today",
    "next_due",
    "open_needs",
    "notes",
]


def _format(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else ""
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def deal_row(deal: Deal, today: date) -> list[str]:
    """Build one export row, in EXPORT_COLUMNS order."""
    values = {
        "id": deal.id,
        "name": deal.name,
        "type": deal.type.value,
        "referral": deal.referral,
        "stage": deal.stage_label,
        "created_at": dates.to_date(deal.created_at),
        "stage_entered_at": dates.to_date(deal.stage_entered_at or deal.created_at),
        "last_follow_up": deal.last_follow_up,
        "due_today": is_due_today(deal, today),
        "next_due": next_due_date(deal, today),
        "open_needs": deal.open_needs_count,
        "notes": deal.notes,
    }
    return [_format(values[col]) for col in EXPORT_COLUMNS]


def export_deals_csv(deals: list[Deal], path: Path, today: Optional[date] = None) -> bool:
    """Export deals to CSV.

    Returns:
        True if export successful, False if there was nothing to write
        or the file could not be written
    """
    if not deals:
        logger.warning("No deals to export")
        return False

    today = today or dates.today()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(EXPORT_COLUMNS)
            for deal in deals:
                writer.writerow(deal_row(deal, today))
    except OSError as e:
        logger.error(
            f"Failed to export deals: {e}",
            extra={"context": {"path": str(path), "error": str(e)}},
        )
        return False

    logger.info(
        f"Exported {len(deals)} deals to {path}",
        extra={"context": {"count": len(deals), "path": str(path), "format": "csv"}},
    )
    return True


def export_deals_xlsx(deals: list[Deal], path: Path, today: Optional[date] = None) -> bool:
    """Export deals to an Excel workbook with a bold header row.

    Returns:
        True if export successful
    """
    if not deals:
        logger.warning("No deals to export")
        return False

    today = today or dates.today()
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Deals"
    ws.append(EXPORT_COLUMNS)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for deal in deals:
        ws.append(deal_row(deal, today))
    ws.freeze_panes = "A2"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(str(path))
    except OSError as e:
        logger.error(
            f"Failed to export deals: {e}",
            extra={"context": {"path": str(path), "error": str(e)}},
        )
        return False

    logger.info(
        f"Exported {len(deals)} deals to {path}",
        extra={"context": {"count": len(deals), "path": str(path), "format": "xlsx"}},
    )
    return True


def export_deals(deals: list[Deal], path: Path, today: Optional[date] = None) -> bool:
    """Export deals, picking the format from the file extension.

    Raises:
        ValidationError: If the extension is not .csv or .xlsx
    """
    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        return export_deals_csv(deals, Path(path), today)
    if suffix == ".xlsx":
        return export_deals_xlsx(deals, Path(path), today)
    raise ValidationError(f"Unsupported export format {suffix or '(none)'}: use .csv or .xlsx")
