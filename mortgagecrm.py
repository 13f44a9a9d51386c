#!/usr/bin/env python3
"""Mortgage CRM - single-user mortgage pipeline tracker.

Single entry point for the application.

Usage:
    python mortgagecrm.py                          # Today's brief
    python mortgagecrm.py list active_lead -s kim  # Stage view with search
    python mortgagecrm.py add "Smith Purchase" --referral "Agent Kim"
    python mortgagecrm.py move <deal-id> pre_approval
    python mortgagecrm.py followup <deal-id>
    python mortgagecrm.py need add <deal-id> "2023 W-2"
    python mortgagecrm.py export pipeline.xlsx
    python mortgagecrm.py restore                  # Newest backup
    python mortgagecrm.py --version
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from mortgage_crm import __version__
from mortgage_crm.content.daily_brief import generate_daily_brief
from mortgage_crm.core.config import Config, get_config, validate_config
from mortgage_crm.core.exceptions import MortgageCRMError, StorageError, ValidationError
from mortgage_crm.core.logging import get_logger, setup_logging
from mortgage_crm.db.backup import BackupManager
from mortgage_crm.db.models import STAGE_ORDER, Deal, DealType
from mortgage_crm.db.storage import DealRepository, KeyValueStore
from mortgage_crm.engine import dates
from mortgage_crm.engine.export import export_deals
from mortgage_crm.engine.needs import ordered_items
from mortgage_crm.engine.reminders import describe_rule, is_due_today, next_due_date
from mortgage_crm.engine.stages import available_moves
from mortgage_crm.engine.store import DealStore

STAGE_KEYS = [stage.value for stage in STAGE_ORDER]
DEAL_TYPES = [deal_type.value for deal_type in DealType]


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="mortgagecrm",
        description="Mortgage CRM - single-user mortgage pipeline tracker",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--today",
        type=_parse_day,
        default=None,
        help="Show reminders as of this date (YYYY-MM-DD); leads still age by the real date",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("today", help="Show today's brief (default)")

    p_list = sub.add_parser("list", help="List deals in a stage")
    p_list.add_argument("stage", choices=STAGE_KEYS)
    p_list.add_argument("-s", "--search", default="", help="Match name or referral")

    p_show = sub.add_parser("show", help="Show one deal")
    p_show.add_argument("deal_id")

    p_add = sub.add_parser("add", help="Add a deal")
    p_add.add_argument("name")
    p_add.add_argument("--type", dest="deal_type", choices=DEAL_TYPES, default="Purchase")
    p_add.add_argument("--referral", default="")
    p_add.add_argument("--stage", choices=STAGE_KEYS, default="active_lead")
    p_add.add_argument("--notes", default="")

    p_edit = sub.add_parser("edit", help="Edit deal details")
    p_edit.add_argument("deal_id")
    p_edit.add_argument("--name")
    p_edit.add_argument("--type", dest="deal_type", choices=DEAL_TYPES)
    p_edit.add_argument("--referral")
    p_edit.add_argument("--notes")

    p_move = sub.add_parser("move", help="Move a deal to another stage")
    p_move.add_argument("deal_id")
    p_move.add_argument("stage", choices=STAGE_KEYS)

    p_follow = sub.add_parser("followup", help="Mark a deal as followed up today")
    p_follow.add_argument("deal_id")

    p_delete = sub.add_parser("delete", help="Delete a deal")
    p_delete.add_argument("deal_id")

    p_need = sub.add_parser("need", help="Manage a deal's borrower needs")
    need_sub = p_need.add_subparsers(dest="need_command", required=True)
    n_add = need_sub.add_parser("add", help="Add an item")
    n_add.add_argument("deal_id")
    n_add.add_argument("text")
    for name, help_text in (("toggle", "Toggle an item"), ("remove", "Remove an item")):
        n_cmd = need_sub.add_parser(name, help=help_text)
        n_cmd.add_argument("deal_id")
        n_cmd.add_argument("item_id")

    p_export = sub.add_parser("export", help="Export deals to .csv or .xlsx")
    p_export.add_argument("path", type=Path)
    p_export.add_argument("--stage", choices=STAGE_KEYS)

    sub.add_parser("backup", help="Back up the store and prune old backups")

    p_restore = sub.add_parser("restore", help="Restore the store from a backup")
    p_restore.add_argument(
        "path", nargs="?", type=Path, default=None, help="Backup file (default: newest backup)"
    )

    return parser


def format_deal(deal: Deal, today: date) -> str:
    """Render one deal's detail view."""
    next_due = next_due_date(deal, today)
    lines = [
        f"{deal.name} ({deal.type.value}) - {deal.stage_label}",
        f"  id:             {deal.id}",
        f"  referred by:    {deal.referral or '-'}",
        f"  created:        {dates.to_date(deal.created_at).isoformat()}",
        f"  in stage since: {dates.to_date(deal.stage_entered_at or deal.created_at).isoformat()}",
        f"  last follow-up: {deal.last_follow_up.isoformat() if deal.last_follow_up else '-'}",
        f"  cadence:        {describe_rule(deal.stage)}",
        f"  next follow-up: {next_due.isoformat() if next_due else 'None'}",
        f"  due today:      {'yes' if is_due_today(deal, today) else 'no'}",
        f"  move to:        {', '.join(s.value for s in available_moves(deal))}",
    ]
    if deal.notes:
        lines.append(f"  notes:          {deal.notes}")
    items = ordered_items(deal)
    if items:
        lines.append("  needs from borrower:")
        for item in items:
            mark = "x" if item.done else " "
            lines.append(f"    [{mark}] {item.text}  ({item.id})")
    return "\n".join(lines)


def format_row(deal: Deal, today: date) -> str:
    """Render one deal as a list row."""
    due = "*" if is_due_today(deal, today) else " "
    referral = f" via {deal.referral}" if deal.referral else ""
    needs = f" [{deal.open_needs_count} open]" if deal.open_needs_count else ""
    return f"{due} {deal.id}  {deal.name} ({deal.type.value}){referral}{needs}"


def run_command(args: argparse.Namespace, store: DealStore, today: date) -> int:
    """Dispatch a parsed command against a loaded store."""
    command = args.command or "today"

    if command == "today":
        print(generate_daily_brief(store, today).full_text)
    elif command == "list":
        deals = store.filter_by_stage(args.stage, args.search)
        print(f"{len(deals)} deal(s) - {describe_rule(args.stage)}")
        for deal in deals:
            print(format_row(deal, today))
    elif command == "show":
        print(format_deal(store.require(args.deal_id), today))
    elif command == "add":
        deal = store.create_deal(
            args.name,
            deal_type=args.deal_type,
            referral=args.referral,
            stage=args.stage,
            notes=args.notes,
        )
        print(f"Deal added: {deal.id}")
    elif command == "edit":
        fields = {
            key: value
            for key, value in (
                ("name", args.name),
                ("type", args.deal_type),
                ("referral", args.referral),
                ("notes", args.notes),
            )
            if value is not None
        }
        if not fields:
            raise ValidationError("Nothing to edit")
        store.update(args.deal_id, **fields)
        print("Deal updated")
    elif command == "move":
        deal = store.move_stage(args.deal_id, args.stage)
        print(f"Moved to {deal.stage_label}")
    elif command == "followup":
        store.mark_followed_up(args.deal_id, dates.today())
        print("Marked as followed up")
    elif command == "delete":
        print("Deal deleted" if store.delete(args.deal_id) else "No such deal")
    elif command == "need":
        if args.need_command == "add":
            deal = store.add_need(args.deal_id, args.text)
            print(f"Item added: {deal.needs_list[-1].id}")
        elif args.need_command == "toggle":
            store.toggle_need(args.deal_id, args.item_id)
            print("Item toggled")
        else:
            store.remove_need(args.deal_id, args.item_id)
            print("Item removed")
    elif command == "export":
        deals = store.filter_by_stage(args.stage) if args.stage else store.deals
        if not export_deals(deals, args.path, today):
            print("Nothing exported", file=sys.stderr)
            return 1
        print(f"Exported {len(deals)} deal(s) to {args.path}")

    if store.last_save_ok is False:
        print("Warning: changes could not be saved", file=sys.stderr)
    return 0


def run_maintenance(args: argparse.Namespace, config: Config) -> int:
    """Back up or restore the store file.

    Runs with no store connection open, so a restore can safely write
    through the store's WAL.
    """
    manager = BackupManager(db_path=config.db_path, backup_path=config.backup_path)

    if args.command == "backup":
        path = manager.create_backup(label="manual")
        removed = manager.cleanup_old_backups()
        print(f"Backup created: {path}" + (f" ({removed} old removed)" if removed else ""))
        return 0

    source = args.path
    if source is None:
        latest = manager.latest_backup()
        if latest is None:
            raise StorageError(f"No backups found in {config.backup_path}")
        source = latest.path
    safety = manager.restore_backup(source)
    print(f"Restored from {source}")
    if safety is not None:
        print(f"Previous store saved to {safety}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for Mortgage CRM.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"Mortgage CRM v{__version__}")
        return 0

    config = get_config()
    setup_logging(
        log_dir=config.log_path,
        console_level=logging.DEBUG if (args.debug or config.debug) else logging.WARNING,
    )
    logger = get_logger("main")

    for issue in validate_config(config):
        if issue.startswith("CRITICAL:"):
            logger.error(f"Configuration: {issue}")
        else:
            logger.warning(f"Configuration issue: {issue}")

    try:
        if args.command in ("backup", "restore"):
            return run_maintenance(args, config)

        kv = KeyValueStore(str(config.db_path))
        try:
            kv.initialize()
            store = DealStore(DealRepository(kv, config.storage_key), aging_days=config.aging_days)
            # Stored dates use the real day; --today only shifts the views.
            store.load(dates.today())
            return run_command(args, store, args.today or dates.today())
        finally:
            kv.close()
    except MortgageCRMError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
