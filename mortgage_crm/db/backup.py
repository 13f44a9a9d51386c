"""Backup and restore for the Mortgage CRM store file.

Provides:
    - Timestamped local backups using SQLite backup API
    - Backup retention cleanup
    - Restore through the backup API, after a pre-restore safety copy

Usage:
    from mortgage_crm.db.backup import BackupManager

    backup = BackupManager()
    path = backup.create_backup(label="manual")
    backup.restore_backup(backup.latest_backup().path)
"""

import sqlite3
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from mortgage_crm.core.config import get_config
from mortgage_crm.core.exceptions import StorageError
from mortgage_crm.core.logging import get_logger

logger = get_logger(__name__)

BACKUP_PREFIX = "mortgage_crm"
SAFETY_LABEL = "pre_restore"


@dataclass
class BackupInfo:
    """Information about a backup file.

    Attributes:
        path: Full path to backup file
        label: Backup label (manual, startup, pre_restore)
        timestamp: When backup was created
        size_bytes: File size in bytes
    """

    path: Path
    label: str
    timestamp: datetime
    size_bytes: int


class BackupManager:
    """Manages store backups.

    Backup naming format: mortgage_crm_YYYYMMDD_HHMMSS_label.db
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        backup_path: Optional[Path] = None,
    ):
        config = get_config()
        self.db_path = Path(db_path or config.db_path)
        self.backup_path = Path(backup_path or config.backup_path)

    def create_backup(self, label: str = "manual") -> Path:
        """Create a timestamped backup.

        Args:
            label: Backup label for identification

        Returns:
            Path to created backup file

        Raises:
            StorageError: If the store file is missing or backup fails
        """
        if not self.db_path.exists():
            raise StorageError(f"Store file not found: {self.db_path}")

        try:
            self.backup_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create backup directory: {e}") from e

        dest = self.backup_path / self._generate_backup_filename(label)

        try:
            with (
                closing(sqlite3.connect(str(self.db_path))) as source_conn,
                closing(sqlite3.connect(str(dest))) as dest_conn,
            ):
                source_conn.backup(dest_conn)

            logger.info(
                "Backup created",
                extra={"context": {"path": str(dest), "label": label}},
            )
            return dest
        except (sqlite3.Error, OSError) as e:
            if dest.exists():
                dest.unlink()
            raise StorageError(f"Backup failed: {e}") from e

    def list_backups(self) -> list[BackupInfo]:
        """List all backups, newest first."""
        if not self.backup_path.is_dir():
            return []

        entries = [
            (path, self._parse_backup_filename(path.name))
            for path in self.backup_path.glob(f"{BACKUP_PREFIX}_*.db")
        ]
        backups = [
            BackupInfo(
                path=path,
                label=parsed[1],
                timestamp=parsed[0],
                size_bytes=path.stat().st_size,
            )
            for path, parsed in entries
            if parsed is not None
        ]
        return sorted(backups, key=lambda backup: backup.timestamp, reverse=True)

    def restore_backup(self, backup_path: Path) -> Optional[Path]:
        """Replace the store's contents with a backup.

        Pages are copied through the SQLite backup API into the live
        store file, so its WAL and shared-memory files stay consistent
        with the new contents. Callers must close any open
        KeyValueStore on db_path first.

        Args:
            backup_path: Backup file to restore from

        Returns:
            Path of the pre-restore safety backup, or None if there was
            no store to save

        Raises:
            StorageError: If the backup is missing or not a store file,
                the safety backup fails, or the copy fails
        """
        backup_path = Path(backup_path)
        if not backup_path.is_file():
            raise StorageError(f"Backup file not found: {backup_path}")

        try:
            with closing(sqlite3.connect(str(backup_path))) as conn:
                conn.execute("SELECT count(*) FROM kv").fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Not a store backup: {backup_path} ({e})") from e

        safety = self.create_backup(label=SAFETY_LABEL) if self.db_path.exists() else None

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with (
                closing(sqlite3.connect(str(backup_path))) as source,
                closing(sqlite3.connect(str(self.db_path))) as target,
            ):
                source.backup(target)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Restore failed: {e}") from e

        logger.info(
            "Store restored",
            extra={"context": {"from": str(backup_path), "safety_backup": str(safety)}},
        )
        return safety

    def latest_backup(self, include_safety: bool = False) -> Optional[BackupInfo]:
        """Return the newest backup, skipping pre-restore copies unless asked."""
        for backup in self.list_backups():
            if include_safety or backup.label != SAFETY_LABEL:
                return backup
        return None

    def cleanup_old_backups(self, keep_days: int = 30) -> int:
        """Remove backups older than keep_days.

        The newest regular backup is always kept, however old, so there
        is something left to restore.

        Returns:
            Number of backups removed
        """
        cutoff = datetime.now() - timedelta(days=keep_days)
        newest = self.latest_backup()
        stale = [
            backup
            for backup in self.list_backups()
            if backup.timestamp < cutoff and (newest is None or backup.path != newest.path)
        ]

        removed = 0
        for backup in stale:
            try:
                backup.path.unlink()
            except OSError as e:
                logger.warning(
                    "Could not remove old backup",
                    extra={"context": {"path": str(backup.path), "error": str(e)}},
                )
                continue
            removed += 1

        if removed:
            logger.info("Old backups removed", extra={"context": {"count": removed}})
        return removed

    def _generate_backup_filename(self, label: str) -> str:
        now = datetime.now()
        return f"{BACKUP_PREFIX}_{now.strftime('%Y%m%d_%H%M%S_%f')}_{label}.db"

    def _parse_backup_filename(self, filename: str) -> Optional[tuple[datetime, str]]:
        """Parse timestamp and label from backup filename.

        Returns:
            Tuple of (timestamp, label) or None if invalid format
        """
        # Expected format: mortgage_crm_YYYYMMDD_HHMMSS_ffffff_label.db
        stem = filename[: -len(".db")] if filename.endswith(".db") else filename
        prefix = f"{BACKUP_PREFIX}_"
        if not stem.startswith(prefix):
            return None
        parts = stem[len(prefix):].split("_")
        if len(parts) < 4:
            return None
        try:
            timestamp = datetime.strptime("_".join(parts[:3]), "%Y%m%d_%H%M%S_%f")
        except ValueError:
            return None
        return timestamp, "_".join(parts[3:])
