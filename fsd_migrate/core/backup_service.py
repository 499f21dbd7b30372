"""Point-in-time snapshots of a project directory.

Snapshots live under ``<project>/.fsd-backups/``::

    .fsd-backups/
    ├── index.json                    # {"backups": [{id, timestamp, description, fileCount, totalSize}]}
    └── backup-<ISO8601>-<rand6>/
        ├── backup-metadata.json      # full metadata incl. files[]
        └── <mirrored project tree>

A snapshot directory and its index entry are kept consistent: the index
is only updated after a snapshot was fully written, and a failed copy
removes the partial directory. The index is rewritten through a temp
file and ``os.replace``. There is no locking, so two processes working on
the same project at once are not supported.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import shutil
import string
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from fsd_migrate.core import BackupOptions, CleanupOptions, RestoreOptions
from fsd_migrate.core.exclusions import ExclusionSet
from fsd_migrate.errors import (
    BackupError,
    BackupNotFoundError,
    FsdError,
    OperationCancelledError,
    ProjectNotFoundError,
)

logger = logging.getLogger("fsd_migrate.backup")

BACKUP_DIR_NAME = ".fsd-backups"
INDEX_FILE = "index.json"
METADATA_FILE = "backup-metadata.json"

# Always skipped, whatever the options say
BASE_EXCLUDES = [BACKUP_DIR_NAME, "dist", "build", ".cache", ".tmp", ".temp", "*.log"]

_ID_ALPHABET = string.digits + string.ascii_lowercase
_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


def iso_timestamp(now: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an index timestamp; unparseable values sort as the oldest."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_backup_id(now: Optional[datetime] = None) -> str:
    """Build ``backup-<ISO8601 with : and . as ->-<6 random base36 chars>``."""
    stamp = iso_timestamp(now or datetime.now(timezone.utc)).replace(":", "-").replace(".", "-")
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"backup-{stamp}-{suffix}"


def format_size(num_bytes: int) -> str:
    """Human-readable size, e.g. ``1.50 KB``."""
    if num_bytes <= 0:
        return "0 Bytes"
    size = float(num_bytes)
    i = 0
    while size >= 1024 and i < len(_SIZE_UNITS) - 1:
        size /= 1024
        i += 1
    return f"{size:.2f} {_SIZE_UNITS[i]}"


def _entry_id(raw) -> Optional[str]:
    return raw.get("id") if isinstance(raw, dict) else None


@dataclass
class BackupIndexEntry:
    """Summary of one snapshot as stored in index.json."""

    id: str
    timestamp: str
    description: str = ""
    file_count: int = 0
    total_size: int = 0

    @property
    def created_at(self) -> datetime:
        return parse_timestamp(self.timestamp)

    @classmethod
    def from_dict(cls, d: dict) -> BackupIndexEntry:
        return cls(
            id=d["id"],
            timestamp=d.get("timestamp", ""),
            description=d.get("description", ""),
            file_count=d.get("fileCount", 0),
            total_size=d.get("totalSize", 0),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "description": self.description,
            "fileCount": self.file_count,
            "totalSize": self.total_size,
        }


@dataclass
class BackupMetadata:
    """Full description of a snapshot, written once as backup-metadata.json."""

    id: str
    timestamp: str
    description: str
    project_path: str
    config: BackupOptions
    file_count: int = 0
    total_size: int = 0
    files: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> BackupMetadata:
        return cls(
            id=d["id"],
            timestamp=d.get("timestamp", ""),
            description=d.get("description", ""),
            project_path=d.get("projectPath", ""),
            config=BackupOptions.from_dict(d.get("config", {})),
            file_count=d.get("fileCount", 0),
            total_size=d.get("totalSize", 0),
            files=list(d.get("files", [])),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "description": self.description,
            "projectPath": self.project_path,
            "config": self.config.to_dict(),
            "fileCount": self.file_count,
            "totalSize": self.total_size,
            "files": self.files,
        }

    def index_entry(self) -> BackupIndexEntry:
        return BackupIndexEntry(
            id=self.id,
            timestamp=self.timestamp,
            description=self.description,
            file_count=self.file_count,
            total_size=self.total_size,
        )


@dataclass
class _CopyStats:
    file_count: int = 0
    total_size: int = 0
    files: list[str] = field(default_factory=list)


class BackupStore:
    """Creates, lists, restores and prunes snapshots of one project."""

    def __init__(self, project_path: Path):
        self.project_path = Path(project_path).resolve()
        self.backup_dir = self.project_path / BACKUP_DIR_NAME
        self.index_path = self.backup_dir / INDEX_FILE

    # ── Create ──

    def create_backup(self, options: Optional[BackupOptions] = None) -> str:
        """Copy the project tree into a new snapshot and register it.

        Returns:
            The new backup id.

        Raises:
            ProjectNotFoundError: If the project directory does not exist.
            BackupError: If copying or writing metadata fails. The partial
                snapshot directory is removed and the index is left untouched.
        """
        options = options or BackupOptions()
        if not self.project_path.is_dir():
            raise ProjectNotFoundError(str(self.project_path))

        now = datetime.now(timezone.utc)
        backup_id = generate_backup_id(now)
        snapshot_path = self.backup_dir / backup_id
        logger.info("Creating backup: %s", backup_id)

        try:
            snapshot_path.mkdir(parents=True)
            stats = _CopyStats()
            self._copy_tree(self.project_path, snapshot_path, self._exclusions(options), stats)

            metadata = BackupMetadata(
                id=backup_id,
                timestamp=iso_timestamp(now),
                description=options.description,
                project_path=str(self.project_path),
                config=options,
                file_count=stats.file_count,
                total_size=stats.total_size,
                files=stats.files,
            )
            (snapshot_path / METADATA_FILE).write_text(
                json.dumps(metadata.to_dict(), indent=2), encoding="utf-8"
            )
            self._add_to_index(metadata.index_entry())
        except OSError as e:
            logger.error("Failed to create backup %s: %s", backup_id, e)
            if snapshot_path.exists():
                shutil.rmtree(snapshot_path, ignore_errors=True)
            raise BackupError(
                f"Failed to create backup: {e}",
                backup_id=backup_id,
                project_path=str(self.project_path),
            ) from e

        logger.info(
            "Backup created: %s (%d files, %s)",
            backup_id,
            metadata.file_count,
            format_size(metadata.total_size),
        )
        return backup_id

    def _exclusions(self, options: BackupOptions) -> ExclusionSet:
        patterns = list(BASE_EXCLUDES)
        if not options.include_node_modules:
            patterns.append("node_modules")
        if not options.include_git:
            patterns.append(".git")
        return ExclusionSet(patterns)

    def _copy_tree(self, source: Path, target: Path, exclusions: ExclusionSet, stats: _CopyStats) -> None:
        """Recursively copy source into target, skipping excluded names."""
        for item in sorted(source.iterdir(), key=lambda p: p.name):
            if item.name in exclusions:
                continue
            dest = target / item.name
            if item.is_symlink():
                os.symlink(os.readlink(item), dest)
            elif item.is_dir():
                dest.mkdir()
                self._copy_tree(item, dest, exclusions, stats)
            elif item.is_file():
                shutil.copy2(item, dest)
                stats.file_count += 1
                stats.total_size += item.stat().st_size
                stats.files.append(item.relative_to(self.project_path).as_posix())
            else:
                logger.debug("Skipping special file %s", item)

    # ── Restore ──

    def restore_backup(
        self,
        backup_id: str,
        options: Optional[RestoreOptions] = None,
        confirm: Optional[Callable[[BackupMetadata], bool]] = None,
    ) -> BackupMetadata:
        """Replace the project tree with the contents of a snapshot.

        Args:
            backup_id: Snapshot to restore.
            options: ``create_current_backup`` snapshots the current state
                first; ``confirm_overwrite`` asks ``confirm`` before anything
                is touched.
            confirm: Callback deciding whether to overwrite the project.

        Raises:
            BackupNotFoundError: If the snapshot does not exist.
            OperationCancelledError: If ``confirm`` declined.
            BackupError: If reading the snapshot or copying files fails.
        """
        options = options or RestoreOptions()
        snapshot_path = self._snapshot_path(backup_id)
        if not snapshot_path.is_dir():
            raise BackupNotFoundError(backup_id, str(self.project_path))

        metadata = self.get_backup_info(backup_id)

        if options.confirm_overwrite and confirm is not None and not confirm(metadata):
            raise OperationCancelledError(
                f"Restore of {backup_id} cancelled",
                context={"backup": backup_id},
            )

        logger.info("Restoring backup: %s", backup_id)
        if options.create_current_backup:
            logger.info("Creating backup of current state")
            self.create_backup(
                BackupOptions(description=f"Pre-restore backup (before restoring {backup_id})")
            )

        try:
            self._clear_project()
            self._restore_files(snapshot_path)
        except OSError as e:
            logger.error("Failed to restore backup %s: %s", backup_id, e)
            raise BackupError(
                f"Failed to restore backup: {e}",
                backup_id=backup_id,
                project_path=str(self.project_path),
            ) from e

        logger.info("Backup restored: %s (%d files)", backup_id, metadata.file_count)
        return metadata

    def _clear_project(self) -> None:
        """Delete everything in the project root except the backup directory."""
        for item in self.project_path.iterdir():
            if item.name == BACKUP_DIR_NAME:
                continue
            if item.is_dir() and not item.is_symlink():
                shutil.rmtree(item)
            else:
                item.unlink()

    def _restore_files(self, snapshot_path: Path) -> None:
        for item in snapshot_path.iterdir():
            if item.name == METADATA_FILE:
                continue
            dest = self.project_path / item.name
            if item.is_dir() and not item.is_symlink():
                shutil.copytree(item, dest, symlinks=True, dirs_exist_ok=True)
            else:
                shutil.copy2(item, dest, follow_symlinks=False)

    # ── Query ──

    def list_backups(self) -> list[BackupIndexEntry]:
        """Return the index entries in index order (empty if there is no index)."""
        data = self._read_index()
        if data is None:
            return []
        entries = []
        for raw in data.get("backups", []):
            if not isinstance(_entry_id(raw), str):
                logger.warning("Skipping malformed backup index entry: %r", raw)
                continue
            entries.append(BackupIndexEntry.from_dict(raw))
        return entries

    def _snapshot_path(self, backup_id: str) -> Path:
        """Directory of a snapshot; an id that isn't a plain name in the backup dir is unknown.

        Raises:
            BackupNotFoundError: For empty ids, ``.``/``..`` or ids with path separators.
        """
        if (
            not backup_id
            or backup_id in (".", "..")
            or "/" in backup_id
            or "\\" in backup_id
            or backup_id == INDEX_FILE
        ):
            raise BackupNotFoundError(backup_id, str(self.project_path))
        return self.backup_dir / backup_id

    def get_backup_info(self, backup_id: str) -> BackupMetadata:
        """Read the full metadata of one snapshot from its own directory.

        Raises:
            BackupNotFoundError: If the snapshot metadata file is missing.
            BackupError: If the metadata file cannot be parsed.
        """
        metadata_path = self._snapshot_path(backup_id) / METADATA_FILE
        if not metadata_path.is_file():
            raise BackupNotFoundError(backup_id, str(self.project_path))
        try:
            return BackupMetadata.from_dict(json.loads(metadata_path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError) as e:
            raise BackupError(
                f"Unreadable backup metadata for {backup_id}: {e}",
                backup_id=backup_id,
                project_path=str(self.project_path),
            ) from e

    # ── Delete ──

    def delete_backup(self, backup_id: str) -> None:
        """Remove a snapshot directory and its index entry.

        Raises:
            BackupNotFoundError: If neither the directory nor an index entry exists.
            BackupError: If the directory cannot be removed.
        """
        snapshot_path = self._snapshot_path(backup_id)
        in_index = any(entry.id == backup_id for entry in self.list_backups())
        if not snapshot_path.is_dir() and not in_index:
            raise BackupNotFoundError(backup_id, str(self.project_path))

        logger.info("Deleting backup: %s", backup_id)
        try:
            if snapshot_path.is_dir():
                shutil.rmtree(snapshot_path)
            if in_index:
                self._remove_from_index(backup_id)
        except OSError as e:
            raise BackupError(
                f"Failed to delete backup: {e}",
                backup_id=backup_id,
                project_path=str(self.project_path),
            ) from e

    def cleanup_old_backups(
        self,
        options: Optional[CleanupOptions] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Delete snapshots older than ``max_age`` days or beyond the newest ``max_count``.

        Either condition alone is enough. Individual delete failures are
        logged and skipped.

        Returns:
            Number of snapshots deleted.
        """
        options = options or CleanupOptions()
        backups = self.list_backups()
        if not backups:
            return 0

        # Newest first; for equal timestamps the later index entry is newer
        ordered = [
            entry
            for _, entry in sorted(
                enumerate(backups),
                key=lambda pair: (pair[1].created_at, pair[0]),
                reverse=True,
            )
        ]
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=options.max_age)

        deleted = 0
        for position, entry in enumerate(ordered):
            if entry.created_at < cutoff or position >= options.max_count:
                try:
                    self.delete_backup(entry.id)
                    deleted += 1
                except FsdError as e:
                    logger.warning("Failed to delete backup %s: %s", entry.id, e)

        logger.info("Cleaned up %d old backups", deleted)
        return deleted

    # ── Index ──

    def _read_index(self) -> Optional[dict]:
        """Load index.json; None if absent or unreadable."""
        if not self.index_path.is_file():
            return None
        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Failed to read backup index %s: %s", self.index_path, e)
            return None
        if not isinstance(data, dict) or not isinstance(data.get("backups"), list):
            logger.warning("Malformed backup index %s", self.index_path)
            return None
        return data

    def _write_index(self, data: dict) -> None:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", dir=self.backup_dir, suffix=".tmp", delete=False, encoding="utf-8"
        ) as tf:
            json.dump(data, tf, indent=2)
            temp_name = tf.name
        try:
            os.replace(temp_name, self.index_path)
        except OSError:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    def _add_to_index(self, entry: BackupIndexEntry) -> None:
        data = self._read_index()
        if data is None:
            data = self.rebuild_index(write=False)
        if not any(_entry_id(b) == entry.id for b in data["backups"]):
            data["backups"].append(entry.to_dict())
        self._write_index(data)

    def _remove_from_index(self, backup_id: str) -> None:
        data = self._read_index()
        if data is None:
            data = self.rebuild_index(write=False)
        data["backups"] = [b for b in data["backups"] if _entry_id(b) != backup_id]
        self._write_index(data)

    def rebuild_index(self, write: bool = True) -> dict:
        """Regenerate the index from the snapshot directories on disk.

        Used when index.json is missing or corrupt so that entries and
        directories stay in step.
        """
        entries: list[BackupIndexEntry] = []
        if self.backup_dir.is_dir():
            for child in sorted(self.backup_dir.iterdir(), key=lambda p: p.name):
                if not (child / METADATA_FILE).is_file():
                    continue
                try:
                    entries.append(self.get_backup_info(child.name).index_entry())
                except BackupError as e:
                    logger.warning("Skipping unreadable snapshot %s: %s", child.name, e)
        entries.sort(key=lambda e: e.created_at)
        data = {"backups": [e.to_dict() for e in entries]}
        if write:
            self._write_index(data)
        return data
