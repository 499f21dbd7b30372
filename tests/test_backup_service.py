"""Tests for the snapshot store."""

import json
import re
from datetime import datetime, timedelta, timezone

import pytest

from fsd_migrate.core import BackupOptions, CleanupOptions, RestoreOptions
from fsd_migrate.core.backup_service import (
    BACKUP_DIR_NAME,
    METADATA_FILE,
    BackupStore,
    format_size,
    generate_backup_id,
    iso_timestamp,
    parse_timestamp,
)
from fsd_migrate.errors import (
    BackupError,
    BackupNotFoundError,
    OperationCancelledError,
    ProjectNotFoundError,
)

NO_PROMPT = RestoreOptions(confirm_overwrite=False, create_current_backup=False)


def snapshot_tree(root):
    """Map of relative path -> content for every file outside the backup dir."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and BACKUP_DIR_NAME not in p.relative_to(root).parts
    }


@pytest.fixture
def project(vue3_project):
    (vue3_project / "node_modules" / "vue").mkdir(parents=True)
    (vue3_project / "node_modules" / "vue" / "index.js").write_text("module.exports = {}\n")
    (vue3_project / ".git").mkdir()
    (vue3_project / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (vue3_project / "dist").mkdir()
    (vue3_project / "dist" / "app.js").write_text("bundle\n")
    (vue3_project / "npm-debug.log").write_text("oops\n")
    return vue3_project


@pytest.fixture
def store(project):
    return BackupStore(project)


# ── Helpers ─────────────────────────────────────────────────────────────


class TestHelpers:
    def test_backup_id_format(self):
        now = datetime(2024, 1, 15, 10, 30, 45, 123000, tzinfo=timezone.utc)
        backup_id = generate_backup_id(now)
        assert re.fullmatch(r"backup-2024-01-15T10-30-45-123Z-[0-9a-z]{6}", backup_id)

    def test_backup_ids_are_unique(self):
        now = datetime.now(timezone.utc)
        assert len({generate_backup_id(now) for _ in range(20)}) == 20

    def test_iso_timestamp(self):
        now = datetime(2024, 1, 15, 10, 30, 45, 123456, tzinfo=timezone.utc)
        assert iso_timestamp(now) == "2024-01-15T10:30:45.123Z"

    def test_parse_timestamp_round_trip(self):
        now = datetime(2024, 1, 15, 10, 30, 45, 123000, tzinfo=timezone.utc)
        assert parse_timestamp(iso_timestamp(now)) == now

    def test_parse_timestamp_garbage_is_oldest(self):
        assert parse_timestamp("yesterday") == datetime.min.replace(tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "size, text",
        [(0, "0 Bytes"), (500, "500.00 Bytes"), (1024, "1.00 KB"), (1536, "1.50 KB"), (1048576, "1.00 MB")],
    )
    def test_format_size(self, size, text):
        assert format_size(size) == text


# ── Create ──────────────────────────────────────────────────────────────


class TestCreateBackup:
    def test_constructor_has_no_side_effects(self, project):
        BackupStore(project)
        assert not (project / BACKUP_DIR_NAME).exists()

    def test_creates_snapshot_and_index(self, store, project):
        backup_id = store.create_backup(BackupOptions(description="before upgrade"))

        snapshot = project / BACKUP_DIR_NAME / backup_id
        assert (snapshot / METADATA_FILE).is_file()
        assert (snapshot / "src" / "main.js").read_text() == (project / "src" / "main.js").read_text()

        entries = store.list_backups()
        assert [e.id for e in entries] == [backup_id]
        assert entries[0].description == "before upgrade"

    def test_default_exclusions(self, store, project):
        backup_id = store.create_backup()
        snapshot = project / BACKUP_DIR_NAME / backup_id
        for excluded in ("node_modules", ".git", "dist", "npm-debug.log", BACKUP_DIR_NAME):
            assert not (snapshot / excluded).exists()

    def test_include_flags(self, store, project):
        backup_id = store.create_backup(BackupOptions(include_node_modules=True, include_git=True))
        snapshot = project / BACKUP_DIR_NAME / backup_id
        assert (snapshot / "node_modules" / "vue" / "index.js").is_file()
        assert (snapshot / ".git" / "HEAD").is_file()
        assert not (snapshot / "dist").exists()

    def test_metadata_counts_regular_files(self, store, project):
        backup_id = store.create_backup()
        metadata = store.get_backup_info(backup_id)

        expected = sorted(
            [
                "index.html",
                "package-lock.json",
                "package.json",
                "src/App.vue",
                "src/components/Header.vue",
                "src/main.js",
                "vite.config.js",
            ]
        )
        assert sorted(metadata.files) == expected
        assert metadata.file_count == len(expected)
        assert metadata.total_size == sum((project / f).stat().st_size for f in expected)
        assert metadata.project_path == str(project.resolve())

    def test_metadata_file_uses_camel_case(self, store, project):
        backup_id = store.create_backup(BackupOptions(include_git=True))
        raw = json.loads((project / BACKUP_DIR_NAME / backup_id / METADATA_FILE).read_text())
        assert raw["id"] == backup_id
        assert raw["fileCount"] == len(raw["files"])
        assert raw["config"] == {
            "includeNodeModules": False,
            "includeGit": True,
            "description": "Pre-migration backup",
        }

    def test_symlinks_copied_but_not_counted(self, store, project):
        (project / "link.js").symlink_to("src/main.js")
        backup_id = store.create_backup()
        snapshot = project / BACKUP_DIR_NAME / backup_id
        assert (snapshot / "link.js").is_symlink()
        assert "link.js" not in store.get_backup_info(backup_id).files

    def test_missing_project(self, tmp_path):
        with pytest.raises(ProjectNotFoundError):
            BackupStore(tmp_path / "nope").create_backup()

    def test_failed_copy_leaves_index_untouched(self, store, project, monkeypatch):
        first = store.create_backup()

        def boom(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(BackupStore, "_copy_tree", boom)
        with pytest.raises(BackupError) as exc_info:
            store.create_backup()

        assert "disk full" in str(exc_info.value)
        assert [e.id for e in store.list_backups()] == [first]
        dirs = [p.name for p in (project / BACKUP_DIR_NAME).iterdir() if p.is_dir()]
        assert dirs == [first]


# ── Restore ─────────────────────────────────────────────────────────────


class TestRestoreBackup:
    def test_round_trip(self, store, project):
        original = snapshot_tree(project)
        backup_id = store.create_backup(BackupOptions(include_node_modules=True, include_git=True))

        (project / "src" / "main.js").write_text("broken\n")
        (project / "src" / "App.vue").unlink()
        (project / "src" / "new.ts").write_text("export {}\n")
        (project / "npm-debug.log").unlink()
        (project / "dist" / "app.js").unlink()

        store.restore_backup(backup_id, NO_PROMPT)

        restored = snapshot_tree(project)
        expected = {k: v for k, v in original.items() if not k.startswith("dist/") and k != "npm-debug.log"}
        assert restored == expected

    def test_restore_keeps_backup_dir(self, store, project):
        backup_id = store.create_backup()
        store.restore_backup(backup_id, NO_PROMPT)
        assert (project / BACKUP_DIR_NAME / backup_id).is_dir()
        assert not (project / METADATA_FILE).exists()

    def test_unknown_id(self, store, project):
        before = snapshot_tree(project)
        with pytest.raises(BackupNotFoundError) as exc_info:
            store.restore_backup("backup-does-not-exist", NO_PROMPT)
        assert exc_info.value.backup_id == "backup-does-not-exist"
        assert snapshot_tree(project) == before

    def test_creates_current_backup_first(self, store):
        backup_id = store.create_backup()
        store.restore_backup(backup_id, RestoreOptions(confirm_overwrite=False, create_current_backup=True))
        entries = store.list_backups()
        assert len(entries) == 2
        assert entries[1].description == f"Pre-restore backup (before restoring {backup_id})"

    def test_confirm_declined(self, store, project):
        backup_id = store.create_backup()
        (project / "src" / "main.js").write_text("changed\n")

        with pytest.raises(OperationCancelledError):
            store.restore_backup(backup_id, RestoreOptions(), confirm=lambda metadata: False)

        assert (project / "src" / "main.js").read_text() == "changed\n"
        assert len(store.list_backups()) == 1

    def test_confirm_receives_metadata(self, store):
        backup_id = store.create_backup()
        seen = []

        def confirm(metadata):
            seen.append(metadata.id)
            return True

        store.restore_backup(backup_id, RestoreOptions(create_current_backup=False), confirm=confirm)
        assert seen == [backup_id]


# ── List / info / delete ────────────────────────────────────────────────


class TestQueryAndDelete:
    def test_list_without_index(self, store):
        assert store.list_backups() == []

    def test_info_unknown(self, store):
        with pytest.raises(BackupNotFoundError):
            store.get_backup_info("backup-nope")

    def test_delete(self, store, project):
        keep = store.create_backup()
        drop = store.create_backup()
        store.delete_backup(drop)
        assert not (project / BACKUP_DIR_NAME / drop).exists()
        assert [e.id for e in store.list_backups()] == [keep]

    def test_delete_unknown(self, store):
        with pytest.raises(BackupNotFoundError):
            store.delete_backup("backup-nope")

    @pytest.mark.parametrize("bad_id", [".", "..", "", "../src", "sub/dir", "a\\b", "index.json"])
    def test_ids_outside_backup_dir_are_rejected(self, store, project, bad_id):
        backup_id = store.create_backup()
        before = snapshot_tree(project)

        with pytest.raises(BackupNotFoundError):
            store.delete_backup(bad_id)
        with pytest.raises(BackupNotFoundError):
            store.restore_backup(bad_id, NO_PROMPT)
        with pytest.raises(BackupNotFoundError):
            store.get_backup_info(bad_id)

        assert snapshot_tree(project) == before
        assert (project / BACKUP_DIR_NAME / backup_id).is_dir()
        assert [e.id for e in store.list_backups()] == [backup_id]

    def test_malformed_index_entries_skipped(self, store, project):
        backup_id = store.create_backup()
        index_path = project / BACKUP_DIR_NAME / "index.json"
        data = json.loads(index_path.read_text())
        data["backups"] += [{"timestamp": "2024-01-01T00:00:00.000Z"}, "junk", {"id": 7}]
        index_path.write_text(json.dumps(data))

        assert [e.id for e in store.list_backups()] == [backup_id]
        assert store.cleanup_old_backups(CleanupOptions(max_age=30, max_count=10)) == 0

    def test_delete_orphaned_index_entry(self, store, project):
        import shutil

        backup_id = store.create_backup()
        shutil.rmtree(project / BACKUP_DIR_NAME / backup_id)
        store.delete_backup(backup_id)
        assert store.list_backups() == []

    def test_corrupt_index_is_rebuilt(self, store, project):
        first = store.create_backup()
        (project / BACKUP_DIR_NAME / "index.json").write_text("{ nope")
        assert store.list_backups() == []

        second = store.create_backup()
        assert {e.id for e in store.list_backups()} == {first, second}

    def test_index_and_dirs_agree(self, store, project):
        ids = {store.create_backup() for _ in range(3)}
        dirs = {p.name for p in (project / BACKUP_DIR_NAME).iterdir() if p.is_dir()}
        assert dirs == ids == {e.id for e in store.list_backups()}


# ── Cleanup ─────────────────────────────────────────────────────────────


class TestCleanup:
    def test_max_count_keeps_newest(self, store, project):
        ids = [store.create_backup() for _ in range(3)]

        deleted = store.cleanup_old_backups(CleanupOptions(max_age=30, max_count=2))

        assert deleted == 1
        remaining = [e.id for e in store.list_backups()]
        assert remaining == ids[1:]
        dirs = {p.name for p in (project / BACKUP_DIR_NAME).iterdir() if p.is_dir()}
        assert dirs == set(remaining)

    def test_max_age(self, store):
        store.create_backup()
        store.create_backup()
        later = datetime.now(timezone.utc) + timedelta(days=31)
        assert store.cleanup_old_backups(CleanupOptions(max_age=30, max_count=10), now=later) == 2
        assert store.list_backups() == []

    def test_age_read_from_index_timestamp(self, store, project):
        old = store.create_backup()
        fresh = store.create_backup()

        index_path = project / BACKUP_DIR_NAME / "index.json"
        data = json.loads(index_path.read_text())
        for entry in data["backups"]:
            if entry["id"] == old:
                entry["timestamp"] = "2020-01-01T00:00:00.000Z"
        index_path.write_text(json.dumps(data))

        assert store.cleanup_old_backups(CleanupOptions(max_age=30, max_count=10)) == 1
        assert [e.id for e in store.list_backups()] == [fresh]

    def test_nothing_to_clean(self, store):
        assert store.cleanup_old_backups() == 0
        store.create_backup()
        assert store.cleanup_old_backups(CleanupOptions(max_age=30, max_count=10)) == 0
