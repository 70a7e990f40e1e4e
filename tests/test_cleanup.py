"""
Tests for cleanup — build dir, apt cache, scratch space, logs.
"""

import os
from pathlib import Path

import pytest

from hostprep.adapters.mock import MockRunner
from hostprep.core.engine.pipeline import run_pipeline
from hostprep.core.models.config import ProvisionConfig
from hostprep.core.services.provision.cleanup import (
    clear_directory,
    remove_tree,
    run_cleanup,
    truncate_logs,
)


class TestRunCleanup:
    def test_order(self, config: ProvisionConfig, runner: MockRunner):
        config.build_dir.mkdir()
        result = run_cleanup(config, runner)
        assert result["ok"]
        assert [c["cmd"][-1] for c in runner.call_log] == ["clean", "autoremove"]
        assert not config.build_dir.exists()

    def test_nothing_to_clean(self, tmp_path: Path, runner: MockRunner):
        cfg = ProvisionConfig(
            build_dir=tmp_path / "missing-build",
            scratch_dir=tmp_path / "missing-scratch",
            log_dir=tmp_path / "missing-logs",
        )
        result = run_cleanup(cfg, runner)
        assert result == {"ok": True, "scratch_removed": 0, "logs_truncated": 0}

    def test_idempotent(self, config: ProvisionConfig, runner: MockRunner):
        (config.scratch_dir / "junk").write_text("x")
        assert run_cleanup(config, runner)["ok"]
        second = run_cleanup(config, runner)
        assert second["ok"]
        assert second["scratch_removed"] == 0

    def test_apt_failure_reported_after_filesystem_work(self, config, runner):
        (config.scratch_dir / "junk").write_text("x")
        runner.set_failure("clean", returncode=100)
        result = run_cleanup(config, runner)
        assert not result["ok"]
        assert result["returncode"] == 100
        assert result["scratch_removed"] == 1
        assert runner.ran("autoremove")


@pytest.fixture
def stuck_paths(monkeypatch):
    """Make removal of any path named in the returned set fail."""
    names: set[str] = set()
    real_unlink = Path.unlink
    real_rmdir = os.rmdir

    def unlink(self, missing_ok=False):
        if self.name in names:
            raise PermissionError(1, "Operation not permitted", str(self))
        return real_unlink(self, missing_ok=missing_ok)

    def rmdir(path, *args, **kwargs):
        if os.path.basename(path) in names:
            raise PermissionError(1, "Operation not permitted", path)
        return real_rmdir(path, *args, **kwargs)

    monkeypatch.setattr(Path, "unlink", unlink)
    monkeypatch.setattr(os, "rmdir", rmdir)
    return names


class TestCleanupFailures:
    def test_undeletable_scratch_file(self, config, runner, stuck_paths):
        stuck_paths.add("locked.sock")
        (config.scratch_dir / "locked.sock").write_text("")
        (config.scratch_dir / "junk").write_text("x")

        result = run_cleanup(config, runner)

        assert not result["ok"]
        assert result["scratch_removed"] == 1
        assert result["left"] == [str(config.scratch_dir / "locked.sock")]
        assert "locked.sock" in result["error"]
        assert runner.ran("autoremove")

    def test_undeletable_scratch_dir(self, config, runner, stuck_paths):
        stuck_paths.add("stuck")
        stuck = config.scratch_dir / "stuck"
        stuck.mkdir()
        (stuck / "inner.txt").write_text("x")

        result = run_cleanup(config, runner)

        assert not result["ok"]
        assert result["scratch_removed"] == 0
        assert result["left"] == [str(stuck)]

    def test_build_dir_removal_error_does_not_stop_cleanup(self, config, runner, stuck_paths):
        stuck_paths.add(config.build_dir.name)
        config.build_dir.write_text("a file where the build dir should be")
        log = config.log_dir / "syslog"
        log.write_text("lines\n")

        result = run_cleanup(config, runner)

        assert not result["ok"]
        assert result["left"] == [str(config.build_dir)]
        assert runner.ran("clean")
        assert runner.ran("autoremove")
        assert log.stat().st_size == 0

    def test_step_error_survives_failed_cleanup(self, config, runner, stuck_paths):
        stuck_paths.add("locked.sock")
        (config.scratch_dir / "locked.sock").write_text("")
        runner.set_failure("upgrade", returncode=100)

        result = run_pipeline(config, runner=runner, elevation_check=lambda: None)

        assert result.exit_code == 100
        assert result.aborted_at == 1
        assert not result.cleanup["ok"]

    def test_cleanup_failure_after_success_aborts(self, config, runner, stuck_paths):
        stuck_paths.add("locked.sock")
        (config.scratch_dir / "locked.sock").write_text("")

        result = run_pipeline(config, runner=runner, elevation_check=lambda: None)

        assert not result.ok
        assert result.exit_code == 1
        assert "locked.sock" in str(result.error)


class TestFilesystemHelpers:
    def test_remove_tree_dir(self, tmp_path: Path):
        target = tmp_path / "build" / "musl-1.2.5"
        target.mkdir(parents=True)
        (target / "Makefile").write_text("all:\n")
        remove_tree(tmp_path / "build")
        assert not (tmp_path / "build").exists()

    def test_remove_tree_file_and_missing(self, tmp_path: Path):
        f = tmp_path / "archive.tar.gz"
        f.write_bytes(b"\x1f\x8b")
        remove_tree(f)
        remove_tree(f)
        assert not f.exists()

    def test_remove_tree_does_not_follow_symlink(self, tmp_path: Path):
        keep = tmp_path / "keep"
        keep.mkdir()
        (keep / "precious").write_text("x")
        link = tmp_path / "link"
        link.symlink_to(keep)
        remove_tree(link)
        assert not link.exists()
        assert (keep / "precious").exists()

    def test_clear_directory_keeps_root(self, tmp_path: Path):
        (tmp_path / "a").write_text("x")
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "c").write_text("y")
        assert clear_directory(tmp_path) == (2, [])
        assert tmp_path.is_dir()
        assert list(tmp_path.iterdir()) == []

    def test_truncate_logs_in_place(self, tmp_path: Path):
        nested = tmp_path / "apt"
        nested.mkdir()
        log = nested / "history.log"
        log.write_text("Start-Date: ...\n" * 100)
        log.chmod(0o640)
        inode = log.stat().st_ino

        assert truncate_logs(tmp_path) == 1

        stat = log.stat()
        assert stat.st_size == 0
        assert stat.st_ino == inode
        assert stat.st_mode & 0o777 == 0o640

    def test_truncate_logs_skips_symlinks(self, tmp_path: Path):
        outside = tmp_path / "outside.txt"
        outside.write_text("keep me")
        logs = tmp_path / "logs"
        logs.mkdir()
        (logs / "link.log").symlink_to(outside)
        assert truncate_logs(logs) == 0
        assert outside.read_text() == "keep me"
