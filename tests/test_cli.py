"""Tests for the guidesync command: sync, dry run, failures."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from guidesync import cli
from guidesync.cli import find_repo_root, main, repo_root

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def repo(tmp_path, monkeypatch):
    """A guides repository the CLI treats as its own location."""
    d = tmp_path / "repo"
    (d / "agents").mkdir(parents=True)
    (d / "agents" / "reviewer.md").write_text("# Reviewer")
    (d / "skills" / "async").mkdir(parents=True)
    (d / "skills" / "async" / "SKILL.md").write_text("# Async")
    monkeypatch.setattr(cli, "repo_root", lambda: d)
    return d


@pytest.fixture
def home(tmp_path):
    return tmp_path / "home"


def _args(home: Path, *extra: str) -> list[str]:
    return [
        "--target", str(home / ".claude"),
        "--backup-root", str(home / ".backup"),
        *extra,
    ]


class TestSyncCommand:
    def test_sync_copies_guides(self, runner, repo, home):
        result = runner.invoke(main, _args(home))
        assert result.exit_code == 0, result.output
        assert "Sync complete!" in result.output
        assert "2 files copied" in result.output
        assert "Nothing to back up" in result.output
        assert (home / ".claude" / "agents" / "reviewer.md").read_text() == "# Reviewer"
        assert (home / ".claude" / "skills" / "async" / "SKILL.md").read_text() == "# Async"

    def test_sync_reports_backup(self, runner, repo, home):
        (home / ".claude" / "agents").mkdir(parents=True)
        (home / ".claude" / "agents" / "reviewer.md").write_text("old")

        result = runner.invoke(main, _args(home))

        assert result.exit_code == 0, result.output
        assert "Backing up existing agents" in result.output
        assert "Backup created at" in result.output
        backups = list((home / ".backup").iterdir())
        assert len(backups) == 1
        assert (backups[0] / "agents" / "reviewer.md").read_text() == "old"

    def test_sync_mentions_restart(self, runner, repo, home):
        result = runner.invoke(main, _args(home))
        assert "Restart Claude Code" in result.output

    def test_prints_count_per_section(self, runner, repo, home):
        result = runner.invoke(main, _args(home))
        assert result.exit_code == 0, result.output
        assert "Synced 1 agents" in result.output
        assert "Synced 1 skills" in result.output
        assert result.output.index("Synced 1 agents") < result.output.index("Syncing skills")

    def test_missing_section_is_fine(self, runner, repo, home):
        (repo / "agents" / "reviewer.md").unlink()
        (repo / "agents").rmdir()

        result = runner.invoke(main, _args(home))

        assert result.exit_code == 0, result.output
        assert "Syncing agents" not in result.output
        assert "Syncing skills" in result.output
        assert not (home / ".claude" / "agents").exists()

    def test_repo_config_file_sets_target(self, runner, repo, home):
        (repo / "guidesync.yaml").write_text(
            f"target_root: {home / 'custom'}\nbackup_root: {home / 'bk'}\n"
        )
        result = runner.invoke(main, [])
        assert result.exit_code == 0, result.output
        assert (home / "custom" / "agents" / "reviewer.md").exists()


class TestDryRunCommand:
    @pytest.mark.parametrize("flag", ["--dry-run", "-n"])
    def test_dry_run_changes_nothing(self, runner, repo, home, flag):
        result = runner.invoke(main, _args(home, flag))
        assert result.exit_code == 0, result.output
        assert "DRY RUN MODE" in result.output
        assert "Would copy: reviewer.md" in result.output
        assert "Would copy: SKILL.md" in result.output
        assert "Dry run complete - no changes made!" in result.output
        assert "2 files would be copied" in result.output
        assert not home.exists()

    def test_dry_run_counts_per_section(self, runner, repo, home):
        result = runner.invoke(main, _args(home, "-n"))
        assert result.exit_code == 0, result.output
        assert "Would sync 1 agents" in result.output
        assert "Would sync 1 skills" in result.output

    def test_dry_run_mentions_planned_backup(self, runner, repo, home):
        (home / ".claude" / "skills").mkdir(parents=True)
        result = runner.invoke(main, _args(home, "-n"))
        assert result.exit_code == 0, result.output
        assert "Would backup existing skills" in result.output
        assert "Would have created backup at" in result.output
        assert not (home / ".backup").exists()


class TestFailures:
    def test_unknown_option_is_usage_error(self, runner, repo, home):
        result = runner.invoke(main, ["--bogus"])
        assert result.exit_code != 0
        assert "No such option" in result.output

    def test_filesystem_error_exits_1(self, runner, repo, home):
        (home / ".claude").mkdir(parents=True)
        (home / ".claude" / "skills").write_text("in the way")

        result = runner.invoke(main, _args(home))

        assert result.exit_code == 1
        assert "Sync failed" in result.output
        assert "Sync complete!" not in result.output

    def test_bad_config_exits_1(self, runner, repo, home):
        (repo / "guidesync.yaml").write_text("- not\n- a mapping\n")
        result = runner.invoke(main, _args(home))
        assert result.exit_code == 1
        assert "YAML mapping" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_malformed_config_exits_1(self, runner, repo, home):
        (repo / "guidesync.yaml").write_text("target_root: [unclosed\n")
        result = runner.invoke(main, _args(home))
        assert result.exit_code == 1
        assert "Sync failed" in result.output
        assert "not valid YAML" in result.output

    def test_repository_not_found_exits_1(self, runner, home, monkeypatch):
        monkeypatch.setattr(cli, "repo_root", lambda: None)
        result = runner.invoke(main, _args(home))
        assert result.exit_code == 1
        assert "guides repository not found" in result.output
        assert "Sync complete!" not in result.output
        assert not home.exists()


class TestRepoRoot:
    def test_finds_ancestor_with_sections(self, tmp_path):
        (tmp_path / "guides" / "skills").mkdir(parents=True)
        deep = tmp_path / "guides" / "src" / "pkg"
        deep.mkdir(parents=True)
        assert find_repo_root(deep) == tmp_path / "guides"

    def test_config_file_marks_root(self, tmp_path):
        (tmp_path / "guides").mkdir()
        (tmp_path / "guides" / "guidesync.yaml").write_text("")
        assert find_repo_root(tmp_path / "guides") == tmp_path / "guides"

    def test_no_sections_anywhere(self, tmp_path):
        start = tmp_path / "empty" / "deeper"
        start.mkdir(parents=True)
        assert find_repo_root(start) is None

    def test_real_lookup_finds_this_repository(self, monkeypatch):
        """Works for a checkout, an editable install, and a regular install run from the repo."""
        monkeypatch.chdir(PROJECT_ROOT)
        root = repo_root()
        assert root is not None
        assert (root / "agents").is_dir() or (root / "skills").is_dir()

    def test_cli_syncs_real_guides_without_patching(self, runner, tmp_path, monkeypatch):
        monkeypatch.chdir(PROJECT_ROOT)
        home = tmp_path / "home"
        result = runner.invoke(main, _args(home))
        assert result.exit_code == 0, result.output
        assert (home / ".claude" / "agents" / "csharp-reviewer.md").read_bytes() == (
            PROJECT_ROOT / "agents" / "csharp-reviewer.md"
        ).read_bytes()
        assert (home / ".claude" / "skills" / "csharp-async" / "SKILL.md").exists()
