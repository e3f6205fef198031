"""guidesync engine — back up, then mirror, each section directory.

Run order for the default sections:
    backup agents -> copy agents -> backup skills -> copy skills

Layout:
    <source_root>/
        agents/*.md
        skills/**/*.md
    <target_root>/              # e.g. ~/.claude
        agents/
        skills/
    <backup_root>/              # e.g. ~/.csharp-guides-backup
        20240131-142501/
            agents/             # previous target contents
            skills/
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .models import (
    BACKUP_TIMESTAMP_FORMAT,
    ActionKind,
    SectionReport,
    SyncAction,
    SyncConfig,
    SyncReport,
)

logger = logging.getLogger("guidesync.sync")

ActionCallback = Callable[[SyncAction], None]
SectionCallback = Callable[[SectionReport], None]


class SyncError(RuntimeError):
    """A filesystem step failed and the run was aborted.

    Args:
        message: Human-readable reason.
        report: Everything done before the failure.
    """

    def __init__(self, message: str, report: SyncReport) -> None:
        super().__init__(message)
        self.report = report


class GuideSync:
    """Mirrors the configured section directories into the target root.

    Args:
        config: Source, target and backup locations.
    """

    def __init__(self, config: SyncConfig) -> None:
        self.config = config

    def backup_dir_for(self, now: datetime) -> Path:
        """Pick this run's backup directory, never reusing an existing one.

        Args:
            now: Run start time, used for the directory name.

        Returns:
            Path: ``<backup_root>/<timestamp>``, with ``-N`` appended on collision.
        """
        stamp = now.strftime(BACKUP_TIMESTAMP_FORMAT)
        candidate = self.config.backup_root / stamp
        suffix = 1
        while candidate.exists():
            candidate = self.config.backup_root / f"{stamp}-{suffix}"
            suffix += 1
        return candidate

    def source_files(self, section: str) -> list[Path]:
        """List files under a source section matching the configured pattern.

        Returns:
            list[Path]: Sorted paths, empty if the section doesn't exist.
        """
        source_dir = self.config.source_root / section
        if not source_dir.is_dir():
            return []
        return sorted(p for p in source_dir.rglob(self.config.pattern) if p.is_file())

    def run(
        self,
        dry_run: bool = False,
        now: Optional[datetime] = None,
        on_action: Optional[ActionCallback] = None,
        on_section: Optional[SectionCallback] = None,
    ) -> SyncReport:
        """Back up and mirror every configured section.

        Args:
            dry_run: Plan and report every step without touching the filesystem.
            now: Run start time (defaults to the current time).
            on_action: Called with each step as it is taken or planned.
            on_section: Called with each section's report once it is done.

        Returns:
            SyncReport: What was done, or would be done.

        Raises:
            SyncError: On the first failed filesystem operation. Nothing
                after it is attempted and nothing before it is undone.
        """
        started = now or datetime.now()
        backup_dir = self.backup_dir_for(started)
        report = SyncReport(
            dry_run=dry_run,
            source_root=str(self.config.source_root),
            target_root=str(self.config.target_root),
            backup_dir=str(backup_dir),
            started_at=started,
        )

        try:
            for section in self.config.sections:
                result = self._sync_section(section, backup_dir, report, dry_run, on_action)
                if result is not None and on_section is not None:
                    on_section(result)
        except OSError as exc:
            raise SyncError(f"{exc.__class__.__name__}: {exc}", report) from exc

        logger.info(
            "%s %d files into %s",
            "Planned" if dry_run else "Synced",
            report.total_files,
            self.config.target_root,
        )
        return report

    def _sync_section(
        self,
        section: str,
        backup_dir: Path,
        report: SyncReport,
        dry_run: bool,
        on_action: Optional[ActionCallback],
    ) -> Optional[SectionReport]:
        source_dir = self.config.source_root / section
        target_dir = self.config.target_root / section
        if not source_dir.is_dir():
            logger.debug("No %s directory in %s, skipping", section, self.config.source_root)
            return None

        result = SectionReport(
            name=section,
            source_dir=str(source_dir),
            target_dir=str(target_dir),
        )
        report.sections.append(result)

        def record(kind: ActionKind, destination: Path, source: Optional[Path] = None) -> None:
            action = SyncAction(
                kind=kind,
                section=section,
                source=str(source) if source else "",
                destination=str(destination),
                applied=not dry_run,
            )
            report.actions.append(action)
            if on_action is not None:
                on_action(action)

        if target_dir.exists():
            backup_path = backup_dir / section
            if not dry_run:
                backup_dir.mkdir(parents=True, exist_ok=True)
                if target_dir.is_dir():
                    shutil.copytree(target_dir, backup_path, symlinks=True)
                else:
                    shutil.copy2(target_dir, backup_path)
                logger.info("Backed up %s to %s", target_dir, backup_path)
            result.backup_path = str(backup_path)
            record(ActionKind.BACKUP, backup_path, target_dir)

        if not target_dir.is_dir():
            if not dry_run:
                target_dir.mkdir(parents=True, exist_ok=True)
            record(ActionKind.CREATE_DIR, target_dir)

        for src in self.source_files(section):
            rel = src.relative_to(source_dir)
            dest = target_dir / rel
            if not dry_run:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(src, dest)
                logger.info("Copied %s -> %s", src, dest)
            result.files.append(rel.as_posix())
            record(ActionKind.COPY, dest, src)

        return result
