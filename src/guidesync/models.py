"""guidesync data models — sync configuration and run reports as Pydantic models.

A run is described by three kinds of record:
  - SyncConfig: where to read from, where to write to, where backups go
  - SyncAction: a single directory creation, backup, or file copy
  - SyncReport: everything a run did (or would do, in dry-run mode)
"""

from __future__ import annotations

import enum
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "guidesync.yaml"
DEFAULT_SECTIONS = ["agents", "skills"]
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class ActionKind(str, enum.Enum):
    """The filesystem steps a sync can take."""

    CREATE_DIR = "create_dir"
    BACKUP = "backup"
    COPY = "copy"


class SyncConfig(BaseModel):
    """Locations and file selection for one sync run.

    The engine only ever looks at these values; discovering defaults from
    the user's home directory is the CLI's job.
    """

    source_root: Path = Field(description="Repository holding the section directories")
    target_root: Path = Field(description="Assistant configuration home to mirror into")
    backup_root: Path = Field(description="Parent of the timestamped backup directories")
    sections: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SECTIONS),
        description="Section directories synced, in order",
    )
    pattern: str = Field(default="*.md", description="Glob selecting the files to copy")

    @field_validator("source_root", "target_root", "backup_root")
    @classmethod
    def expand_home(cls, v: Path) -> Path:
        return v.expanduser()

    @field_validator("sections")
    @classmethod
    def validate_sections(cls, v: list[str]) -> list[str]:
        """Each section must be a single directory name below the roots."""
        for name in v:
            if not name or name in (".", "..") or "/" in name or "\\" in name:
                raise ValueError(f"Section must be a plain directory name: got '{name}'")
        return v

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        if not v or "/" in v:
            raise ValueError(f"Pattern must be a file-name glob: got '{v}'")
        return v


class SyncAction(BaseModel):
    """One step of a run, performed or (in dry-run mode) only planned."""

    kind: ActionKind
    section: str
    source: str = Field(default="", description="Path read from (empty for create_dir)")
    destination: str = Field(description="Path written to")
    applied: bool = Field(default=True, description="False when the step was only planned")

    @property
    def name(self) -> str:
        """Short display name for the step's subject."""
        return Path(self.source or self.destination).name


class SectionReport(BaseModel):
    """What happened to one section directory."""

    name: str
    source_dir: str
    target_dir: str
    backup_path: Optional[str] = Field(
        default=None, description="Where the previous target contents went, if anywhere"
    )
    files: list[str] = Field(
        default_factory=list, description="Copied paths, relative to the section directory"
    )

    @property
    def count(self) -> int:
        return len(self.files)


class SyncReport(BaseModel):
    """The outcome of a sync run."""

    dry_run: bool = False
    source_root: str
    target_root: str
    backup_dir: str = Field(description="Timestamped backup directory for this run")
    started_at: datetime = Field(default_factory=datetime.now)
    sections: list[SectionReport] = Field(default_factory=list)
    actions: list[SyncAction] = Field(default_factory=list)

    @property
    def total_files(self) -> int:
        return sum(s.count for s in self.sections)

    @property
    def backed_up(self) -> bool:
        """True if any section had existing content to back up."""
        return any(s.backup_path for s in self.sections)


def parse_sync_yaml(path: Path) -> dict:
    """Read the optional guidesync.yaml overrides.

    Args:
        path: Path to the guidesync.yaml file.

    Returns:
        dict: The raw override mapping (empty if the file is empty).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file isn't valid YAML, isn't a mapping, or names
            unknown keys.
    """
    if not path.exists():
        raise FileNotFoundError(f"{CONFIG_FILENAME} not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ValueError(f"{CONFIG_FILENAME} is not valid YAML: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{CONFIG_FILENAME} must be a YAML mapping, got {type(raw).__name__}")

    allowed = {"target_root", "backup_root", "sections", "pattern"}
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise ValueError(f"Unknown {CONFIG_FILENAME} keys: {', '.join(unknown)}")
    return raw


def load_config(
    source_root: Path,
    target_root: Path,
    backup_root: Path,
    overrides: Optional[dict] = None,
) -> SyncConfig:
    """Build a SyncConfig from defaults, the repo's guidesync.yaml, and overrides.

    Precedence, lowest first: the given defaults, ``guidesync.yaml`` in
    ``source_root`` when present, then non-None entries of ``overrides``.

    Raises:
        ValueError: If the config file or any value is invalid.
    """
    data: dict = {
        "source_root": source_root,
        "target_root": target_root,
        "backup_root": backup_root,
    }

    config_file = source_root / CONFIG_FILENAME
    if config_file.exists():
        data.update(parse_sync_yaml(config_file))

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    return SyncConfig.model_validate(data)
