"""guidesync — mirror the C# coding guides into the assistant's config home.

Copies the markdown agents and skills kept in this repository into
``~/.claude``, snapshotting whatever was there first into a timestamped
backup directory.
"""

__version__ = "0.1.0"

CLAUDE_HOME = "~/.claude"
BACKUP_HOME = "~/.csharp-guides-backup"
