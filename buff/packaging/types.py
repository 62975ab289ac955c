"""Types for the packaging module."""

from dataclasses import dataclass
from pathlib import Path

# Relative path recorded for the package root itself
ROOT_RELATIVE_PATH = "."


class EntryKind:
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class FileEntry:
    """A discovered filesystem path and its place inside the artifact.

    relative_path always uses forward slashes, never contains `..`
    segments, and is "." for the package root.
    """

    path: Path
    relative_path: str
    kind: str

    @property
    def is_root(self) -> bool:
        return self.relative_path == ROOT_RELATIVE_PATH

    @property
    def is_dir(self) -> bool:
        return self.kind == EntryKind.DIRECTORY
