"""Packaging module for artifact bundling.

Public API:
    collect_paths(root, ...) -> Iterator[FileEntry]
    build_archive(entries, fileobj=None) -> BinaryIO
    compress(stream, level=6) -> bytes
    build_artifact(root, ...) -> bytes
    save_artifact_to_path(root, output_path, ...) -> Path
    load_manifest(path) -> PackageMetadata
"""

from pathlib import Path
from typing import Iterable

from buff.packaging.archive import build_archive
from buff.packaging.collector import collect_paths
from buff.packaging.compressor import DEFAULT_COMPRESSION_LEVEL, compress, save_artifact
from buff.packaging.manifest import PackageMetadata, load_manifest
from buff.packaging.types import EntryKind, FileEntry


def build_artifact(
    root: Path,
    *,
    extra_ignores: Iterable[str] = (),
    exclude: Iterable[str] = (),
    skip_unreadable: bool = True,
    level: int = DEFAULT_COMPRESSION_LEVEL,
) -> bytes:
    """Collect, archive and compress `root` into artifact bytes."""
    entries = collect_paths(
        root,
        extra_ignores=extra_ignores,
        exclude=exclude,
        skip_unreadable=skip_unreadable,
    )
    with build_archive(entries) as archive:
        return compress(archive, level=level)


def save_artifact_to_path(root: Path, output_path: Path, **kwargs) -> Path:
    """Build the artifact for `root` and write it to `output_path`."""
    return save_artifact(build_artifact(root, **kwargs), output_path)


__all__ = [
    "EntryKind",
    "FileEntry",
    "PackageMetadata",
    "build_archive",
    "build_artifact",
    "collect_paths",
    "compress",
    "load_manifest",
    "save_artifact",
    "save_artifact_to_path",
]
