"""Path collector — walks a package directory honoring ignore files.

Ignore semantics follow git: `.gitignore`, `.ignore` and `.buffignore`
are read in every directory and their patterns apply relative to the
directory holding them. Deeper files override shallower ones, and the
last matching pattern wins (so `!pattern` re-includes). An ignored
directory is never descended into, unless only its contents are ignored
(`dir/**`), in which case each child is judged on its own.

Order is depth-first pre-order with each directory's children sorted by
name, so two walks over the same snapshot yield the same sequence.
"""

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional

from pathspec import GitIgnoreSpec

from buff.core.errors import TraversalError
from buff.packaging.types import ROOT_RELATIVE_PATH, EntryKind, FileEntry

logger = logging.getLogger(__name__)

# Read in this order; later files in the same directory take precedence
IGNORE_FILE_NAMES = (".gitignore", ".ignore", ".buffignore")

# VCS metadata is never packed
ALWAYS_SKIPPED_DIRS = {".git"}


@dataclass
class _IgnoreLayer:
    """Patterns from one ignore source, anchored at `base` ("" = root)."""

    base: str
    spec: GitIgnoreSpec


def collect_paths(
    root: Path,
    *,
    extra_ignores: Iterable[str] = (),
    exclude: Iterable[str] = (),
    skip_unreadable: bool = True,
) -> Iterator[FileEntry]:
    """Return a lazy iterator of FileEntry for everything under `root`.

    The root is validated eagerly; the walk itself happens as the iterator
    is consumed and cannot be restarted.

    Args:
        root: Package directory to walk.
        extra_ignores: Root-anchored gitignore patterns from configuration.
        exclude: Exact relative paths to leave out (e.g. the manifest).
        skip_unreadable: Log and skip subtrees that raise a permission
            error. When False, such a subtree aborts the walk.

    Raises:
        TraversalError: If the root is missing, not a directory or unreadable.
    """
    root = Path(root)
    if not root.exists():
        raise TraversalError(f"Package root does not exist: {root}")
    if not root.is_dir():
        raise TraversalError(f"Package root is not a directory: {root}")

    layers: list[_IgnoreLayer] = []
    extra = [p for p in extra_ignores if p.strip()]
    if extra:
        layers.append(_IgnoreLayer(base="", spec=GitIgnoreSpec.from_lines(extra)))

    try:
        children, layers = _open_directory(root, "", layers)
    except OSError as exc:
        raise TraversalError(f"Package root is unreadable: {root} ({exc})") from exc

    excluded = frozenset(_normalise_relative(p) for p in exclude)
    return _walk(root, "", children, layers, excluded, skip_unreadable)


def _walk(
    directory: Path,
    rel_dir: str,
    children: list[os.DirEntry],
    layers: list[_IgnoreLayer],
    excluded: frozenset[str],
    skip_unreadable: bool,
) -> Iterator[FileEntry]:
    yield FileEntry(
        path=directory,
        relative_path=rel_dir or ROOT_RELATIVE_PATH,
        kind=EntryKind.DIRECTORY,
    )

    for child in children:
        rel = f"{rel_dir}/{child.name}" if rel_dir else child.name
        if rel in excluded:
            continue

        try:
            kind = _entry_kind(child)
        except OSError as exc:
            if not skip_unreadable:
                raise TraversalError(f"Cannot stat {rel}: {exc}") from exc
            logger.warning("Skipping unreadable entry %s: %s", rel, exc)
            continue

        if kind is None:
            # Sockets, FIFOs and device nodes have no place in an artifact
            logger.debug("Skipping special file %s", rel)
            continue

        is_dir = kind == EntryKind.DIRECTORY
        if is_dir and child.name in ALWAYS_SKIPPED_DIRS:
            continue
        if _is_ignored(rel, is_dir, layers):
            logger.debug("Ignoring %s", rel)
            continue

        if not is_dir:
            yield FileEntry(path=Path(child.path), relative_path=rel, kind=kind)
            continue

        # The whole subtree is set up before its directory entry is yielded,
        # so a skipped subtree leaves no trace in the walk
        try:
            grandchildren, child_layers = _open_directory(Path(child.path), rel, layers)
        except OSError as exc:
            if not skip_unreadable:
                raise TraversalError(f"Cannot read directory {rel}: {exc}") from exc
            logger.warning("Skipping unreadable directory %s: %s", rel, exc)
            continue
        yield from _walk(
            Path(child.path), rel, grandchildren, child_layers, excluded, skip_unreadable,
        )


def _entry_kind(entry: os.DirEntry) -> Optional[EntryKind]:
    """Classify without following links; None for anything that is not packable."""
    if entry.is_symlink():
        return EntryKind.SYMLINK
    if entry.is_dir(follow_symlinks=False):
        return EntryKind.DIRECTORY
    if entry.is_file(follow_symlinks=False):
        return EntryKind.FILE
    return None


def _open_directory(
    directory: Path,
    rel_dir: str,
    layers: list[_IgnoreLayer],
) -> tuple[list[os.DirEntry], list[_IgnoreLayer]]:
    """List `directory` and stack its own ignore files on top of `layers`.

    Raises:
        OSError: If the listing or any ignore file cannot be read.
    """
    children = _list_dir(directory)
    return children, layers + _load_ignore_layers(directory, rel_dir)


def _list_dir(directory: Path) -> list[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda e: e.name)


def _load_ignore_layers(directory: Path, rel_dir: str) -> list[_IgnoreLayer]:
    """Read the ignore files that live directly in `directory`."""
    layers: list[_IgnoreLayer] = []
    for name in IGNORE_FILE_NAMES:
        path = directory / name
        # Only absence is tolerated; EACCES and friends reach the caller
        try:
            mode = os.stat(path).st_mode
        except (FileNotFoundError, NotADirectoryError):
            continue
        if not stat.S_ISREG(mode):
            continue
        text = path.read_text(encoding="utf-8", errors="replace")
        layers.append(_IgnoreLayer(base=rel_dir, spec=GitIgnoreSpec.from_lines(text.splitlines())))
    return layers


def _is_ignored(rel: str, is_dir: bool, layers: list[_IgnoreLayer]) -> bool:
    """Apply every layer from shallowest to deepest; the last match decides.

    A directory matched only by a contents rule such as `foo/**` is still
    walked, so its children can be checked one by one and re-included.
    """
    ignored = False
    contents_only = False
    for layer in layers:
        candidate = rel[len(layer.base) + 1:] if layer.base else rel
        if is_dir:
            # Lets directory-only patterns such as `build/` match
            candidate += "/"
        result = layer.spec.check_file(candidate)
        if result.include is not None:
            ignored = result.include
            contents_only = is_dir and _is_contents_rule(layer.spec, result.index)
    return ignored and not contents_only


def _is_contents_rule(spec: GitIgnoreSpec, index: Optional[int]) -> bool:
    if index is None:
        return False
    return spec.patterns[index].pattern.rstrip().endswith("/**")


def _normalise_relative(path: str) -> str:
    return Path(path).as_posix().removeprefix("./").strip("/")
