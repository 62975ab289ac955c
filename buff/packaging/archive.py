"""Archive builder — packs collected entries into a tar stream.

Member names are the entries' forward-slash relative paths, with the
package root recorded as ".". Ownership is normalised so the archive does
not leak the packager's user and group. Symlinks are stored as links,
never dereferenced.
"""

import logging
import os
import stat
import tarfile
import tempfile
from typing import BinaryIO, Iterable, Optional

from buff.core.errors import ArchiveError, TraversalError
from buff.packaging.types import EntryKind, FileEntry

logger = logging.getLogger(__name__)


def build_archive(
    entries: Iterable[FileEntry],
    fileobj: Optional[BinaryIO] = None,
) -> BinaryIO:
    """Write every entry into a tar stream and rewind it.

    Args:
        entries: FileEntry sequence, usually straight from collect_paths().
        fileobj: Seekable binary stream to write into. An anonymous
            temporary file is used when omitted.

    Returns:
        The stream, positioned at offset 0.

    Raises:
        ArchiveError: If a source file vanished or became unreadable. The
            archive is abandoned; no partial stream is returned.
        TraversalError: Propagated from a strict walk, after the same cleanup.
    """
    stream = fileobj if fileobj is not None else tempfile.TemporaryFile()
    count = 0

    try:
        with tarfile.open(fileobj=stream, mode="w", format=tarfile.PAX_FORMAT) as tar:
            for entry in entries:
                _add_entry(tar, entry)
                count += 1
    except (ArchiveError, TraversalError):
        _discard(stream, owned=fileobj is None)
        raise
    except OSError as exc:
        _discard(stream, owned=fileobj is None)
        raise ArchiveError(f"Failed to write archive: {exc}") from exc

    stream.seek(0)
    logger.debug("Archived %d entries", count)
    return stream


def _add_entry(tar: tarfile.TarFile, entry: FileEntry) -> None:
    try:
        st = os.lstat(entry.path)
    except OSError as exc:
        raise ArchiveError(f"Cannot stat {entry.relative_path}: {exc}") from exc

    info = tarfile.TarInfo(name=entry.relative_path)
    info.mode = stat.S_IMODE(st.st_mode)
    info.mtime = int(st.st_mtime)
    info.uid = info.gid = 0
    info.uname = info.gname = ""

    if entry.kind == EntryKind.DIRECTORY:
        info.type = tarfile.DIRTYPE
        tar.addfile(info)
    elif entry.kind == EntryKind.SYMLINK:
        info.type = tarfile.SYMTYPE
        try:
            info.linkname = os.readlink(entry.path)
        except OSError as exc:
            raise ArchiveError(f"Cannot read link {entry.relative_path}: {exc}") from exc
        tar.addfile(info)
    else:
        info.type = tarfile.REGTYPE
        info.size = st.st_size
        try:
            with open(entry.path, "rb") as fh:
                tar.addfile(info, fh)
        except OSError as exc:
            # Also raised by tarfile when the file shrinks mid-copy
            raise ArchiveError(
                f"Source file changed or became unreadable: {entry.relative_path} ({exc})"
            ) from exc


def _discard(stream: BinaryIO, owned: bool) -> None:
    if owned:
        stream.close()
