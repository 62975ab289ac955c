"""Compressor — gzip transform for archive streams.

The output is a single gzip member, which is also the on-disk format of a
saved artifact (`.tar.gz`). The header mtime is pinned to 0 so the same
archive always compresses to the same bytes.
"""

import gzip
import io
import logging
import shutil
from pathlib import Path
from typing import BinaryIO

from buff.core.errors import CompressionError

logger = logging.getLogger(__name__)

# zlib's own default; gzip.compress() would otherwise use 9
DEFAULT_COMPRESSION_LEVEL = 6


def compress(stream: BinaryIO, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Read `stream` to EOF and return its gzip-compressed bytes.

    Raises:
        CompressionError: If reading the source stream fails.
    """
    buffer = io.BytesIO()
    try:
        with gzip.GzipFile(fileobj=buffer, mode="wb", compresslevel=level, mtime=0) as gz:
            shutil.copyfileobj(stream, gz)
    except OSError as exc:
        raise CompressionError(f"Failed to compress archive: {exc}") from exc

    data = buffer.getvalue()
    logger.debug("Compressed archive to %d bytes (level %d)", len(data), level)
    return data


def save_artifact(data: bytes, output_path: Path) -> Path:
    """Write compressed artifact bytes to `output_path`.

    Parent directories are created when missing.

    Raises:
        CompressionError: If the file cannot be written.
    """
    output_path = Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(data)
    except OSError as exc:
        raise CompressionError(f"Failed to write artifact to {output_path}: {exc}") from exc

    logger.info("Saved artifact (%d bytes) to %s", len(data), output_path)
    return output_path
