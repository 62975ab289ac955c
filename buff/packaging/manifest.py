"""buff.toml manifest loader.

Layout:

    [package]
    name = "demo"
    version = "0.1.0"
    description = "..."
    keywords = ["a", "b"]
    homepage = "https://example.com"
    repository_url = "https://repo.com"

    [dependencies]
    other = "^1.0"

Only `package.name` is required. The manifest is read-only input; nothing
in the client writes it back.
"""

import logging
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from buff.core.errors import ManifestError, describe_validation_error

logger = logging.getLogger(__name__)


class PackageMetadata(BaseModel):
    """Package metadata from the [package] and [dependencies] tables."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1)
    version: Optional[str] = None
    description: str = ""
    keywords: list[str] = Field(default_factory=list)
    homepage: str = ""
    repository_url: str = ""
    dependencies: dict[str, str] = Field(default_factory=dict)


def load_manifest(path: Path) -> PackageMetadata:
    """Parse and validate the manifest at `path`.

    Raises:
        ManifestError: If the file is missing, not valid TOML, or lacks a
            well-formed [package] table.
    """
    path = Path(path)
    try:
        with open(path, "rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ManifestError(f"Manifest not found: {path}") from exc
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ManifestError(f"Malformed manifest {path}: {exc}") from exc

    package = data.get("package")
    if not isinstance(package, dict):
        raise ManifestError(f"Manifest {path} has no [package] table")

    try:
        metadata = PackageMetadata.model_validate(
            {**package, "dependencies": data.get("dependencies", {})}
        )
    except ValidationError as exc:
        raise ManifestError(
            f"Invalid manifest {path}: {describe_validation_error(exc)}"
        ) from exc

    logger.debug("Loaded manifest for package %s", metadata.name)
    return metadata
