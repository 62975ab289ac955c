"""Types for the registry module."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class PublishConfirmation:
    """Outcome of an accepted publish."""

    registry: str
    package_name: str
    version: Optional[str]
    artifact_size: int
    accepted: bool = True

    def to_dict(self) -> dict:
        return {
            "registry": self.registry,
            "package_name": self.package_name,
            "version": self.version,
            "artifact_size": self.artifact_size,
            "accepted": self.accepted,
        }
