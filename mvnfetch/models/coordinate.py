"""
Artifact coordinates and the repository layout that maps them to paths and URLs.
"""

from dataclasses import dataclass
from pathlib import Path, PurePosixPath

ARTIFACT_EXTENSION = "jar"
DESCRIPTOR_EXTENSION = "pom"


@dataclass(frozen=True)
class Coordinate:
    """The (group, artifact, version) triple identifying one artifact."""

    group: str
    artifact: str
    version: str

    @property
    def key(self) -> str:
        return f"{self.group}:{self.artifact}:{self.version}"

    def is_complete(self) -> bool:
        return bool(self.group and self.artifact and self.version)

    def is_safe_path(self) -> bool:
        """
        True when every layout segment is a plain directory or file name, so the
        coordinate cannot point outside a repository root.
        """
        segments = [*self.group.split("."), self.artifact, self.version]
        return all(_is_plain_segment(s) for s in segments)

    def __str__(self) -> str:
        return self.key


def _is_plain_segment(segment: str) -> bool:
    if segment in ("", ".", ".."):
        return False
    return not any(c in segment for c in ("/", "\\", "\x00"))


def layout_dir(coordinate: Coordinate) -> PurePosixPath:
    """
    Returns the repository-relative directory of a coordinate:
    ``group (dots as separators) / artifact / version``.
    """
    return PurePosixPath(
        *coordinate.group.split("."), coordinate.artifact, coordinate.version
    )


def layout_file_name(coordinate: Coordinate, extension: str) -> str:
    return f"{coordinate.artifact}-{coordinate.version}.{extension}"


def remote_url(base_url: str, coordinate: Coordinate, extension: str) -> str:
    """Builds the URL of one file of a coordinate under a repository base URL."""
    relative = layout_dir(coordinate) / layout_file_name(coordinate, extension)
    return f"{base_url.rstrip('/')}/{relative}"


def local_path(repository_root: Path, coordinate: Coordinate, extension: str) -> Path:
    """Builds the on-disk path of one file of a coordinate under a repository root."""
    return (
        repository_root
        / Path(*layout_dir(coordinate).parts)
        / layout_file_name(coordinate, extension)
    )
