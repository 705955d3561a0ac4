"""
Parses POM manifests and descriptors into coordinates, properties and
dependency declarations. Namespaced and non-namespaced documents are accepted.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from mvnfetch.exceptions import ManifestParseError, UnresolvedVersionError
from mvnfetch.models.coordinate import Coordinate

from .properties import PropertyTable, resolve_version

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyDeclaration:
    """One ``<dependency>`` entry, with its version already resolved (or None)."""

    group: str
    artifact: str
    raw_version: str
    version: Optional[str]

    def to_coordinate(self) -> Optional[Coordinate]:
        if not self.version:
            return None
        return Coordinate(self.group, self.artifact, self.version)


@dataclass
class ManifestModel:
    """The parts of a POM the walker needs."""

    project: Coordinate
    properties: Dict[str, Any] = field(default_factory=dict)
    dependencies: List[DependencyDeclaration] = field(default_factory=list)

    def coordinates(self) -> List[Coordinate]:
        """Returns the resolvable dependencies, dropping those without a version."""
        result = []
        for dep in self.dependencies:
            coordinate = dep.to_coordinate()
            if coordinate is None:
                error = UnresolvedVersionError(
                    f"Could not resolve version '{dep.raw_version}' "
                    f"of {dep.group}:{dep.artifact}"
                )
                log.warning(f"[yellow]Dropping dependency:[/yellow] {error}")
                continue
            result.append(coordinate)
        return result


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.split("}", 1)[1] if tag.startswith("{") else tag


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def _text(element: Optional[ET.Element], name: str) -> str:
    if element is None:
        return ""
    child = _child(element, name)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


def _read_properties(element: ET.Element) -> Dict[str, Any]:
    """
    Converts a ``<properties>`` block to a table. Leaf children are keyed by their
    full tag name; children with sub-elements become nested tables.
    """
    table: Dict[str, Any] = {}
    for child in element:
        name = _local_name(child.tag)
        if not name:
            continue
        if len(child):
            table[name] = _read_properties(child)
        else:
            table[name] = (child.text or "").strip()
    return table


def _builtin_properties(
    project: Coordinate, parent_group: str, parent_version: str
) -> Dict[str, str]:
    builtins = {
        "project.groupId": project.group,
        "project.artifactId": project.artifact,
        "project.version": project.version,
        "pom.groupId": project.group,
        "pom.artifactId": project.artifact,
        "pom.version": project.version,
        "project.parent.groupId": parent_group,
        "project.parent.version": parent_version,
    }
    return {k: v for k, v in builtins.items() if v}


def parse_manifest(document: bytes) -> ManifestModel:
    """
    Parses a POM document.

    Raises:
        ManifestParseError: If the document is not well-formed XML or its root
        element is not ``project``.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise ManifestParseError(f"Malformed manifest: {e}") from e

    if _local_name(root.tag) != "project":
        raise ManifestParseError(
            f"Unexpected root element '{_local_name(root.tag)}', expected 'project'"
        )

    parent = _child(root, "parent")
    parent_group = _text(parent, "groupId")
    parent_version = _text(parent, "version")
    project = Coordinate(
        _text(root, "groupId") or parent_group,
        _text(root, "artifactId"),
        _text(root, "version") or parent_version,
    )

    properties: Dict[str, Any] = {}
    props_el = _child(root, "properties")
    if props_el is not None:
        properties = _read_properties(props_el)
    for name, value in _builtin_properties(
        project, parent_group, parent_version
    ).items():
        properties.setdefault(name, value)

    dependencies: List[DependencyDeclaration] = []
    deps_el = _child(root, "dependencies")
    if deps_el is None:
        log.debug(f"No dependencies declared by {project}")
    else:
        for dep_el in _children(deps_el, "dependency"):
            declaration = _parse_dependency(dep_el, properties)
            if declaration is not None:
                dependencies.append(declaration)

    return ManifestModel(
        project=project, properties=properties, dependencies=dependencies
    )


def _parse_dependency(
    dep_el: ET.Element, properties: PropertyTable
) -> Optional[DependencyDeclaration]:
    group = _text(dep_el, "groupId")
    artifact = _text(dep_el, "artifactId")
    raw_version = _text(dep_el, "version")
    if not (group and artifact and raw_version):
        log.debug(
            f"Skipping incomplete dependency: groupId='{group}', "
            f"artifactId='{artifact}', version='{raw_version}'"
        )
        return None

    version = resolve_version(raw_version, properties)
    log.debug(f"Declared dependency {group}:{artifact}:{version}")
    return DependencyDeclaration(group, artifact, raw_version, version)


def parse_manifest_file(path: Path) -> ManifestModel:
    """Reads and parses a manifest from disk."""
    try:
        document = path.read_bytes()
    except OSError as e:
        raise ManifestParseError(f"Could not read manifest '{path}': {e}") from e
    return parse_manifest(document)
