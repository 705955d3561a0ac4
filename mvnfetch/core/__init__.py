"""
Core resolution engine.

This package contains the primary logic. The `DependencyGraphWalker` drives
the whole walk, using the manifest parser and property resolver to discover
dependencies and the `VisitTracker` to fetch each coordinate only once.
"""

from .manifest import ManifestModel, parse_manifest, parse_manifest_file
from .properties import resolve_version
from .visit_tracker import VisitTracker
from .walker import DependencyGraphWalker

__all__ = [
    "DependencyGraphWalker",
    "ManifestModel",
    "VisitTracker",
    "parse_manifest",
    "parse_manifest_file",
    "resolve_version",
]
