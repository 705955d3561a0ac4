"""Resolve a Maven manifest's transitive dependencies into a local repository."""

__version__ = "0.1.0"
