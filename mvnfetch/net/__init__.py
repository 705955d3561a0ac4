"""
Network Layer.

This package handles all communication with the remote Maven repository.
"""

from .fetcher import ArtifactFetcher

__all__ = ["ArtifactFetcher"]
