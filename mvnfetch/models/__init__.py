"""
Data Models Layer.

This package contains the models that define the core data structures used
throughout the application, such as coordinates, configuration and statistics.
"""

from .config import FetchConfig
from .coordinate import Coordinate
from .stats import WalkStats

__all__ = ["Coordinate", "FetchConfig", "WalkStats"]
