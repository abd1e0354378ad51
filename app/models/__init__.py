"""
Models package

One model per file:
- version.py
- version_dependency.py
"""

from .version import Version
from .version_dependency import VersionDependency

__all__ = [
    "Version",
    "VersionDependency",
]
