"""Adapter modules for version-control hosting platforms."""

from .base import (
    BaseAdapter,
    AdapterConfig,
    PlatformType,
)
from .github import GitHubAdapter
from .gitlab import GitLabAdapter
from .factory import AdapterFactory

__all__ = [
    "BaseAdapter",
    "AdapterConfig",
    "PlatformType",
    "GitHubAdapter",
    "GitLabAdapter",
    "AdapterFactory",
]
