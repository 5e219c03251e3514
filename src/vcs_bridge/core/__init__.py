"""Core functionality for vcs-bridge."""

from .models import (
    CommitStatus,
    WebhookEvent,
    Permission,
    VcsInfo,
    CommitInfo,
    CloneInfo,
    RepositoryInfo,
    WebhookInfo,
)

from .exceptions import (
    VcsBridgeError,
    ConfigurationError,
    ValidationError,
    ParseError,
    ArchiveError,
    OperationCancelledError,
    DeadlineExceededError,
    APIError,
    AuthenticationError,
    AccessPermissionError,
    NotFoundError,
    RateLimitError,
)

from .context import Context

__all__ = [
    # Enums
    "CommitStatus",
    "WebhookEvent",
    "Permission",
    # Models
    "VcsInfo",
    "CommitInfo",
    "CloneInfo",
    "RepositoryInfo",
    "WebhookInfo",
    # Exceptions
    "VcsBridgeError",
    "ConfigurationError",
    "ValidationError",
    "ParseError",
    "ArchiveError",
    "OperationCancelledError",
    "DeadlineExceededError",
    "APIError",
    "AuthenticationError",
    "AccessPermissionError",
    "NotFoundError",
    "RateLimitError",
    # Cancellation
    "Context",
]
