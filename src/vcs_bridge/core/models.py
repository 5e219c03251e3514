"""
Provider-neutral data models shared by every adapter.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Tuple


class CommitStatus(Enum):
    """Outcome of a build or check attached to a commit."""
    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"
    IN_PROGRESS = "in_progress"


class WebhookEvent(Enum):
    """Generic webhook events, translated per platform."""
    PR_CREATED = "pr_created"
    PR_EDITED = "pr_edited"
    PUSH = "push"


class Permission(Enum):
    """Access level of a deploy key."""
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


@dataclass(frozen=True)
class VcsInfo:
    """
    Connection details consumed when an adapter is built.

    Attributes:
        api_endpoint: API base URL; empty means the platform default
        token: Access token; empty for anonymous access
        username: Login name, only needed by basic-auth providers
    """
    api_endpoint: str = ""
    token: str = ""
    username: str = ""

    def __repr__(self) -> str:
        # Never print the token
        return (
            f"VcsInfo(api_endpoint={self.api_endpoint!r}, "
            f"token={'***' if self.token else ''!r}, "
            f"username={self.username!r})"
        )


@dataclass(frozen=True)
class CommitInfo:
    """
    Normalized commit metadata.

    Attributes:
        hash: Commit SHA
        author_name: Author display name
        committer_name: Committer display name
        url: Canonical URL of the commit on the platform
        timestamp: Commit time as a UTC unix timestamp (seconds)
        message: Full commit message
        parent_hashes: Parent SHAs, in platform order
    """
    hash: str = ""
    author_name: str = ""
    committer_name: str = ""
    url: str = ""
    timestamp: int = 0
    message: str = ""
    parent_hashes: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable of parents but store an immutable tuple
        if not isinstance(self.parent_hashes, tuple):
            object.__setattr__(self, "parent_hashes", tuple(self.parent_hashes))

    @property
    def is_empty(self) -> bool:
        """True for the zero-valued commit returned for empty branches."""
        return self == CommitInfo()


@dataclass(frozen=True)
class CloneInfo:
    """Clone URLs of a repository."""
    http: str = ""
    ssh: str = ""


@dataclass(frozen=True)
class RepositoryInfo:
    """Repository information exposed to callers."""
    clone_info: CloneInfo = field(default_factory=CloneInfo)


class WebhookInfo(NamedTuple):
    """Identity of a created webhook: platform id and shared secret."""
    id: str
    secret: str
