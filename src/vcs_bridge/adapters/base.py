"""
Base adapter interface for version-control hosting platforms.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from vcs_bridge.core.context import Context, ensure_context
from vcs_bridge.core.exceptions import ConfigurationError
from vcs_bridge.core.helpers import validate_parameters_not_blank
from vcs_bridge.core.models import (
    CommitInfo,
    CommitStatus,
    Permission,
    RepositoryInfo,
    VcsInfo,
    WebhookEvent,
    WebhookInfo,
)
from vcs_bridge.utils import get_logger

logger = get_logger(__name__)


class PlatformType(Enum):
    """Supported hosting platforms."""
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"


@dataclass(frozen=True)
class AdapterConfig:
    """Immutable configuration of an adapter instance."""
    platform: PlatformType
    vcs_info: VcsInfo = field(default_factory=VcsInfo)
    timeout: int = 30
    verify_ssl: bool = True

    @property
    def base_url(self) -> str:
        return self.vcs_info.api_endpoint


class BaseAdapter(ABC):
    """
    Base adapter interface for hosting platforms.

    All platform-specific adapters must inherit from this class and
    implement every abstract method. Callers only ever talk to this
    interface; the factory is the one place that picks a concrete class.

    Every operation accepts a keyword-only ``ctx`` used for cancellation
    and deadlines. Required string arguments are validated before the
    context is consulted and before any network call.
    """

    # Fields of VcsInfo that must be non-empty for this platform
    required_fields: Tuple[str, ...] = ()

    def __init__(self, config: AdapterConfig):
        """
        Initialize the adapter.

        Args:
            config: Adapter configuration

        Raises:
            ConfigurationError: If the endpoint is malformed or a field
                required by the platform is missing
        """
        self._validate_config(config)
        self.config = config
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")
        self.logger.debug(f"Initializing {self.__class__.__name__}")

    def _validate_config(self, config: AdapterConfig) -> None:
        endpoint = config.vcs_info.api_endpoint
        if endpoint:
            parsed = urlparse(endpoint)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ConfigurationError(
                    f"Invalid API endpoint for {config.platform.value}: '{endpoint}'"
                )

        missing = [
            name for name in self.required_fields
            if not getattr(config.vcs_info, name, "")
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration for {config.platform.value}: "
                + ", ".join(missing)
            )

        if config.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {config.timeout}")

    def _begin(self, ctx: Optional[Context]) -> Context:
        """Resolve the caller's context and fail fast if it is already done."""
        ctx = ensure_context(ctx)
        ctx.check()
        return ctx

    @staticmethod
    def validate_not_blank(**parameters: Optional[str]) -> None:
        """
        Validate required string arguments.

        Keyword names are reported with underscores turned into spaces.

        Raises:
            ValidationError: If any argument is blank
        """
        validate_parameters_not_blank(
            {name.replace("_", " "): value for name, value in parameters.items()}
        )

    @abstractmethod
    def test_connection(self, *, ctx: Optional[Context] = None) -> bool:
        """
        Make one cheap authenticated call against the platform.

        Returns:
            True if the endpoint and credentials are valid

        Raises:
            AuthenticationError: If the credentials are rejected
            APIError: For other API errors
        """
        pass

    @abstractmethod
    def list_repositories(self, *, ctx: Optional[Context] = None) -> Dict[str, List[str]]:
        """
        List every repository visible to the credentials.

        All pages are fetched before returning; a failure on any page
        raises and no partial result is returned.

        Returns:
            Mapping of owner/namespace to repository names

        Raises:
            APIError: For API errors
        """
        pass

    @abstractmethod
    def list_branches(
        self,
        owner: str,
        repository: str,
        *,
        ctx: Optional[Context] = None
    ) -> List[str]:
        """
        List branch names of a repository.

        Args:
            owner: Repository owner or namespace
            repository: Repository name

        Returns:
            Branch names in platform order

        Raises:
            ValidationError: If owner or repository is blank
            NotFoundError: If the repository doesn't exist
            APIError: For other API errors
        """
        pass

    @abstractmethod
    def add_ssh_key_to_repository(
        self,
        owner: str,
        repository: str,
        key_name: str,
        public_key: str,
        permission: Permission,
        *,
        ctx: Optional[Context] = None
    ) -> None:
        """
        Register a deploy key on a repository.

        Args:
            owner: Repository owner or namespace
            repository: Repository name
            key_name: Title of the key
            public_key: Public key in OpenSSH format
            permission: READ_ONLY or READ_WRITE

        Raises:
            ValidationError: If any string argument is blank
            APIError: For API errors
        """
        pass

    @abstractmethod
    def create_webhook(
        self,
        owner: str,
        repository: str,
        branch: str,
        payload_url: str,
        *events: WebhookEvent,
        ctx: Optional[Context] = None
    ) -> WebhookInfo:
        """
        Create a webhook posting JSON payloads to payload_url.

        A random shared secret is generated and configured on the hook.

        Args:
            owner: Repository owner or namespace
            repository: Repository name
            branch: Branch filter for push events, where supported
            payload_url: URL receiving the deliveries
            *events: Generic events to subscribe to

        Returns:
            WebhookInfo with the platform id and the generated secret

        Raises:
            ValidationError: If owner, repository or payload_url is blank
            APIError: For API errors
        """
        pass

    @abstractmethod
    def update_webhook(
        self,
        owner: str,
        repository: str,
        branch: str,
        payload_url: str,
        secret: str,
        webhook_id: str,
        *events: WebhookEvent,
        ctx: Optional[Context] = None
    ) -> None:
        """
        Re-apply the full configuration to an existing webhook.

        Args:
            owner: Repository owner or namespace
            repository: Repository name
            branch: Branch filter for push events, where supported
            payload_url: URL receiving the deliveries
            secret: Shared secret to configure
            webhook_id: Id returned by create_webhook
            *events: Generic events to subscribe to

        Raises:
            ValidationError: If a required argument is blank
            ParseError: If webhook_id is not in the platform's id form
            NotFoundError: If the webhook doesn't exist
            APIError: For other API errors
        """
        pass

    @abstractmethod
    def delete_webhook(
        self,
        owner: str,
        repository: str,
        webhook_id: str,
        *,
        ctx: Optional[Context] = None
    ) -> None:
        """
        Delete a webhook.

        Raises:
            ValidationError: If a required argument is blank
            ParseError: If webhook_id is not in the platform's id form
            NotFoundError: If the webhook doesn't exist
            APIError: For other API errors
        """
        pass

    @abstractmethod
    def set_commit_status(
        self,
        status: CommitStatus,
        owner: str,
        repository: str,
        ref: str,
        title: str,
        description: str,
        details_url: str,
        *,
        ctx: Optional[Context] = None
    ) -> None:
        """
        Append a status entry to a commit.

        Args:
            status: Generic status, mapped to the platform vocabulary
            owner: Repository owner or namespace
            repository: Repository name
            ref: Commit SHA
            title: Status context/name
            description: Short description
            details_url: Link shown next to the status

        Raises:
            ValidationError: If owner, repository or ref is blank
            APIError: For API errors
        """
        pass

    @abstractmethod
    def download_repository(
        self,
        owner: str,
        repository: str,
        branch: str,
        local_path: str,
        *,
        ctx: Optional[Context] = None
    ) -> None:
        """
        Download an archive of a branch and extract it into local_path.

        The platform's top-level directory is stripped. The response is
        streamed and always closed.

        Raises:
            ValidationError: If owner, repository or local_path is blank
            ArchiveError: If the archive cannot be extracted safely
            APIError: For API errors
        """
        pass

    @abstractmethod
    def create_pull_request(
        self,
        owner: str,
        repository: str,
        source_branch: str,
        target_branch: str,
        title: str,
        description: str,
        *,
        ctx: Optional[Context] = None
    ) -> None:
        """
        Open a pull (merge) request.

        Raises:
            ValidationError: If a required argument is blank
            APIError: For API errors
        """
        pass

    @abstractmethod
    def get_latest_commit(
        self,
        owner: str,
        repository: str,
        branch: str,
        *,
        ctx: Optional[Context] = None
    ) -> CommitInfo:
        """
        Get the most recent commit of a branch.

        Returns:
            CommitInfo, or an empty CommitInfo if the branch has no commits

        Raises:
            ValidationError: If a required argument is blank
            APIError: For API errors
        """
        pass

    @abstractmethod
    def get_repository_info(
        self,
        owner: str,
        repository: str,
        *,
        ctx: Optional[Context] = None
    ) -> RepositoryInfo:
        """
        Get the clone URLs of a repository.

        Raises:
            ValidationError: If a required argument is blank
            NotFoundError: If the repository doesn't exist
            APIError: For other API errors
        """
        pass

    @abstractmethod
    def get_commit_by_sha(
        self,
        owner: str,
        repository: str,
        sha: str,
        *,
        ctx: Optional[Context] = None
    ) -> CommitInfo:
        """
        Get one commit's metadata.

        Raises:
            ValidationError: If a required argument is blank
            NotFoundError: If the commit doesn't exist
            APIError: For other API errors
        """
        pass

    def parse_repository(self, repository: str) -> Tuple[str, str]:
        """
        Parse repository string into owner and name.

        Args:
            repository: Repository string (e.g., "owner/repo")

        Returns:
            Tuple of (owner, repo_name)

        Raises:
            ValueError: If repository format is invalid
        """
        parts = repository.split('/')
        if len(parts) != 2 or not all(parts):
            raise ValueError(
                f"Invalid repository format: {repository}. "
                "Expected format: 'owner/repo'"
            )
        return parts[0], parts[1]

    def __repr__(self) -> str:
        """String representation of adapter."""
        return (
            f"{self.__class__.__name__}("
            f"platform={self.config.platform.value}, "
            f"base_url={self.config.base_url})"
        )
