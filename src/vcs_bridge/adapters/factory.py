"""
Factory for creating platform-specific adapters.
"""
from typing import Dict, List, Optional, Type, Union

from vcs_bridge.utils import get_logger
from vcs_bridge.config import get_settings
from vcs_bridge.core.exceptions import ConfigurationError
from vcs_bridge.core.models import VcsInfo
from .base import BaseAdapter, AdapterConfig, PlatformType
from .github import GitHubAdapter
from .gitlab import GitLabAdapter

logger = get_logger(__name__)


class AdapterFactory:
    """Factory for creating platform adapters."""

    _adapters: Dict[PlatformType, Type[BaseAdapter]] = {}  # Registry of available adapters

    @classmethod
    def register_adapter(cls, platform: PlatformType, adapter_class: Type[BaseAdapter]):
        """
        Register an adapter class for a platform.

        Args:
            platform: Platform type
            adapter_class: Adapter class to register
        """
        cls._adapters[platform] = adapter_class
        logger.debug(f"Registered adapter for {platform.value}: {adapter_class.__name__}")

    @classmethod
    def create_adapter(
        cls,
        platform: Union[PlatformType, str],
        token: Optional[str] = None,
        api_endpoint: Optional[str] = None,
        username: Optional[str] = None,
        **kwargs
    ) -> BaseAdapter:
        """
        Create an adapter instance for the specified platform.

        Anything not passed explicitly is read from the settings section of
        the platform, then from the platform defaults.

        Args:
            platform: Platform type or its name ("github", "gitlab")
            token: Authentication token
            api_endpoint: API base URL
            username: Login name, for providers that need one
            **kwargs: timeout and verify_ssl overrides

        Returns:
            Configured adapter instance

        Raises:
            ConfigurationError: If the platform is unknown or not registered,
                or the resulting configuration is invalid
        """
        platform = cls._resolve_platform(platform)
        cls._adapter_class(platform)

        section = get_settings().provider(platform.value)

        if token is None:
            token = section.token
        if api_endpoint is None:
            api_endpoint = section.api_base_url or cls._get_default_base_url(platform)
        if username is None:
            username = section.username

        vcs_info = VcsInfo(
            api_endpoint=api_endpoint or "",
            token=token or "",
            username=username or "",
        )
        kwargs.setdefault("timeout", section.timeout)
        kwargs.setdefault("verify_ssl", section.verify_ssl)
        return cls.from_vcs_info(platform, vcs_info, **kwargs)

    @classmethod
    def from_vcs_info(
        cls,
        platform: Union[PlatformType, str],
        vcs_info: VcsInfo,
        **kwargs
    ) -> BaseAdapter:
        """
        Create an adapter from ready-made connection details.

        Settings are not consulted. An empty endpoint selects the platform
        default inside the adapter.

        Args:
            platform: Platform type or its name
            vcs_info: Connection details
            **kwargs: timeout and verify_ssl overrides

        Returns:
            Configured adapter instance
        """
        platform = cls._resolve_platform(platform)
        adapter_class = cls._adapter_class(platform)

        config = AdapterConfig(
            platform=platform,
            vcs_info=vcs_info,
            timeout=kwargs.get('timeout', 30),
            verify_ssl=kwargs.get('verify_ssl', True),
        )
        adapter = adapter_class(config)

        logger.info(f"Created {platform.value} adapter")
        return adapter

    @classmethod
    def create_github_adapter(
        cls,
        token: Optional[str] = None,
        **kwargs
    ) -> BaseAdapter:
        """
        Convenience method to create GitHub adapter.

        Args:
            token: GitHub token
            **kwargs: Additional configuration

        Returns:
            GitHubAdapter instance
        """
        return cls.create_adapter(PlatformType.GITHUB, token=token, **kwargs)

    @classmethod
    def create_gitlab_adapter(
        cls,
        token: Optional[str] = None,
        **kwargs
    ) -> BaseAdapter:
        """Convenience method to create GitLab adapter."""
        return cls.create_adapter(PlatformType.GITLAB, token=token, **kwargs)

    @staticmethod
    def _resolve_platform(platform: Union[PlatformType, str]) -> PlatformType:
        if isinstance(platform, PlatformType):
            return platform
        try:
            return PlatformType(str(platform).lower())
        except ValueError:
            known = ", ".join(p.value for p in PlatformType)
            raise ConfigurationError(
                f"Unknown platform: {platform}. Known platforms: {known}"
            ) from None

    @classmethod
    def _adapter_class(cls, platform: PlatformType) -> Type[BaseAdapter]:
        if platform not in cls._adapters:
            available = ", ".join(cls.list_available_platforms())
            raise ConfigurationError(
                f"Unsupported platform: {platform.value}. "
                f"Available platforms: {available}"
            )
        return cls._adapters[platform]

    @staticmethod
    def _get_default_base_url(platform: PlatformType) -> str:
        """Get default base URL for a platform."""
        urls = {
            PlatformType.GITHUB: "https://api.github.com",
            PlatformType.GITLAB: "https://gitlab.com",
            PlatformType.BITBUCKET: "https://api.bitbucket.org/2.0"
        }
        return urls.get(platform, "")

    @classmethod
    def list_available_platforms(cls) -> List[str]:
        """Get list of available platforms."""
        return [platform.value for platform in cls._adapters.keys()]


def _auto_register_adapters():
    """Register the adapters shipped with the package."""
    AdapterFactory.register_adapter(PlatformType.GITHUB, GitHubAdapter)
    AdapterFactory.register_adapter(PlatformType.GITLAB, GitLabAdapter)


# Register adapters on module import
_auto_register_adapters()
