"""
Shared test fixtures and configuration for pytest.
This file is automatically discovered by pytest.
"""

import pytest

from vcs_bridge.adapters.base import AdapterConfig, PlatformType
from vcs_bridge.config import Settings
from vcs_bridge.core import Context, VcsInfo

from tests.utils import make_tarball


@pytest.fixture
def vcs_info():
    """Connection details with a token and no endpoint."""
    return VcsInfo(token="test_token_123")


@pytest.fixture
def github_config(vcs_info):
    """GitHub adapter configuration."""
    return AdapterConfig(platform=PlatformType.GITHUB, vcs_info=vcs_info)


@pytest.fixture
def gitlab_config(vcs_info):
    """GitLab adapter configuration."""
    return AdapterConfig(platform=PlatformType.GITLAB, vcs_info=vcs_info)


@pytest.fixture
def cancelled_context():
    """A context that was cancelled before use."""
    ctx = Context()
    ctx.cancel("stopped by test")
    return ctx


@pytest.fixture
def sample_tarball():
    """Archive laid out like a platform download."""
    return make_tarball({
        "README.md": "# hello\n",
        "src/app.py": "print('hello')\n",
        "docs/guide/index.md": "guide\n",
    })


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file for testing."""
    config_content = """
app:
  debug: true
  log_level: "DEBUG"

github:
  timeout: 60

gitlab:
  api_base_url: "https://gitlab.example.com"
  verify_ssl: false
"""
    config_file = tmp_path / "test_config.yaml"
    config_file.write_text(config_content)
    return config_file


@pytest.fixture
def mock_settings():
    """Create a Settings object for testing."""
    return Settings()


# Pytest configuration hooks
def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Auto-add 'unit' marker to tests in tests/unit/
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        # Auto-add 'integration' marker to tests in tests/integration/
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
