"""Tests for GitHub adapter."""

import pytest
import requests
from unittest.mock import Mock, patch, call
from datetime import datetime, timezone

from github import Auth, GithubException, RateLimitExceededException, UnknownObjectException

from vcs_bridge.adapters.github import (
    GitHubAdapter,
    _commit_state,
    _last_page,
    _webhook_event,
    _webhook_events,
)
from vcs_bridge.adapters.base import AdapterConfig, PlatformType
from vcs_bridge.core import (
    CommitInfo,
    CommitStatus,
    Context,
    Permission,
    VcsInfo,
    WebhookEvent,
    WebhookInfo,
    APIError,
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    ValidationError,
    ParseError,
    OperationCancelledError,
    DeadlineExceededError,
)

from tests.utils import github_link_header, make_stream_response


@pytest.fixture
def mock_github():
    """Create mock GitHub client."""
    with patch('vcs_bridge.adapters.github.Github') as mock:
        yield mock


@pytest.fixture
def github_adapter(github_config):
    """Create GitHub adapter instance."""
    return GitHubAdapter(github_config)


@pytest.fixture
def mock_repo(mock_github):
    """Repository object returned by get_repo."""
    repo = Mock()
    mock_github.return_value.get_repo.return_value = repo
    return repo


def _create_mock_commit():
    """Create a PyGithub-like commit."""
    commit = Mock()
    commit.sha = "7fd1a60b01f91b314f59955a4e4d4e80d8edf11d"
    commit.url = "https://api.github.com/repos/octocat/hello/commits/7fd1a60b"
    commit.commit.author.name = "Alice"
    commit.commit.committer.name = "Bob"
    commit.commit.committer.date = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    commit.commit.message = "Fix bug\n\nLonger description"
    parent = Mock()
    parent.sha = "553c2077f0edc3d5dc5d17262f6aa498e69d6f8e"
    commit.parents = [parent]
    return commit


class TestGitHubAdapterInit:
    """Test adapter initialization and client construction."""

    def test_default_endpoint(self, github_adapter):
        """Empty endpoint falls back to api.github.com."""
        assert github_adapter.api_url == "https://api.github.com"

    def test_enterprise_endpoint(self):
        """Test custom endpoint is kept without trailing slash."""
        config = AdapterConfig(
            platform=PlatformType.GITHUB,
            vcs_info=VcsInfo(api_endpoint="https://ghe.example.com/api/v3/", token="t"),
        )
        adapter = GitHubAdapter(config)
        assert adapter.api_url == "https://ghe.example.com/api/v3"

    def test_no_client_built_on_init(self, github_config, mock_github):
        """The SDK client is only built when an operation runs."""
        GitHubAdapter(github_config)
        mock_github.assert_not_called()

    def test_client_arguments(self, github_adapter, mock_github):
        """Test token, endpoint and timeout reach PyGithub."""
        github_adapter.test_connection()

        kwargs = mock_github.call_args.kwargs
        assert isinstance(kwargs['auth'], Auth.Token)
        assert kwargs['base_url'] == "https://api.github.com"
        assert kwargs['timeout'] == 30
        assert kwargs['verify'] is True

    def test_timeout_bounded_by_deadline(self, github_adapter, mock_github):
        """A context deadline shorter than the timeout wins."""
        github_adapter.test_connection(ctx=Context(timeout=5.5))

        assert mock_github.call_args.kwargs['timeout'] == 6

    def test_anonymous_client(self, mock_github):
        """No token means no auth."""
        adapter = GitHubAdapter(AdapterConfig(platform=PlatformType.GITHUB))
        adapter.test_connection()

        assert mock_github.call_args.kwargs['auth'] is None


class TestGitHubConnection:
    """Test connection checks and error translation."""

    def test_connection_success(self, github_adapter, mock_github):
        """Test successful connection validation."""
        mock_client = mock_github.return_value
        mock_client.get_user.return_value.login = "octocat"

        assert github_adapter.test_connection() is True
        mock_client.get_user.assert_called_once()

    def test_anonymous_connection_uses_rate_limit(self, mock_github):
        """Anonymous access checks the rate-limit endpoint."""
        adapter = GitHubAdapter(AdapterConfig(platform=PlatformType.GITHUB))
        mock_client = mock_github.return_value

        assert adapter.test_connection() is True
        mock_client.get_rate_limit.assert_called_once()
        mock_client.get_user.assert_not_called()

    def test_bad_credentials(self, github_adapter, mock_github):
        """Test connection validation failure."""
        mock_github.return_value.get_user.side_effect = GithubException(
            status=401,
            data={'message': 'Bad credentials'}
        )

        with pytest.raises(AuthenticationError, match="Bad credentials") as exc_info:
            github_adapter.test_connection()

        assert exc_info.value.status_code == 401
        assert isinstance(exc_info.value.__cause__, GithubException)

    def test_rate_limited(self, github_adapter, mock_github):
        """Rate-limit exceptions carry the reset time."""
        mock_github.return_value.get_user.side_effect = RateLimitExceededException(
            status=403,
            data={'message': 'API rate limit exceeded'},
            headers={'x-ratelimit-reset': '1700000000'},
        )

        with pytest.raises(RateLimitError) as exc_info:
            github_adapter.test_connection()

        assert exc_info.value.status_code == 403
        assert exc_info.value.reset_at == 1700000000

    def test_server_error(self, github_adapter, mock_github):
        """Unmapped statuses become a plain APIError."""
        mock_github.return_value.get_user.side_effect = GithubException(
            status=502,
            data={'message': 'Bad gateway'}
        )

        with pytest.raises(APIError) as exc_info:
            github_adapter.test_connection()

        assert type(exc_info.value) is APIError
        assert exc_info.value.status_code == 502

    def test_network_error_passes_through(self, github_adapter, mock_github):
        """Transport failures are not wrapped."""
        mock_github.return_value.get_user.side_effect = requests.ConnectionError("refused")

        with pytest.raises(requests.ConnectionError):
            github_adapter.test_connection()


class TestGitHubPagination:
    """Test listing operations across pages."""

    def test_last_page_from_link_header(self):
        """Test parsing the rel=last entry."""
        headers = github_link_header("/user/repos", next_page=2, last_page=5)
        assert _last_page(headers) == 5

    def test_last_page_missing(self):
        """No Link header or no rel=last reads as 0."""
        assert _last_page({}) == 0
        assert _last_page({"Link": '<https://api.github.com/x?page=1>; rel="prev"'}) == 0

    def test_list_repositories_all_pages(self, github_adapter, mock_github):
        """N pages produce N requests and one merged result."""
        requester = mock_github.return_value.requester
        requester.requestJsonAndCheck.side_effect = [
            (
                github_link_header("/user/repos", 2, 3),
                [
                    {"name": "hello", "owner": {"login": "octocat"}},
                    {"name": "tools", "owner": {"login": "acme"}},
                ],
            ),
            (
                github_link_header("/user/repos", 3, 3),
                [{"name": "spoon", "owner": {"login": "octocat"}}],
            ),
            ({}, [{"name": "infra", "owner": {"login": "acme"}}]),
        ]

        result = github_adapter.list_repositories()

        assert result == {
            "octocat": ["hello", "spoon"],
            "acme": ["tools", "infra"],
        }
        assert requester.requestJsonAndCheck.call_count == 3
        pages = [c.kwargs['parameters']['page'] for c in requester.requestJsonAndCheck.call_args_list]
        assert pages == [1, 2, 3]

    def test_page_failure_discards_results(self, github_adapter, mock_github):
        """A failing page aborts the whole listing."""
        requester = mock_github.return_value.requester
        requester.requestJsonAndCheck.side_effect = [
            (github_link_header("/user/repos", 2, 2), [{"name": "a", "owner": {"login": "o"}}]),
            GithubException(status=500, data={'message': 'boom'}),
        ]

        with pytest.raises(APIError, match="boom"):
            github_adapter.list_repositories()

    def test_list_branches(self, github_adapter, mock_github):
        """Test branch names come back in order."""
        requester = mock_github.return_value.requester
        requester.requestJsonAndCheck.return_value = (
            {},
            [{"name": "main"}, {"name": "develop"}],
        )

        assert github_adapter.list_branches("octocat", "hello") == ["main", "develop"]
        requester.requestJsonAndCheck.assert_called_once_with(
            "GET",
            "/repos/octocat/hello/branches",
            parameters={"page": 1, "per_page": 100},
        )

    def test_list_branches_not_found(self, github_adapter, mock_github):
        """Test missing repository."""
        mock_github.return_value.requester.requestJsonAndCheck.side_effect = GithubException(
            status=404,
            data={'message': 'Not Found'}
        )

        with pytest.raises(NotFoundError):
            github_adapter.list_branches("octocat", "missing")


class TestGitHubDeployKeys:
    """Test deploy key registration."""

    def test_blank_arguments_rejected_before_network(self, github_adapter, mock_github):
        """Every blank argument is reported and nothing is sent."""
        with pytest.raises(ValidationError) as exc_info:
            github_adapter.add_ssh_key_to_repository(
                "", "hello", "  ", "ssh-ed25519 AAAA", Permission.READ_ONLY
            )

        assert exc_info.value.parameters == ["owner", "key name"]
        assert "owner, key name" in str(exc_info.value)
        mock_github.assert_not_called()

    def test_read_only_key(self, github_adapter, mock_repo, mock_github):
        """Test default permission is read-only."""
        github_adapter.add_ssh_key_to_repository(
            "octocat", "hello", "deploy", "ssh-ed25519 AAAA", Permission.READ_ONLY
        )

        mock_github.return_value.get_repo.assert_called_once_with("octocat/hello", lazy=True)
        mock_repo.create_key.assert_called_once_with(
            title="deploy", key="ssh-ed25519 AAAA", read_only=True
        )

    def test_read_write_key(self, github_adapter, mock_repo):
        """Test READ_WRITE allows pushes."""
        github_adapter.add_ssh_key_to_repository(
            "octocat", "hello", "deploy", "ssh-ed25519 AAAA", Permission.READ_WRITE
        )

        mock_repo.create_key.assert_called_once_with(
            title="deploy", key="ssh-ed25519 AAAA", read_only=False
        )


class TestGitHubWebhooks:
    """Test webhook lifecycle."""

    def test_event_mapping(self):
        """Test generic events map to GitHub events."""
        assert _webhook_event(WebhookEvent.PR_CREATED) == "pull_request"
        assert _webhook_event(WebhookEvent.PR_EDITED) == "pull_request"
        assert _webhook_event(WebhookEvent.PUSH) == "push"
        assert _webhook_event(None) == ""

    def test_event_list_deduplicated(self):
        """PR events collapse into one entry, order kept."""
        events = _webhook_events(
            [WebhookEvent.PUSH, WebhookEvent.PR_CREATED, WebhookEvent.PR_EDITED, None]
        )
        assert events == ["push", "pull_request"]

    def test_webhook_round_trip(self, github_adapter, mock_repo):
        """Create, update and delete use the same hook id."""
        mock_repo.create_hook.return_value.id = 42
        hook = mock_repo.get_hook.return_value

        with patch('vcs_bridge.adapters.github.create_token', return_value="s3cr3t"):
            info = github_adapter.create_webhook(
                "octocat", "hello", "main", "https://ci.example.com/hook",
                WebhookEvent.PUSH, WebhookEvent.PR_CREATED,
            )

        assert info == WebhookInfo(id="42", secret="s3cr3t")
        mock_repo.create_hook.assert_called_once_with(
            "web",
            {"url": "https://ci.example.com/hook", "content_type": "json", "secret": "s3cr3t"},
            events=["push", "pull_request"],
            active=True,
        )

        github_adapter.update_webhook(
            "octocat", "hello", "main", "https://ci.example.com/hook2", info.secret, info.id,
            WebhookEvent.PUSH,
        )
        hook.edit.assert_called_once_with(
            "web",
            {"url": "https://ci.example.com/hook2", "content_type": "json", "secret": "s3cr3t"},
            events=["push"],
            active=True,
        )

        github_adapter.delete_webhook("octocat", "hello", info.id)
        hook.delete.assert_called_once()
        assert mock_repo.get_hook.call_args_list == [call(42), call(42)]

    def test_create_webhook_generates_secret(self, github_adapter, mock_repo):
        """Each webhook gets a fresh random secret."""
        mock_repo.create_hook.return_value.id = 1

        first = github_adapter.create_webhook("o", "r", "", "https://x.example.com", WebhookEvent.PUSH)
        second = github_adapter.create_webhook("o", "r", "", "https://x.example.com", WebhookEvent.PUSH)

        assert len(first.secret) == 64
        assert first.secret != second.secret

    def test_create_webhook_requires_payload_url(self, github_adapter, mock_github):
        """Test blank payload URL."""
        with pytest.raises(ValidationError, match="payload url"):
            github_adapter.create_webhook("octocat", "hello", "main", "", WebhookEvent.PUSH)
        mock_github.assert_not_called()

    @pytest.mark.parametrize("webhook_id", ["abc", "12x", "1.5"])
    def test_invalid_webhook_id(self, github_adapter, mock_github, webhook_id):
        """Non-integer ids fail before any request."""
        with pytest.raises(ParseError):
            github_adapter.delete_webhook("octocat", "hello", webhook_id)
        with pytest.raises(ParseError):
            github_adapter.update_webhook(
                "octocat", "hello", "main", "https://x.example.com", "s", webhook_id
            )
        mock_github.assert_not_called()

    def test_delete_missing_webhook(self, github_adapter, mock_repo):
        """Test deleting a hook that does not exist."""
        mock_repo.get_hook.side_effect = UnknownObjectException(404, {'message': 'Not Found'})

        with pytest.raises(NotFoundError):
            github_adapter.delete_webhook("octocat", "hello", "99")


class TestGitHubCommitStatus:
    """Test commit status publishing."""

    @pytest.mark.parametrize("status,expected", [
        (CommitStatus.PASS, "success"),
        (CommitStatus.FAIL, "failure"),
        (CommitStatus.ERROR, "error"),
        (CommitStatus.IN_PROGRESS, "pending"),
    ])
    def test_status_mapping(self, github_adapter, mock_repo, status, expected):
        """Every generic status maps to a GitHub state."""
        github_adapter.set_commit_status(
            status, "octocat", "hello", "7fd1a60", "ci/build", "Build", "https://ci.example.com/1"
        )

        mock_repo.get_commit.assert_called_once_with("7fd1a60")
        mock_repo.get_commit.return_value.create_status.assert_called_once_with(
            expected,
            target_url="https://ci.example.com/1",
            description="Build",
            context="ci/build",
        )

    def test_unknown_status_maps_to_empty(self):
        """Unmapped values give an empty string."""
        assert _commit_state(None) == ""

    def test_empty_details_url_omitted(self, github_adapter, mock_repo):
        """Optional fields are not sent empty."""
        github_adapter.set_commit_status(
            CommitStatus.PASS, "octocat", "hello", "7fd1a60", "ci/build", "", ""
        )

        mock_repo.get_commit.return_value.create_status.assert_called_once_with(
            "success", context="ci/build"
        )

    def test_blank_ref(self, github_adapter, mock_github):
        """Test blank ref is rejected."""
        with pytest.raises(ValidationError, match="ref"):
            github_adapter.set_commit_status(CommitStatus.PASS, "o", "r", " ", "t", "d", "u")
        mock_github.assert_not_called()


class TestGitHubDownload:
    """Test repository archive download."""

    def test_download_extracts_archive(self, github_adapter, mock_repo, sample_tarball, tmp_path):
        """Files land below local_path without the top directory."""
        mock_repo.get_archive_link.return_value = "https://codeload.github.com/octocat/hello/tar.gz/main"
        response = make_stream_response(sample_tarball)

        with patch('vcs_bridge.adapters.github.requests.get', return_value=response) as mock_get:
            github_adapter.download_repository("octocat", "hello", "main", str(tmp_path))

        mock_repo.get_archive_link.assert_called_once_with("tarball", ref="main")
        assert mock_get.call_args.args[0] == "https://codeload.github.com/octocat/hello/tar.gz/main"
        assert mock_get.call_args.kwargs['stream'] is True
        assert (tmp_path / "README.md").read_text() == "# hello\n"
        assert (tmp_path / "src" / "app.py").exists()
        assert (tmp_path / "docs" / "guide" / "index.md").exists()
        assert not any(p.name.startswith("octocat-hello") for p in tmp_path.iterdir())
        response.close.assert_called_once()

    def test_download_http_error(self, github_adapter, mock_repo, tmp_path):
        """HTTP failures are translated and the response is closed."""
        mock_repo.get_archive_link.return_value = "https://codeload.github.com/x"
        response = make_stream_response(b"")
        response.raise_for_status.side_effect = requests.HTTPError(
            "404 Client Error", response=Mock(status_code=404)
        )

        with patch('vcs_bridge.adapters.github.requests.get', return_value=response):
            with pytest.raises(NotFoundError):
                github_adapter.download_repository("octocat", "hello", "main", str(tmp_path))

        response.close.assert_called_once()

    def test_download_cancelled_mid_stream(self, github_adapter, mock_repo, sample_tarball, tmp_path):
        """Reads stop once the context is cancelled."""
        mock_repo.get_archive_link.return_value = "https://codeload.github.com/x"
        response = make_stream_response(sample_tarball)
        ctx = Context()

        def cancel_then_get(*args, **kwargs):
            ctx.cancel()
            return response

        with patch('vcs_bridge.adapters.github.requests.get', side_effect=cancel_then_get):
            with pytest.raises(OperationCancelledError):
                github_adapter.download_repository("octocat", "hello", "main", str(tmp_path), ctx=ctx)

        response.close.assert_called_once()

    def test_blank_local_path(self, github_adapter, mock_github):
        """Test blank destination is rejected."""
        with pytest.raises(ValidationError, match="local path"):
            github_adapter.download_repository("octocat", "hello", "main", "")
        mock_github.assert_not_called()


class TestGitHubPullRequests:
    """Test pull request creation."""

    def test_create_pull_request(self, github_adapter, mock_repo):
        """The head branch is qualified with the owner."""
        github_adapter.create_pull_request(
            "octocat", "hello", "feature", "main", "Add feature", "Details"
        )

        mock_repo.create_pull.assert_called_once_with(
            base="main", head="octocat:feature", title="Add feature", body="Details"
        )

    def test_blank_branches(self, github_adapter):
        """Test both branches are reported."""
        with pytest.raises(ValidationError) as exc_info:
            github_adapter.create_pull_request("octocat", "hello", "", "", "T", "D")

        assert exc_info.value.parameters == ["source branch", "target branch"]


class TestGitHubCommits:
    """Test commit lookups."""

    def test_latest_commit(self, github_adapter, mock_repo):
        """Test the newest commit is mapped."""
        mock_repo.get_commits.return_value.get_page.return_value = [_create_mock_commit()]

        commit = github_adapter.get_latest_commit("octocat", "hello", "main")

        mock_repo.get_commits.assert_called_once_with(sha="main")
        assert commit == CommitInfo(
            hash="7fd1a60b01f91b314f59955a4e4d4e80d8edf11d",
            author_name="Alice",
            committer_name="Bob",
            url="https://api.github.com/repos/octocat/hello/commits/7fd1a60b",
            timestamp=1704164645,
            message="Fix bug\n\nLonger description",
            parent_hashes=("553c2077f0edc3d5dc5d17262f6aa498e69d6f8e",),
        )

    def test_latest_commit_empty_branch(self, github_adapter, mock_repo):
        """An empty branch returns an empty CommitInfo."""
        mock_repo.get_commits.return_value.get_page.return_value = []

        commit = github_adapter.get_latest_commit("octocat", "hello", "empty")

        assert commit == CommitInfo()
        assert commit.is_empty

    def test_commit_by_sha(self, github_adapter, mock_repo):
        """Test fetching one commit."""
        mock_repo.get_commit.return_value = _create_mock_commit()

        commit = github_adapter.get_commit_by_sha("octocat", "hello", "7fd1a60b")

        mock_repo.get_commit.assert_called_once_with("7fd1a60b")
        assert commit.author_name == "Alice"
        assert commit.parent_hashes == ("553c2077f0edc3d5dc5d17262f6aa498e69d6f8e",)

    def test_commit_by_sha_not_found(self, github_adapter, mock_repo):
        """Test unknown sha."""
        mock_repo.get_commit.side_effect = UnknownObjectException(404, {'message': 'No commit found'})

        with pytest.raises(NotFoundError, match="No commit found"):
            github_adapter.get_commit_by_sha("octocat", "hello", "deadbeef")

    def test_repository_info(self, github_adapter, mock_github):
        """Only clone URLs are exposed."""
        repo = mock_github.return_value.get_repo.return_value
        repo.clone_url = "https://github.com/octocat/hello.git"
        repo.ssh_url = "git@github.com:octocat/hello.git"

        info = github_adapter.get_repository_info("octocat", "hello")

        mock_github.return_value.get_repo.assert_called_once_with("octocat/hello")
        assert info.clone_info.http == "https://github.com/octocat/hello.git"
        assert info.clone_info.ssh == "git@github.com:octocat/hello.git"


OPERATIONS = [
    ("test_connection", lambda a, ctx: a.test_connection(ctx=ctx)),
    ("list_repositories", lambda a, ctx: a.list_repositories(ctx=ctx)),
    ("list_branches", lambda a, ctx: a.list_branches("o", "r", ctx=ctx)),
    ("add_ssh_key_to_repository", lambda a, ctx: a.add_ssh_key_to_repository(
        "o", "r", "k", "ssh-ed25519 AAAA", Permission.READ_ONLY, ctx=ctx)),
    ("create_webhook", lambda a, ctx: a.create_webhook(
        "o", "r", "main", "https://x.example.com", WebhookEvent.PUSH, ctx=ctx)),
    ("update_webhook", lambda a, ctx: a.update_webhook(
        "o", "r", "main", "https://x.example.com", "s", "1", WebhookEvent.PUSH, ctx=ctx)),
    ("delete_webhook", lambda a, ctx: a.delete_webhook("o", "r", "1", ctx=ctx)),
    ("set_commit_status", lambda a, ctx: a.set_commit_status(
        CommitStatus.PASS, "o", "r", "abc", "t", "d", "u", ctx=ctx)),
    ("download_repository", lambda a, ctx: a.download_repository("o", "r", "main", "/tmp/x", ctx=ctx)),
    ("create_pull_request", lambda a, ctx: a.create_pull_request("o", "r", "f", "main", "t", "d", ctx=ctx)),
    ("get_latest_commit", lambda a, ctx: a.get_latest_commit("o", "r", "main", ctx=ctx)),
    ("get_repository_info", lambda a, ctx: a.get_repository_info("o", "r", ctx=ctx)),
    ("get_commit_by_sha", lambda a, ctx: a.get_commit_by_sha("o", "r", "abc", ctx=ctx)),
]


class TestGitHubCancellation:
    """Test every operation honours the context."""

    @pytest.mark.parametrize("name,operation", OPERATIONS, ids=[o[0] for o in OPERATIONS])
    def test_cancelled_context(self, github_adapter, mock_github, cancelled_context, name, operation):
        """A cancelled context fails without touching the SDK."""
        with pytest.raises(OperationCancelledError, match="stopped by test"):
            operation(github_adapter, cancelled_context)
        mock_github.assert_not_called()

    @pytest.mark.parametrize("name,operation", OPERATIONS, ids=[o[0] for o in OPERATIONS])
    def test_expired_deadline(self, github_adapter, mock_github, name, operation):
        """An expired deadline fails the same way."""
        with pytest.raises(DeadlineExceededError):
            operation(github_adapter, Context(timeout=0))
        mock_github.assert_not_called()

    def test_cancel_between_pages(self, github_adapter, mock_github):
        """Cancelling during a listing stops before the next page."""
        ctx = Context()
        requester = mock_github.return_value.requester

        def first_page(*args, **kwargs):
            ctx.cancel()
            return github_link_header("/user/repos", 2, 2), [{"name": "a", "owner": {"login": "o"}}]

        requester.requestJsonAndCheck.side_effect = first_page

        with pytest.raises(OperationCancelledError):
            github_adapter.list_repositories(ctx=ctx)
        assert requester.requestJsonAndCheck.call_count == 1
