"""
GitHub adapter.
"""
import math
from typing import Dict, Iterable, List, Mapping, Optional
from urllib.parse import parse_qs, quote, urlparse

import requests
from requests.utils import parse_header_links
from github import Auth, Github, GithubException, RateLimitExceededException
from github.Commit import Commit as GHCommit

from vcs_bridge.core.context import Context
from vcs_bridge.core.exceptions import APIError, RateLimitError, error_for_status
from vcs_bridge.core.helpers import parse_webhook_id, to_unix_timestamp
from vcs_bridge.core.models import (
    CloneInfo,
    CommitInfo,
    CommitStatus,
    Permission,
    RepositoryInfo,
    WebhookEvent,
    WebhookInfo,
)
from vcs_bridge.utils import get_logger, create_token
from vcs_bridge.utils.archive import CancellableReader, extract_tarball
from .base import BaseAdapter, AdapterConfig
from .pagination import collect_zero_indexed

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
PAGE_SIZE = 100

_COMMIT_STATES = {
    CommitStatus.PASS: "success",
    CommitStatus.FAIL: "failure",
    CommitStatus.ERROR: "error",
    CommitStatus.IN_PROGRESS: "pending",
}

_WEBHOOK_EVENTS = {
    WebhookEvent.PR_CREATED: "pull_request",
    WebhookEvent.PR_EDITED: "pull_request",
    WebhookEvent.PUSH: "push",
}


def _commit_state(status: CommitStatus) -> str:
    """Map a generic status to GitHub's state; unknown values give ""."""
    return _COMMIT_STATES.get(status, "")


def _webhook_event(event: WebhookEvent) -> str:
    """Map a generic event to GitHub's event name; unknown values give ""."""
    return _WEBHOOK_EVENTS.get(event, "")


def _webhook_events(events: Iterable[WebhookEvent]) -> List[str]:
    """GitHub event list for the hook, without blanks or duplicates."""
    names = []
    for event in events:
        name = _webhook_event(event)
        if name and name not in names:
            names.append(name)
    return names


def _hook_config(payload_url: str, secret: str) -> Dict[str, str]:
    return {
        "url": payload_url,
        "content_type": "json",
        "secret": secret,
    }


def _last_page(headers: Mapping[str, str]) -> int:
    """
    Read the last page number from a GitHub Link header.

    GitHub omits rel="last" on the final page; that reads as 0.
    """
    link = next((v for k, v in headers.items() if k.lower() == "link"), "")
    if not link:
        return 0
    for entry in parse_header_links(link):
        if entry.get("rel") == "last":
            page = parse_qs(urlparse(entry.get("url", "")).query).get("page")
            if page and page[0].isdigit():
                return int(page[0])
    return 0


def _map_commit(commit: GHCommit) -> CommitInfo:
    """Convert a PyGithub commit to CommitInfo."""
    details = commit.commit
    author = details.author
    committer = details.committer
    return CommitInfo(
        hash=commit.sha or "",
        author_name=(author.name if author else "") or "",
        committer_name=(committer.name if committer else "") or "",
        url=commit.url or "",
        timestamp=to_unix_timestamp(committer.date if committer else None),
        message=details.message or "",
        parent_hashes=tuple(parent.sha for parent in (commit.parents or [])),
    )


class GitHubAdapter(BaseAdapter):
    """
    GitHub-specific adapter implementation.

    Uses PyGithub for REST calls. A client is built per operation so the
    request timeout follows the caller's context. Listing endpoints go
    through the PyGithub requester to read the Link header directly.
    """

    def __init__(self, config: AdapterConfig):
        """
        Initialize GitHub adapter.

        Args:
            config: Adapter configuration; an empty endpoint means github.com
        """
        super().__init__(config)
        self.api_url = (config.vcs_info.api_endpoint or DEFAULT_BASE_URL).rstrip("/")
        logger.debug(f"GitHubAdapter ready for {self.api_url}")

    def _build_client(self, ctx: Context) -> Github:
        # PyGithub only takes whole seconds
        timeout = max(1, int(math.ceil(ctx.request_timeout(self.config.timeout))))
        token = self.config.vcs_info.token
        return Github(
            auth=Auth.Token(token) if token else None,
            base_url=self.api_url,
            timeout=timeout,
            verify=self.config.verify_ssl,
        )

    def _api_error(self, e: GithubException, action: str) -> APIError:
        """Translate a PyGithub exception, keeping status and message."""
        data = e.data if isinstance(e.data, dict) else {}
        message = data.get("message") or str(e)
        text = f"Failed to {action}: {message}"
        logger.error(f"GitHub API error ({e.status}) while trying to {action}: {message}")

        if isinstance(e, RateLimitExceededException) or e.status == 429:
            headers = getattr(e, "headers", None) or {}
            reset = headers.get("x-ratelimit-reset")
            return RateLimitError(
                text,
                status_code=e.status,
                reset_at=int(reset) if reset and str(reset).isdigit() else None,
            )
        return error_for_status(e.status)(text, status_code=e.status)

    def _paginate(self, client: Github, path: str, ctx: Context) -> List[dict]:
        def fetch_page(page: int):
            headers, data = client.requester.requestJsonAndCheck(
                "GET",
                path,
                parameters={"page": page + 1, "per_page": PAGE_SIZE},
            )
            return data or [], _last_page(headers or {})

        return collect_zero_indexed(fetch_page, ctx)

    @staticmethod
    def _full_name(owner: str, repository: str) -> str:
        return f"{owner}/{repository}"

    def test_connection(self, *, ctx: Optional[Context] = None) -> bool:
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            if self.config.vcs_info.token:
                login = client.get_user().login
                logger.info(f"Successfully authenticated as: {login}")
            else:
                client.get_rate_limit()
                logger.info(f"Connected anonymously to {self.api_url}")
            return True
        except GithubException as e:
            raise self._api_error(e, "validate GitHub connection") from e

    def list_repositories(self, *, ctx: Optional[Context] = None) -> Dict[str, List[str]]:
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            logger.info("Listing repositories of the authenticated user")
            repos = self._paginate(client, "/user/repos", ctx)
        except GithubException as e:
            raise self._api_error(e, "list repositories") from e

        results: Dict[str, List[str]] = {}
        for repo in repos:
            results.setdefault(repo["owner"]["login"], []).append(repo["name"])
        logger.info(f"Found {len(repos)} repositories across {len(results)} owners")
        return results

    def list_branches(
        self,
        owner: str,
        repository: str,
        *,
        ctx: Optional[Context] = None
    ) -> List[str]:
        self.validate_not_blank(owner=owner, repository=repository)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        path = f"/repos/{quote(owner, safe='')}/{quote(repository, safe='')}/branches"
        try:
            logger.debug(f"Listing branches of {owner}/{repository}")
            branches = self._paginate(client, path, ctx)
        except GithubException as e:
            raise self._api_error(e, f"list branches of {owner}/{repository}") from e
        return [branch["name"] for branch in branches]

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
        self.validate_not_blank(
            owner=owner,
            repository=repository,
            key_name=key_name,
            public_key=public_key,
        )
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        read_only = permission != Permission.READ_WRITE
        try:
            logger.info(f"Adding deploy key '{key_name}' to {owner}/{repository} (read_only={read_only})")
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            repo.create_key(title=key_name, key=public_key, read_only=read_only)
        except GithubException as e:
            raise self._api_error(e, f"add deploy key to {owner}/{repository}") from e

    def create_webhook(
        self,
        owner: str,
        repository: str,
        branch: str,
        payload_url: str,
        *events: WebhookEvent,
        ctx: Optional[Context] = None
    ) -> WebhookInfo:
        # GitHub has no server-side branch filter; branch is unused here
        self.validate_not_blank(owner=owner, repository=repository, payload_url=payload_url)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        secret = create_token()
        try:
            logger.info(f"Creating webhook on {owner}/{repository} for {payload_url}")
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            hook = repo.create_hook(
                "web",
                _hook_config(payload_url, secret),
                events=_webhook_events(events),
                active=True,
            )
        except GithubException as e:
            raise self._api_error(e, f"create webhook on {owner}/{repository}") from e

        logger.info(f"Webhook {hook.id} created on {owner}/{repository}")
        return WebhookInfo(id=str(hook.id), secret=secret)

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
        self.validate_not_blank(
            owner=owner,
            repository=repository,
            payload_url=payload_url,
            webhook_id=webhook_id,
        )
        hook_id = parse_webhook_id(webhook_id)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            logger.info(f"Updating webhook {hook_id} on {owner}/{repository}")
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            hook = repo.get_hook(hook_id)
            ctx.check()
            hook.edit(
                "web",
                _hook_config(payload_url, secret),
                events=_webhook_events(events),
                active=True,
            )
        except GithubException as e:
            raise self._api_error(e, f"update webhook {webhook_id}") from e

    def delete_webhook(
        self,
        owner: str,
        repository: str,
        webhook_id: str,
        *,
        ctx: Optional[Context] = None
    ) -> None:
        self.validate_not_blank(owner=owner, repository=repository, webhook_id=webhook_id)
        hook_id = parse_webhook_id(webhook_id)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            logger.info(f"Deleting webhook {hook_id} from {owner}/{repository}")
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            hook = repo.get_hook(hook_id)
            ctx.check()
            hook.delete()
        except GithubException as e:
            raise self._api_error(e, f"delete webhook {webhook_id}") from e

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
        self.validate_not_blank(owner=owner, repository=repository, ref=ref)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)

        # Optional fields are left out rather than sent empty
        options = {}
        if details_url:
            options["target_url"] = details_url
        if description:
            options["description"] = description
        if title:
            options["context"] = title

        state = _commit_state(status)
        try:
            logger.info(f"Setting status '{state}' on {owner}/{repository}@{ref}")
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            commit = repo.get_commit(ref)
            ctx.check()
            commit.create_status(state, **options)
        except GithubException as e:
            raise self._api_error(e, f"set commit status on {ref}") from e

    def download_repository(
        self,
        owner: str,
        repository: str,
        branch: str,
        local_path: str,
        *,
        ctx: Optional[Context] = None
    ) -> None:
        self.validate_not_blank(owner=owner, repository=repository, local_path=local_path)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            if branch:
                archive_url = repo.get_archive_link("tarball", ref=branch)
            else:
                archive_url = repo.get_archive_link("tarball")
        except GithubException as e:
            raise self._api_error(e, f"get archive link of {owner}/{repository}") from e

        logger.info(f"Downloading {owner}/{repository}@{branch or 'default'} into {local_path}")
        response = requests.get(
            archive_url,
            headers={"Accept": "application/vnd.github.v3+json"},
            stream=True,
            timeout=ctx.request_timeout(self.config.timeout),
            verify=self.config.verify_ssl,
        )
        try:
            response.raise_for_status()
            extract_tarball(CancellableReader(response.raw, ctx), local_path)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise error_for_status(status)(
                f"Failed to download {owner}/{repository}: {e}",
                status_code=status,
            ) from e
        finally:
            response.close()

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
        self.validate_not_blank(
            owner=owner,
            repository=repository,
            source_branch=source_branch,
            target_branch=target_branch,
        )
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        head = f"{owner}:{source_branch}"
        try:
            logger.info(f"Opening pull request {head} -> {target_branch} on {owner}/{repository}")
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            repo.create_pull(base=target_branch, head=head, title=title, body=description)
        except GithubException as e:
            raise self._api_error(e, f"create pull request on {owner}/{repository}") from e

    def get_latest_commit(
        self,
        owner: str,
        repository: str,
        branch: str,
        *,
        ctx: Optional[Context] = None
    ) -> CommitInfo:
        self.validate_not_blank(owner=owner, repository=repository, branch=branch)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            logger.debug(f"Fetching latest commit of {owner}/{repository}@{branch}")
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            commits = repo.get_commits(sha=branch).get_page(0)
        except GithubException as e:
            raise self._api_error(e, f"get latest commit of {branch}") from e

        if not commits:
            return CommitInfo()
        return _map_commit(commits[0])

    def get_repository_info(
        self,
        owner: str,
        repository: str,
        *,
        ctx: Optional[Context] = None
    ) -> RepositoryInfo:
        self.validate_not_blank(owner=owner, repository=repository)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            logger.debug(f"Fetching repository info for {owner}/{repository}")
            repo = client.get_repo(self._full_name(owner, repository))
            return RepositoryInfo(
                clone_info=CloneInfo(http=repo.clone_url or "", ssh=repo.ssh_url or "")
            )
        except GithubException as e:
            raise self._api_error(e, f"fetch repository info of {owner}/{repository}") from e

    def get_commit_by_sha(
        self,
        owner: str,
        repository: str,
        sha: str,
        *,
        ctx: Optional[Context] = None
    ) -> CommitInfo:
        self.validate_not_blank(owner=owner, repository=repository, sha=sha)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            logger.debug(f"Fetching commit {sha} of {owner}/{repository}")
            repo = client.get_repo(self._full_name(owner, repository), lazy=True)
            return _map_commit(repo.get_commit(sha))
        except GithubException as e:
            raise self._api_error(e, f"fetch commit {sha}") from e
