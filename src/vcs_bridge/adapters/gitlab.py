"""
GitLab adapter.
"""
from typing import Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from gitlab import Gitlab
from gitlab.exceptions import GitlabError

from vcs_bridge.core.context import Context
from vcs_bridge.core.exceptions import APIError, error_for_status
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
from .pagination import collect_one_indexed

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://gitlab.com"
API_SUFFIX = "/api/v4"
PAGE_SIZE = 100

_COMMIT_STATES = {
    CommitStatus.PASS: "success",
    CommitStatus.FAIL: "failed",
    CommitStatus.ERROR: "failed",
    CommitStatus.IN_PROGRESS: "running",
}

_WEBHOOK_EVENTS = {
    WebhookEvent.PR_CREATED: "merge_requests_events",
    WebhookEvent.PR_EDITED: "merge_requests_events",
    WebhookEvent.PUSH: "push_events",
}


def _commit_state(status: CommitStatus) -> str:
    """Map a generic status to GitLab's build state; unknown values give ""."""
    return _COMMIT_STATES.get(status, "")


def _webhook_flag(event: WebhookEvent) -> str:
    """Map a generic event to the GitLab hook flag; unknown values give ""."""
    return _WEBHOOK_EVENTS.get(event, "")


def _hook_data(
    branch: str,
    payload_url: str,
    secret: str,
    events: Iterable[WebhookEvent]
) -> Dict[str, Union[str, bool]]:
    """Project hook attributes for the given events."""
    data: Dict[str, Union[str, bool]] = {
        "url": payload_url,
        "token": secret,
        "merge_requests_events": False,
        "push_events": False,
        "push_events_branch_filter": "",
    }
    for event in events:
        flag = _webhook_flag(event)
        if not flag:
            continue
        data[flag] = True
        if flag == "push_events":
            data["push_events_branch_filter"] = branch
    return data


def _project_id(owner: str, repository: str) -> str:
    return f"{owner}/{repository}"


def _encode(path: str) -> str:
    """URL-encode a namespaced path for use as a single path segment."""
    return quote(path, safe="")


def _total_pages(headers, page: int) -> int:
    """
    Read the page total from GitLab's pagination headers.

    GitLab leaves out X-Total-Pages for very large collections; X-Next-Page
    still tells whether another page follows.
    """
    total = headers.get("X-Total-Pages")
    if total and str(total).isdigit():
        return int(total)
    return page + 1 if headers.get("X-Next-Page") else page


def _map_commit(commit) -> CommitInfo:
    """Convert a python-gitlab commit object to CommitInfo."""
    return CommitInfo(
        hash=commit.id or "",
        author_name=commit.author_name or "",
        committer_name=commit.committer_name or "",
        url=commit.web_url or "",
        timestamp=to_unix_timestamp(commit.committed_date),
        message=commit.message or "",
        parent_hashes=tuple(commit.parent_ids or ()),
    )


class GitLabAdapter(BaseAdapter):
    """
    GitLab-specific adapter implementation.

    Uses python-gitlab. Projects are addressed by their "owner/repository"
    path; listings go through ``Gitlab.http_get`` so the pagination headers
    can be read.
    """

    def __init__(self, config: AdapterConfig):
        """
        Initialize GitLab adapter.

        Args:
            config: Adapter configuration; an empty endpoint means gitlab.com.
                A trailing /api/v4 is accepted and removed.
        """
        super().__init__(config)
        url = (config.vcs_info.api_endpoint or DEFAULT_BASE_URL).rstrip("/")
        if url.endswith(API_SUFFIX):
            url = url[:-len(API_SUFFIX)]
        self.url = url
        logger.debug(f"GitLabAdapter ready for {self.url}")

    def _build_client(self, ctx: Context) -> Gitlab:
        return Gitlab(
            self.url,
            private_token=self.config.vcs_info.token or None,
            timeout=ctx.request_timeout(self.config.timeout),
            ssl_verify=self.config.verify_ssl,
        )

    def _api_error(self, e: GitlabError, action: str) -> APIError:
        """Translate a python-gitlab exception, keeping status and message."""
        status = e.response_code
        message = e.error_message or str(e)
        logger.error(f"GitLab API error ({status}) while trying to {action}: {message}")
        return error_for_status(status)(f"Failed to {action}: {message}", status_code=status)

    def _paginate(self, client: Gitlab, path: str, ctx: Context) -> List[dict]:
        def fetch_page(page: int):
            response = client.http_get(
                path,
                query_data={"page": page, "per_page": PAGE_SIZE},
                raw=True,
            )
            return response.json() or [], _total_pages(response.headers, page)

        return collect_one_indexed(fetch_page, ctx)

    def test_connection(self, *, ctx: Optional[Context] = None) -> bool:
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        try:
            client.projects.list(page=1, per_page=1)
            logger.info(f"Successfully connected to {self.url}")
            return True
        except GitlabError as e:
            raise self._api_error(e, "validate GitLab connection") from e

    def list_repositories(self, *, ctx: Optional[Context] = None) -> Dict[str, List[str]]:
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        results: Dict[str, List[str]] = {}
        try:
            logger.info("Listing projects of every visible group")
            groups = self._paginate(client, "/groups", ctx)
            for group in groups:
                full_path = group["full_path"]
                projects = self._paginate(
                    client, f"/groups/{_encode(full_path)}/projects", ctx
                )
                for project in projects:
                    results.setdefault(full_path, []).append(project["path"])
        except GitlabError as e:
            raise self._api_error(e, "list repositories") from e

        logger.info(f"Found projects in {len(results)} of {len(groups)} groups")
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
        project_id = _project_id(owner, repository)
        try:
            logger.debug(f"Listing branches of {project_id}")
            branches = self._paginate(
                client, f"/projects/{_encode(project_id)}/repository/branches", ctx
            )
        except GitlabError as e:
            raise self._api_error(e, f"list branches of {project_id}") from e
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
        project_id = _project_id(owner, repository)
        can_push = permission == Permission.READ_WRITE
        try:
            logger.info(f"Adding deploy key '{key_name}' to {project_id} (can_push={can_push})")
            project = client.projects.get(project_id, lazy=True)
            project.keys.create({"title": key_name, "key": public_key, "can_push": can_push})
        except GitlabError as e:
            raise self._api_error(e, f"add deploy key to {project_id}") from e

    def create_webhook(
        self,
        owner: str,
        repository: str,
        branch: str,
        payload_url: str,
        *events: WebhookEvent,
        ctx: Optional[Context] = None
    ) -> WebhookInfo:
        self.validate_not_blank(owner=owner, repository=repository, payload_url=payload_url)
        ctx = self._begin(ctx)
        client = self._build_client(ctx)
        project_id = _project_id(owner, repository)
        secret = create_token()
        try:
            logger.info(f"Creating webhook on {project_id} for {payload_url}")
            project = client.projects.get(project_id, lazy=True)
            hook = project.hooks.create(_hook_data(branch, payload_url, secret, events))
        except GitlabError as e:
            raise self._api_error(e, f"create webhook on {project_id}") from e

        logger.info(f"Webhook {hook.id} created on {project_id}")
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
        project_id = _project_id(owner, repository)
        try:
            logger.info(f"Updating webhook {hook_id} on {project_id}")
            project = client.projects.get(project_id, lazy=True)
            project.hooks.update(hook_id, _hook_data(branch, payload_url, secret, events))
        except GitlabError as e:
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
        project_id = _project_id(owner, repository)
        try:
            logger.info(f"Deleting webhook {hook_id} from {project_id}")
            project = client.projects.get(project_id, lazy=True)
            project.hooks.delete(hook_id)
        except GitlabError as e:
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
        project_id = _project_id(owner, repository)

        state = _commit_state(status)
        data = {"state": state}
        if title:
            data["name"] = title
        if description:
            data["description"] = description
        if details_url:
            data["target_url"] = details_url

        try:
            logger.info(f"Setting status '{state}' on {project_id}@{ref}")
            project = client.projects.get(project_id, lazy=True)
            project.commits.get(ref, lazy=True).statuses.create(data)
        except GitlabError as e:
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
        project_id = _project_id(owner, repository)
        query = {"sha": branch} if branch else {}
        try:
            logger.info(f"Downloading {project_id}@{branch or 'default'} into {local_path}")
            response = client.http_get(
                f"/projects/{_encode(project_id)}/repository/archive.tar.gz",
                query_data=query,
                streamed=True,
                raw=True,
            )
        except GitlabError as e:
            raise self._api_error(e, f"download {project_id}") from e

        try:
            extract_tarball(CancellableReader(response.raw, ctx), local_path)
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
        project_id = _project_id(owner, repository)
        try:
            logger.info(f"Opening merge request {source_branch} -> {target_branch} on {project_id}")
            project = client.projects.get(project_id, lazy=True)
            project.mergerequests.create({
                "source_branch": source_branch,
                "target_branch": target_branch,
                "title": title,
                "description": description,
            })
        except GitlabError as e:
            raise self._api_error(e, f"create merge request on {project_id}") from e

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
        project_id = _project_id(owner, repository)
        try:
            logger.debug(f"Fetching latest commit of {project_id}@{branch}")
            project = client.projects.get(project_id, lazy=True)
            commits = project.commits.list(ref_name=branch, page=1, per_page=1)
        except GitlabError as e:
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
        project_id = _project_id(owner, repository)
        try:
            logger.debug(f"Fetching repository info for {project_id}")
            project = client.projects.get(project_id)
            return RepositoryInfo(
                clone_info=CloneInfo(
                    http=project.http_url_to_repo or "",
                    ssh=project.ssh_url_to_repo or "",
                )
            )
        except GitlabError as e:
            raise self._api_error(e, f"fetch repository info of {project_id}") from e

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
        project_id = _project_id(owner, repository)
        try:
            logger.debug(f"Fetching commit {sha} of {project_id}")
            project = client.projects.get(project_id, lazy=True)
            return _map_commit(project.commits.get(sha))
        except GitlabError as e:
            raise self._api_error(e, f"fetch commit {sha}") from e
