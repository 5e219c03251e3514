"""
Utility functions for testing.
"""

import io
import tarfile
from typing import Dict, List, Optional
from unittest.mock import Mock


def make_tarball(
    files: Dict[str, str],
    top: str = "octocat-hello-world-7fd1a60",
    links: Optional[Dict[str, str]] = None,
    compress: bool = True
) -> bytes:
    """
    Build an in-memory tar archive wrapped in one top-level directory.

    Args:
        files: Mapping of relative path to text content
        top: Name of the wrapping directory; empty for none
        links: Mapping of relative symlink path to link target
        compress: gzip the archive

    Returns:
        Archive bytes
    """
    def full(name: str) -> str:
        return f"{top}/{name}" if top else name

    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz" if compress else "w") as archive:
        if top:
            info = tarfile.TarInfo(top)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            archive.addfile(info)

        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(full(name))
            info.size = len(data)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))

        for name, target in (links or {}).items():
            info = tarfile.TarInfo(full(name))
            info.type = tarfile.SYMTYPE
            info.linkname = target
            archive.addfile(info)

    return buffer.getvalue()


def make_stream_response(body: bytes) -> Mock:
    """A requests-like response whose raw stream serves body."""
    response = Mock()
    response.raw = io.BytesIO(body)
    response.raise_for_status.return_value = None
    return response


def make_gitlab_page(
    items: List[dict],
    total_pages: Optional[int] = None,
    next_page: str = ""
) -> Mock:
    """A raw GitLab list response with pagination headers."""
    response = Mock()
    response.json.return_value = items
    headers = {"X-Next-Page": next_page}
    if total_pages is not None:
        headers["X-Total-Pages"] = str(total_pages)
    response.headers = headers
    return response


def github_link_header(path: str, next_page: int, last_page: int) -> Dict[str, str]:
    """Headers of a GitHub list page that has a next and a last page."""
    base = f"https://api.github.com{path}"
    return {
        "link": (
            f'<{base}?page={next_page}&per_page=100>; rel="next", '
            f'<{base}?page={last_page}&per_page=100>; rel="last"'
        )
    }


def assert_contains_all(container: List, items: List) -> None:
    """
    Assert that container contains all items.

    Args:
        container: List to check
        items: Items that should be in container
    """
    for item in items:
        assert item in container, f"{item} not found in {container}"
