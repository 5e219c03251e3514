"""
Streaming extraction of repository archives.

Hosting platforms wrap the repository in a single top-level directory
(``owner-repo-sha/`` on GitHub, ``repo-branch-sha/`` on GitLab). The helpers
here read the tarball as a stream, drop that first path component and write
everything else below the destination directory.
"""
import os
import shutil
import tarfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, List, Optional

from vcs_bridge.core.context import Context
from vcs_bridge.core.exceptions import ArchiveError
from vcs_bridge.utils.logger import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class CancellableReader:
    """File-like wrapper that checks a context before every read."""

    def __init__(self, fileobj: BinaryIO, ctx: Context):
        self._fileobj = fileobj
        self._ctx = ctx

    def read(self, size: int = -1) -> bytes:
        self._ctx.check()
        return self._fileobj.read(size)


def _strip_components(name: str, count: int) -> Optional[PurePosixPath]:
    parts = [p for p in PurePosixPath(name).parts if p not in ("", ".")]
    if len(parts) <= count:
        return None
    return PurePosixPath(*parts[count:])


def _safe_target(root: Path, relative: PurePosixPath) -> Path:
    if relative.is_absolute() or ".." in relative.parts:
        raise ArchiveError(f"Refusing to extract unsafe path: {relative}")
    target = (root / Path(*relative.parts)).resolve()
    if target != root and root not in target.parents:
        raise ArchiveError(f"Refusing to extract outside destination: {relative}")
    return target


def extract_tarball(
    fileobj: BinaryIO,
    local_path: str,
    strip_components: int = 1
) -> List[str]:
    """
    Extract a (possibly compressed) tar stream into a directory.

    Args:
        fileobj: Readable binary stream positioned at the archive start
        local_path: Destination directory, created if missing
        strip_components: Number of leading path components to drop

    Returns:
        Relative paths of the regular files written, in archive order

    Raises:
        ArchiveError: If the stream is not a tar archive or contains
            entries that would land outside local_path
    """
    root = Path(local_path).resolve()
    root.mkdir(parents=True, exist_ok=True)
    written = []

    try:
        with tarfile.open(fileobj=fileobj, mode="r|*") as archive:
            for member in archive:
                relative = _strip_components(member.name, strip_components)
                if relative is None:
                    continue

                target = _safe_target(root, relative)

                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = archive.extractfile(member)
                    with open(target, "wb") as out:
                        shutil.copyfileobj(source, out, CHUNK_SIZE)
                    os.chmod(target, (member.mode & 0o777) or 0o644)
                    written.append(relative.as_posix())
                elif member.issym():
                    link = PurePosixPath(member.linkname)
                    if link.is_absolute() or ".." in link.parts:
                        logger.warning(f"Skipping symlink leaving the archive: {relative} -> {link}")
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    if not target.exists():
                        os.symlink(member.linkname, target)
                else:
                    logger.debug(f"Skipping unsupported archive entry: {member.name}")
    except tarfile.TarError as e:
        raise ArchiveError(f"Failed to read archive: {e}") from e

    logger.debug(f"Extracted {len(written)} files into {root}")
    return written
