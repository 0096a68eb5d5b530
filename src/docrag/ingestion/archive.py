"""Branch archive download, extraction and markdown collection."""

from __future__ import annotations

import io
import logging
import os
import shutil
import stat
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List

import httpx

from docrag.errors import ArchiveError, NetworkError, PathTraversalError
from docrag.models import Document, RepoConfig
from docrag.utils.files import iter_markdown_paths

ARCHIVE_URL_TEMPLATE = "https://github.com/{owner}/{repo}/archive/refs/heads/{branch}.zip"
DIR_MODE = 0o755

LOGGER = logging.getLogger(__name__)


def archive_url(repo: RepoConfig) -> str:
    return ARCHIVE_URL_TEMPLATE.format(owner=repo.owner, repo=repo.repo, branch=repo.branch)


def archive_root(repo: RepoConfig, dest: Path) -> Path:
    """Directory holding the configured docs root once the archive is unpacked."""
    top = dest / f"{repo.repo}-{repo.branch}"
    return top / repo.root_path if repo.root_path else top


def fetch_archive(repo: RepoConfig, http_client: httpx.Client) -> bytes:
    """Download the branch archive and return its raw bytes."""
    url = archive_url(repo)
    LOGGER.info("Downloading %s", url)
    try:
        response = http_client.get(url, follow_redirects=True)
    except httpx.HTTPError as exc:
        raise NetworkError(f"Failed to download archive {url}: {exc}") from exc

    if response.status_code != httpx.codes.OK:
        raise NetworkError(
            f"Unexpected response downloading {url}",
            status_code=response.status_code,
            body=response.text,
        )
    return response.content


def _entry_mode(info: zipfile.ZipInfo) -> int:
    mode = stat.S_IMODE(info.external_attr >> 16)
    return mode or 0o644


def extract_archive(data: bytes, dest: Path) -> None:
    """Unpack a zip payload into dest.

    Every entry must resolve inside dest; the first one that does not aborts
    the extraction with `PathTraversalError`.
    """
    base = Path(dest).resolve()
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as exc:
        raise ArchiveError(f"Invalid archive: {exc}") from exc

    with archive:
        for info in archive.infolist():
            target = (base / info.filename).resolve()
            if target != base and base not in target.parents:
                raise PathTraversalError(info.filename)

            if info.is_dir():
                target.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
                continue

            target.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            with archive.open(info) as source, target.open("wb") as handle:
                shutil.copyfileobj(source, handle)
            os.chmod(target, _entry_mode(info))


def collect_documents(root: Path) -> List[Document]:
    """Read every markdown file below root into a `Document`."""
    if not root.is_dir():
        raise ArchiveError(f"Documentation root not found in archive: {root}")

    documents: List[Document] = []
    for path in iter_markdown_paths(root):
        info = path.stat()
        documents.append(
            Document(
                path=path.relative_to(root).as_posix(),
                content=path.read_bytes().decode("utf-8", errors="replace"),
                modified=datetime.fromtimestamp(info.st_mtime, tz=timezone.utc),
            )
        )
    return documents
