"""Input discovery and GitHub icon-set download."""

from __future__ import annotations

import io
import logging
import os
import posixpath
import re
import stat
import time
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from .errors import GitHubError
from .models import FetchSummary
from .utils import prepare_output_dir

log = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_ACCEPT = "application/vnd.github+json"
REQUEST_TIMEOUT_S = 60

_GITHUB_URL_RE = re.compile(
    r"^https?://github\.com/([^/]+)/([^/]+)"
    r"(?:/?|/(tree|blob)/([^/\n]+)(?:/?|/(.+?)/*)?)?$"
)


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------


def discover_inputs(folder: Path, ext: str = ".svg") -> list[Path]:
    """List files in *folder* (non-recursive) ending in *ext*, sorted by name."""
    if not folder.exists():
        return []
    suffix = ext if ext.startswith(".") else f".{ext}"
    return sorted(
        path
        for path in folder.iterdir()
        if path.name.endswith(suffix) and path.is_file()
    )


# ---------------------------------------------------------------------------
# GitHub URL handling
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GitHubLocation:
    """A directory inside a GitHub repository."""

    owner: str
    repo: str
    kind: str | None = None
    branch: str | None = None
    path: str = ""

    @property
    def label(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_github_url(url: str) -> GitHubLocation:
    """Split a ``github.com/<owner>/<repo>/tree/<branch>/<path>`` URL."""
    match = _GITHUB_URL_RE.match(url.strip() if isinstance(url, str) else "")
    if not match:
        raise GitHubError(f"Invalid url: {url}")
    owner, repo, kind, branch, path = match.groups()
    return GitHubLocation(
        owner=owner,
        repo=repo,
        kind=kind,
        branch=branch,
        path=path or "",
    )


class GitHubClient:
    """Minimal GitHub REST client over a :class:`requests.Session`."""

    def __init__(
        self,
        token: str | None = None,
        *,
        session: requests.Session | None = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = REQUEST_TIMEOUT_S,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": GITHUB_ACCEPT})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str, **params: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params or None, timeout=self.timeout)
        except requests.RequestException as exc:
            raise GitHubError(f"GET {path} failed: {exc}") from exc
        if response.status_code != 200:
            raise GitHubError(f"GET {path} failed: {response.status_code}")
        return response

    def default_branch(self, owner: str, repo: str) -> str:
        data = self._get(f"/repos/{owner}/{repo}").json()
        branch = data.get("default_branch")
        if not branch:
            raise GitHubError(f"Failed to resolve default branch for {owner}/{repo}")
        return branch

    def resolve(self, url: str) -> GitHubLocation:
        """Parse *url*, looking up the default branch when it names none."""
        location = parse_github_url(url)
        if location.kind:
            return location
        return GitHubLocation(
            owner=location.owner,
            repo=location.repo,
            kind="tree",
            branch=self.default_branch(location.owner, location.repo),
            path=location.path,
        )

    def tree_sha(self, location: GitHubLocation) -> str | None:
        """Return the git tree SHA of ``location.path`` (``None`` if missing)."""
        if not location.path:
            return location.branch
        parent = posixpath.dirname(location.path)
        listing = self._get(
            f"/repos/{location.owner}/{location.repo}/contents/{parent}",
            ref=location.branch,
        ).json()
        if not isinstance(listing, list):
            return None
        for item in listing:
            if item.get("type") == "dir" and item.get("path") == location.path:
                return item.get("sha")
        return None

    def list_tree(self, owner: str, repo: str, sha: str) -> list[dict[str, Any]]:
        data = self._get(f"/repos/{owner}/{repo}/git/trees/{sha}").json()
        return list(data.get("tree", []))

    def download_zipball(self, owner: str, repo: str, ref: str) -> bytes:
        return self._get(f"/repos/{owner}/{repo}/zipball/{ref}").content


# ---------------------------------------------------------------------------
# Zip handling
# ---------------------------------------------------------------------------


def is_symbolic_link(external_attr: int) -> bool:
    """Check the Unix mode stored in a zip entry's external attributes."""
    return stat.S_ISLNK((external_attr >> 16) & 0o170000)


def is_svg_path(path: str) -> bool:
    return path.endswith(".svg")


def svg_entries(archive: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
    return [
        info
        for info in archive.infolist()
        if not info.is_dir() and is_svg_path(info.filename)
    ]


def extract_entries(
    archive: zipfile.ZipFile,
    entries: list[zipfile.ZipInfo],
    out_dir: Path,
) -> tuple[int, int]:
    """Write *entries* flat into *out_dir*. Returns ``(success, failed)``."""
    success = 0
    failed = 0
    for info in entries:
        dest = out_dir / posixpath.basename(info.filename)
        try:
            data = archive.read(info)
            if is_symbolic_link(info.external_attr):
                if dest.is_symlink() or dest.exists():
                    dest.unlink()
                os.symlink(data.decode("utf-8"), dest)
            else:
                dest.write_bytes(data)
            success += 1
        except (OSError, zipfile.BadZipFile, UnicodeDecodeError) as exc:
            log.error("Failed to write %s: %s", info.filename, exc)
            failed += 1
    return success, failed


# ---------------------------------------------------------------------------
# Icon-set download
# ---------------------------------------------------------------------------


def fetch_source(client: GitHubClient, url: str) -> tuple[int, bytes | None]:
    """Resolve one URL and download its zipball.

    Returns ``(expected_svg_count, zip_bytes)``; ``zip_bytes`` is ``None``
    when the directory could not be found.
    """
    location = client.resolve(url)
    sha = client.tree_sha(location)
    if not sha:
        log.error("[%s] No tree hash found for: %s", location.label, location.path)
        return 0, None

    tree = client.list_tree(location.owner, location.repo, sha)
    expected = sum(1 for node in tree if is_svg_path(node.get("path", "")))
    log.info(
        "[%s] Found %s files for path %s [%s]",
        location.label,
        len(tree),
        location.path or "/",
        sha,
    )
    log.info("[%s] Downloading zip from ref: %s", location.label, sha)
    return expected, client.download_zipball(location.owner, location.repo, sha)


def fetch_icon_sets(
    urls: list[str],
    out_dir: Path,
    client: GitHubClient | None = None,
    *,
    max_workers: int = 4,
) -> FetchSummary:
    """Download the SVGs under each GitHub directory URL into *out_dir*."""
    client = client or GitHubClient(os.environ.get("GITHUB_TOKEN"))
    summary = FetchSummary(sources=len(urls))
    t0 = time.perf_counter()

    log.info("Fetching files from %s sources...", len(urls))
    for url in urls:
        log.info("- %s", url)

    archives: list[zipfile.ZipFile] = []
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {executor.submit(fetch_source, client, url): url for url in urls}
        for future, url in futures.items():
            try:
                expected, payload = future.result()
                summary.expected += expected
                if payload is not None:
                    archives.append(zipfile.ZipFile(io.BytesIO(payload)))
            except (
                GitHubError,
                requests.RequestException,
                ValueError,
                zipfile.BadZipFile,
            ) as exc:
                log.error("Failed to fetch %s: %s", url, exc)

    try:
        entry_sets = [(archive, svg_entries(archive)) for archive in archives]
        summary.downloaded = sum(len(entries) for _, entries in entry_sets)
        log.info(
            "Downloaded %s of %s files. (%.2fs)",
            summary.downloaded,
            summary.expected,
            time.perf_counter() - t0,
        )

        log.info("Extracting files...")
        prepare_output_dir(out_dir)
        for archive, entries in entry_sets:
            success, failed = extract_entries(archive, entries, out_dir)
            summary.success += success
            summary.failed += failed
    finally:
        for archive in archives:
            archive.close()

    summary.elapsed_s = time.perf_counter() - t0
    log.info("Success: %s", summary.success)
    log.info("Failed: %s", summary.failed)
    return summary
