from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..constants import Limits
from ..errors import MissingCredentialsError, SourceError
from .base import CommitAuthor, CommitContext, ScanSource, TreeEntry

logger = logging.getLogger(__name__)

DEFAULT_GITHUB_API = "https://api.github.com"
USER_AGENT = "codeguard-scanner"


def decode_base64_text(encoded: str) -> str:
    try:
        raw = base64.b64decode(encoded or "", validate=False)
    except (binascii.Error, ValueError) as exc:
        raise SourceError(f"Invalid base64 content: {exc}") from exc
    return raw.decode("utf-8", errors="replace")


def commit_author(commit: Dict[str, Any]) -> Optional[CommitAuthor]:
    """Login of the linked account, falling back to the git author email, then name."""
    account = commit.get("author") or {}
    git_author = (commit.get("commit") or {}).get("author") or {}
    login = account.get("login") or git_author.get("email") or git_author.get("name")
    if not login:
        return None
    return CommitAuthor(
        login=login,
        display_name=git_author.get("name") or login,
        avatar_url=account.get("avatar_url"),
    )


class GitHubSource(ScanSource):
    """Reads a repository's default branch through the GitHub REST API."""

    def __init__(
        self,
        full_name: str,
        token: str,
        ref: str = "main",
        api_url: str = DEFAULT_GITHUB_API,
        timeout: float = 15.0,
    ):
        if not token:
            raise MissingCredentialsError("No GitHub token available")
        self.full_name = full_name
        self.ref = ref
        self.api_url = (api_url or DEFAULT_GITHUB_API).rstrip("/")
        self.timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=self._headers)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}/repos/{self.full_name}{path}"
        response = await self._http().get(url, params=params)
        if response.status_code != 200:
            raise SourceError(f"GitHub API returned {response.status_code} for {path}")
        return response.json()

    async def list_tree(self) -> List[TreeEntry]:
        try:
            data = await self._get_json(f"/git/trees/{quote(self.ref, safe='')}", params={"recursive": "1"})
        except (httpx.HTTPError, SourceError, ValueError) as exc:
            raise SourceError(f"Failed to fetch file tree: {exc}") from exc
        if not isinstance(data, dict):
            raise SourceError("Failed to fetch file tree: unexpected response shape")

        if data.get("truncated"):
            logger.warning("Tree for %s is truncated; scanning the returned subset", self.full_name)

        entries: List[TreeEntry] = []
        for item in data.get("tree") or []:
            if item.get("type") != "blob" or not item.get("path") or not isinstance(item.get("size"), int):
                continue
            entries.append(TreeEntry(path=item["path"], size=item["size"]))
        return entries

    async def fetch_file(self, path: str) -> Optional[str]:
        try:
            data = await self._get_json(f"/contents/{quote(path)}", params={"ref": self.ref})
        except (httpx.HTTPError, ValueError) as exc:
            raise SourceError(f"Failed to fetch {path}: {exc}") from exc

        if not isinstance(data, dict) or data.get("encoding") != "base64" or "content" not in data:
            return None
        return decode_base64_text(data["content"])

    async def recent_commits(self) -> Optional[CommitContext]:
        """Last commits on the branch; an empty or unreadable history yields ``None``."""
        try:
            commits = await self._get_json(
                "/commits", params={"sha": self.ref, "per_page": Limits.RECENT_COMMITS}
            )
        except (httpx.HTTPError, SourceError, ValueError) as exc:
            logger.info("Could not fetch commits for %s: %s", self.full_name, exc)
            return None

        if not isinstance(commits, list) or not commits:
            return None

        messages = [str((c.get("commit") or {}).get("message") or "") for c in commits]
        head = commits[0]
        head_commit = head.get("commit") or {}
        date = (head_commit.get("committer") or {}).get("date") or (head_commit.get("author") or {}).get("date")
        return CommitContext(
            message="\n".join(messages),
            sha=head.get("sha"),
            title=messages[0].split("\n", 1)[0][:120],
            date=date,
        )

    async def commit_authors(self, since: datetime) -> List[CommitAuthor]:
        try:
            commits = await self._get_json(
                "/commits",
                params={"sha": self.ref, "since": since.isoformat(), "per_page": Limits.CONTRIBUTOR_COMMITS},
            )
        except (httpx.HTTPError, SourceError, ValueError) as exc:
            logger.info("Could not fetch contributor history for %s: %s", self.full_name, exc)
            return []
        if not isinstance(commits, list):
            return []
        authors = (commit_author(commit) for commit in commits if isinstance(commit, dict))
        return [author for author in authors if author is not None]

    async def last_committer(self, path: str) -> Optional[CommitAuthor]:
        try:
            commits = await self._get_json("/commits", params={"sha": self.ref, "path": path, "per_page": 1})
        except (httpx.HTTPError, SourceError, ValueError) as exc:
            logger.info("Could not fetch last committer of %s: %s", path, exc)
            return None
        if not isinstance(commits, list) or not commits or not isinstance(commits[0], dict):
            return None
        return commit_author(commits[0])
