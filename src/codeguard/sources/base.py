from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class TreeEntry:
    path: str
    size: int


@dataclass(frozen=True)
class CommitContext:
    """Recent history used by the metadata signal; ``message`` joins the last few commit messages."""

    message: str
    sha: Optional[str] = None
    title: Optional[str] = None
    date: Optional[str] = None

    def to_summary(self) -> Dict[str, Any]:
        return {"commit_sha": self.sha, "commit_title": self.title, "commit_date": self.date}


@dataclass(frozen=True)
class CommitAuthor:
    """Who made a commit: the host login when known, else the author email or name."""

    login: str
    display_name: str
    avatar_url: Optional[str] = None


class ScanSource(ABC):
    """Where a scan reads its files from: a code host or an uploaded archive."""

    async def __aenter__(self) -> "ScanSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.aclose()
        return False

    @abstractmethod
    async def list_tree(self) -> List[TreeEntry]:
        """Every blob in the tree. Raises ``SourceError`` when the tree is unavailable."""

    @abstractmethod
    async def fetch_file(self, path: str) -> Optional[str]:
        """Decoded text of one file, ``None`` for non-text content. Raises ``SourceError`` on transport failure."""

    async def recent_commits(self) -> Optional[CommitContext]:
        return None

    async def commit_authors(self, since: datetime) -> List[CommitAuthor]:
        """One entry per commit on the branch since ``since``; empty when history is unavailable."""
        return []

    async def last_committer(self, path: str) -> Optional[CommitAuthor]:
        return None

    async def aclose(self) -> None:
        return None
