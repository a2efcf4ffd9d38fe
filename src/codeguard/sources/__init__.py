from .base import CommitAuthor, CommitContext, ScanSource, TreeEntry
from .github import GitHubSource
from .upload import UploadSource

__all__ = [
    "CommitAuthor",
    "CommitContext",
    "GitHubSource",
    "ScanSource",
    "TreeEntry",
    "UploadSource",
]
