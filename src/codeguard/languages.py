from __future__ import annotations

from pathlib import PurePosixPath
from typing import Optional

SOURCE_LANGUAGES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".cpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".hpp": "cpp",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".vue": "vue",
    ".svelte": "svelte",
    ".dart": "dart",
    ".lua": "lua",
    ".sh": "shell",
    ".bash": "shell",
    ".sql": "sql",
}

HASH_COMMENT_LANGUAGES = frozenset({"python", "ruby", "shell"})

TEST_PATH_TOKENS = {
    "test",
    "tests",
    "__tests__",
    "spec",
    "specs",
    "fixtures",
    "__mocks__",
}

TEST_FILE_MARKERS = (
    ".test.",
    ".spec.",
    "_test.",
    "-test.",
    "test_",
)

_COMMENT_PREFIXES = ("//", "#", "/*", "*", "--", "<!--", '"""', "'''")


def detect_language(path: str) -> Optional[str]:
    """Return the language for a recognized source file, else ``None``."""
    ext = PurePosixPath(path.replace("\\", "/")).suffix.lower()
    return SOURCE_LANGUAGES.get(ext)


def is_source_file(path: str) -> bool:
    return detect_language(path) is not None


def is_test_path(path: str) -> bool:
    pure_path = PurePosixPath(path.replace("\\", "/"))
    name = pure_path.name.lower()
    parts = [part.lower() for part in pure_path.parts[:-1]]
    return any(token in parts for token in TEST_PATH_TOKENS) or any(marker in name for marker in TEST_FILE_MARKERS)


def is_comment_line(line: str) -> bool:
    return line.lstrip().startswith(_COMMENT_PREFIXES)


def path_depth(path: str) -> int:
    """Number of directories above the file (``a/b/c.txt`` has depth 2)."""
    return len(PurePosixPath(path.replace("\\", "/")).parts) - 1
