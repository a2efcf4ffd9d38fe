from __future__ import annotations

import base64
import json
from datetime import datetime, timezone

import pytest

from codeguard.errors import MissingCredentialsError, SourceError
from codeguard.sources import CommitAuthor, GitHubSource, TreeEntry, UploadSource


class DummyResponse:
    def __init__(self, status_code: int, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


class DummyAsyncClient:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []
        self.closed = False

    async def get(self, url, params=None):
        self.calls.append((url, params))
        for suffix, response in self.routes.items():
            if url.endswith(suffix):
                return response
        return DummyResponse(404, {"message": "Not Found"})

    async def aclose(self):
        self.closed = True


def _encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _patch_client(monkeypatch, client: DummyAsyncClient) -> None:
    monkeypatch.setattr("codeguard.sources.github.httpx.AsyncClient", lambda *a, **k: client)


def test_github_source_requires_token() -> None:
    with pytest.raises(MissingCredentialsError, match="No GitHub token available"):
        GitHubSource("acme/api", token="")


@pytest.mark.anyio
async def test_github_tree_keeps_blobs_only(monkeypatch) -> None:
    client = DummyAsyncClient(
        {
            "/git/trees/main": DummyResponse(
                200,
                {
                    "tree": [
                        {"path": "src", "type": "tree"},
                        {"path": "src/app.py", "type": "blob", "size": 120},
                        {"path": "vendor/lib", "type": "commit"},
                        {"path": "README.md", "type": "blob", "size": 10},
                    ]
                },
            )
        }
    )
    _patch_client(monkeypatch, client)

    async with GitHubSource("acme/api", token="ghp_test") as source:
        entries = await source.list_tree()

    assert entries == [TreeEntry("src/app.py", 120), TreeEntry("README.md", 10)]
    assert client.calls[0] == ("https://api.github.com/repos/acme/api/git/trees/main", {"recursive": "1"})
    assert client.closed


@pytest.mark.anyio
async def test_github_tree_failure_raises_source_error(monkeypatch) -> None:
    _patch_client(monkeypatch, DummyAsyncClient({"/git/trees/main": DummyResponse(500, {})}))

    async with GitHubSource("acme/api", token="ghp_test") as source:
        with pytest.raises(SourceError, match="Failed to fetch file tree"):
            await source.list_tree()


@pytest.mark.anyio
async def test_github_fetch_file_decodes_base64(monkeypatch) -> None:
    client = DummyAsyncClient(
        {
            "/contents/src/app.py": DummyResponse(200, {"encoding": "base64", "content": _encode("print('hi')\n")}),
            "/contents/logo.png": DummyResponse(200, {"encoding": "none", "download_url": "x"}),
        }
    )
    _patch_client(monkeypatch, client)

    async with GitHubSource("acme/api", token="ghp_test", ref="develop") as source:
        assert await source.fetch_file("src/app.py") == "print('hi')\n"
        assert await source.fetch_file("logo.png") is None

    assert client.calls[0][1] == {"ref": "develop"}


@pytest.mark.anyio
async def test_github_recent_commits(monkeypatch) -> None:
    commits = [
        {
            "sha": "abc123",
            "commit": {"message": "Add login\n\nCo-authored-by: Copilot", "committer": {"date": "2024-05-01T10:00:00Z"}},
        },
        {"sha": "def456", "commit": {"message": "Initial commit"}},
    ]
    _patch_client(monkeypatch, DummyAsyncClient({"/commits": DummyResponse(200, commits)}))

    async with GitHubSource("acme/api", token="ghp_test") as source:
        context = await source.recent_commits()

    assert context.sha == "abc123"
    assert context.title == "Add login"
    assert context.date == "2024-05-01T10:00:00Z"
    assert "Initial commit" in context.message
    assert context.to_summary()["commit_sha"] == "abc123"


@pytest.mark.anyio
async def test_github_recent_commits_unavailable(monkeypatch) -> None:
    _patch_client(monkeypatch, DummyAsyncClient({}))

    async with GitHubSource("acme/api", token="ghp_test") as source:
        assert await source.recent_commits() is None


def _write_archive(directory, name: str, files: dict) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / name).write_text(json.dumps({path: _encode(text) for path, text in files.items()}), encoding="utf-8")


@pytest.mark.anyio
async def test_upload_source_reads_archive(tmp_path) -> None:
    _write_archive(tmp_path / "acme", "upload-1.json", {"src/app.py": "x = 1\n", "win\\path.js": "y"})

    async with UploadSource(tmp_path, "acme/upload-1.json") as source:
        entries = await source.list_tree()
        assert {entry.path for entry in entries} == {"src/app.py", "win/path.js"}
        assert await source.fetch_file("src/app.py") == "x = 1\n"
        assert await source.fetch_file("missing.py") is None
        assert await source.recent_commits() is None


def test_upload_source_requires_storage_key(tmp_path) -> None:
    with pytest.raises(SourceError, match="No upload storage key"):
        UploadSource(tmp_path, None)


@pytest.mark.anyio
async def test_upload_source_missing_archive(tmp_path) -> None:
    source = UploadSource(tmp_path, "nope.json")
    with pytest.raises(SourceError, match="Failed to download upload data"):
        await source.list_tree()


@pytest.mark.anyio
async def test_upload_source_rejects_traversal(tmp_path) -> None:
    (tmp_path / "secret.json").write_text("{}", encoding="utf-8")
    source = UploadSource(tmp_path / "uploads", "../secret.json")
    with pytest.raises(SourceError, match="escapes the upload directory"):
        await source.list_tree()


@pytest.mark.anyio
async def test_github_commit_authors_fall_back_to_git_identity(monkeypatch) -> None:
    commits = [
        {"author": {"login": "alice", "avatar_url": "https://avatars/alice"}, "commit": {"author": {"name": "Alice A"}}},
        {"author": None, "commit": {"author": {"name": "Bob", "email": "bob@example.com"}}},
        {"author": None, "commit": {"author": {}}},
    ]
    client = DummyAsyncClient({"/commits": DummyResponse(200, commits)})
    _patch_client(monkeypatch, client)
    since = datetime(2024, 5, 1, tzinfo=timezone.utc)

    async with GitHubSource("acme/api", token="ghp_test") as source:
        authors = await source.commit_authors(since)

    assert authors == [
        CommitAuthor("alice", "Alice A", "https://avatars/alice"),
        CommitAuthor("bob@example.com", "Bob", None),
    ]
    url, params = client.calls[0]
    assert url == "https://api.github.com/repos/acme/api/commits"
    assert params["since"] == since.isoformat()
    assert params["per_page"] == 100


@pytest.mark.anyio
async def test_github_history_failures_are_empty(monkeypatch) -> None:
    _patch_client(monkeypatch, DummyAsyncClient({"/commits": DummyResponse(403, {})}))

    async with GitHubSource("acme/api", token="ghp_test") as source:
        assert await source.commit_authors(datetime.now(timezone.utc)) == []
        assert await source.last_committer("src/app.py") is None


@pytest.mark.anyio
async def test_github_last_committer_asks_for_one_commit(monkeypatch) -> None:
    client = DummyAsyncClient(
        {"/commits": DummyResponse(200, [{"author": {"login": "carol"}, "commit": {"author": {"name": "Carol"}}}])}
    )
    _patch_client(monkeypatch, client)

    async with GitHubSource("acme/api", token="ghp_test") as source:
        author = await source.last_committer("src/app.py")

    assert author == CommitAuthor("carol", "Carol", None)
    assert client.calls[0][1] == {"sha": "main", "path": "src/app.py", "per_page": 1}
