from __future__ import annotations

import asyncio
import base64
import binascii
import json
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import SourceError
from .base import ScanSource, TreeEntry


class UploadSource(ScanSource):
    """
    An uploaded archive stored as JSON ``{path: base64 content}`` under ``upload_dir``.

    The archive is read once on first use; ``storage_key`` must stay inside
    ``upload_dir``.
    """

    def __init__(self, upload_dir: str | Path, storage_key: Optional[str]):
        if not storage_key:
            raise SourceError("No upload storage key found in scan summary")
        self.upload_dir = Path(upload_dir)
        self.storage_key = storage_key
        self._files: Optional[Dict[str, bytes]] = None

    def _archive_path(self) -> Path:
        root = self.upload_dir.resolve()
        path = (root / self.storage_key).resolve()
        if root != path and root not in path.parents:
            raise SourceError(f"Upload storage key escapes the upload directory: {self.storage_key}")
        return path

    def _read_archive(self) -> Dict[str, bytes]:
        path = self._archive_path()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise SourceError(f"Failed to download upload data: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise SourceError(f"Upload data is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise SourceError("Upload data must be an object of path to base64 content")

        files: Dict[str, bytes] = {}
        for file_path, encoded in payload.items():
            if not isinstance(encoded, str):
                continue
            try:
                files[str(file_path).replace("\\", "/")] = base64.b64decode(encoded)
            except (binascii.Error, ValueError) as exc:
                raise SourceError(f"Upload entry {file_path} is not valid base64: {exc}") from exc
        return files

    async def _load(self) -> Dict[str, bytes]:
        if self._files is None:
            self._files = await asyncio.to_thread(self._read_archive)
        return self._files

    async def list_tree(self) -> List[TreeEntry]:
        files = await self._load()
        return [TreeEntry(path=path, size=len(content)) for path, content in files.items()]

    async def fetch_file(self, path: str) -> Optional[str]:
        files = await self._load()
        content = files.get(path)
        if content is None:
            return None
        return content.decode("utf-8", errors="replace")
