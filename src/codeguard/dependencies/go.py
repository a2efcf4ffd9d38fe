from __future__ import annotations

import re
from typing import Dict

from .base import EcosystemAdapter

_LINE_COMMENT = re.compile(r"//[^\n]*")
_REQUIRE_BLOCK = re.compile(r"require\s*\((.*?)\)", re.DOTALL)
_BLOCK_ENTRY = re.compile(r"^\s*(\S+)\s+(v?\S+)", re.MULTILINE)
_SINGLE_REQUIRE = re.compile(r"^\s*require\s+(\S+)\s+(v?\S+)", re.MULTILINE)


def _strip_v(version: str) -> str:
    return version[1:] if version.startswith("v") else version


def parse_go_mod(content: str) -> Dict[str, str]:
    """Module path to version from ``require`` blocks and single-line directives."""
    cleaned = _LINE_COMMENT.sub("", content)
    deps: Dict[str, str] = {}

    for block in _REQUIRE_BLOCK.finditer(cleaned):
        for module, version in _BLOCK_ENTRY.findall(block.group(1)):
            deps[module] = _strip_v(version)

    for module, version in _SINGLE_REQUIRE.findall(_REQUIRE_BLOCK.sub("", cleaned)):
        deps[module] = _strip_v(version)
    return deps


class GoAdapter(EcosystemAdapter):
    ecosystem = "go"
    manifest_files = ("go.mod",)

    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        return parse_go_mod(content)
