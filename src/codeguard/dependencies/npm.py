"""
npm manifests.

package-lock.json v2+ is read from ``packages`` (the name is the segment after
the last ``node_modules/``); v1 lockfiles walk the nested ``dependencies``
tree. Duplicates keep the lowest version since older copies are the ones
advisories hit. package.json merges ``dependencies`` and ``devDependencies``.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Mapping

from ..errors import ManifestParseError
from .base import EcosystemAdapter, merge_specs
from .versions import compare_versions

_NODE_MODULES = "node_modules/"


def _load_json(content: str, filename: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ManifestParseError(f"{filename}: invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ManifestParseError(f"{filename}: expected a JSON object")
    return parsed


def _keep_lowest(deps: Dict[str, str], name: str, version: str) -> None:
    existing = deps.get(name)
    if existing is None or compare_versions(version, existing) == -1:
        deps[name] = version


def _lockfile_package_name(key: str) -> str:
    index = key.rfind(_NODE_MODULES)
    if index == -1:
        return ""
    name = key[index + len(_NODE_MODULES) :]
    return "" if name.startswith(".") else name


def _collect_v1(node: Mapping[str, Any], deps: Dict[str, str]) -> None:
    for name, meta in node.items():
        if not isinstance(meta, dict):
            continue
        version = meta.get("version")
        if isinstance(version, str) and version:
            _keep_lowest(deps, name, version)
        nested = meta.get("dependencies")
        if isinstance(nested, dict):
            _collect_v1(nested, deps)


def parse_lockfile(parsed: Mapping[str, Any]) -> Dict[str, str]:
    deps: Dict[str, str] = {}
    packages = parsed.get("packages")
    if isinstance(packages, dict):
        for key, meta in packages.items():
            if not key or not isinstance(meta, dict) or not isinstance(meta.get("version"), str):
                continue
            name = _lockfile_package_name(key)
            if name:
                _keep_lowest(deps, name, meta["version"])
        return deps

    dependencies = parsed.get("dependencies")
    if isinstance(dependencies, dict):
        _collect_v1(dependencies, deps)
    return deps


class NpmAdapter(EcosystemAdapter):
    ecosystem = "npm"
    manifest_files = ("package-lock.json", "package.json")

    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        parsed = _load_json(content, filename)
        if "lockfileVersion" in parsed:
            return parse_lockfile(parsed)
        return merge_specs(parsed.get("dependencies"), parsed.get("devDependencies"))
