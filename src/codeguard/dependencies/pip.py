"""
Python manifests: requirements.txt, Pipfile and pyproject.toml.

The format is picked from the filename, then sniffed from content so that
``requirements-dev.txt``-style copies parse too. TOML manifests go through
``load_toml``; PEP 508 requirement strings are matched per entry. Names are
lowercased and a requirement without a version is recorded as ``*``.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable

from .base import EcosystemAdapter, load_toml

_NAME = r"[a-zA-Z0-9_][a-zA-Z0-9._-]*"
_REQUIREMENT = re.compile(rf"^({_NAME})\s*(?:\[[^\]]*\])?\s*\(?\s*([><=!~]+)\s*([^)]+?)\s*\)?$")
_NAME_ONLY = re.compile(rf"^({_NAME})\s*(?:\[[^\]]*\])?\s*$")


def _parse_requirement(text: str, deps: Dict[str, str]) -> None:
    requirement = text.split(";", 1)[0].strip()
    if not requirement or "@" in requirement:
        return
    match = _REQUIREMENT.match(requirement)
    if match:
        deps[match.group(1).lower()] = f"{match.group(2)}{match.group(3).strip()}"
        return
    name_only = _NAME_ONLY.match(requirement)
    if name_only:
        deps[name_only.group(1).lower()] = "*"


def _table(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _table_spec(value: Any) -> str | None:
    """``"==1.0"``, ``"*"`` or ``{version = "==1.0", ...}``; git and path entries have no version."""
    if isinstance(value, str):
        return value.strip() or "*"
    if isinstance(value, dict):
        version = value.get("version")
        if isinstance(version, str):
            return version.strip() or "*"
    return None


def _merge_tables(deps: Dict[str, str], tables: Iterable[Any], skip: tuple[str, ...] = ()) -> None:
    for table in tables:
        for name, value in _table(table).items():
            if name.lower() in skip:
                continue
            spec = _table_spec(value)
            if spec is not None:
                deps[name.lower()] = spec


def parse_requirements(content: str) -> Dict[str, str]:
    deps: Dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        # Options (-r, -e, --index-url) and comments carry no pinned packages.
        if not line or line.startswith(("#", "-")):
            continue
        _parse_requirement(line.split("#", 1)[0], deps)
    return deps


def parse_pipfile(content: str, filename: str = "Pipfile") -> Dict[str, str]:
    parsed = load_toml(content, filename)
    deps: Dict[str, str] = {}
    _merge_tables(deps, (parsed.get("packages"), parsed.get("dev-packages")))
    return deps


def parse_pyproject(content: str, filename: str = "pyproject.toml") -> Dict[str, str]:
    """PEP 621 ``project`` arrays plus Poetry's dependency tables and groups."""
    parsed = load_toml(content, filename)
    deps: Dict[str, str] = {}

    project = _table(parsed.get("project"))
    requirements = list(project.get("dependencies") or [])
    for group in _table(project.get("optional-dependencies")).values():
        requirements.extend(group or [])
    for requirement in requirements:
        if isinstance(requirement, str):
            _parse_requirement(requirement, deps)

    poetry = _table(_table(parsed.get("tool")).get("poetry"))
    groups = [_table(group).get("dependencies") for group in _table(poetry.get("group")).values()]
    _merge_tables(
        deps,
        [poetry.get("dependencies"), poetry.get("dev-dependencies"), *groups],
        skip=("python",),
    )
    return deps


class PipAdapter(EcosystemAdapter):
    ecosystem = "pip"
    manifest_files = ("requirements.txt", "Pipfile", "pyproject.toml")

    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        basename = filename.rsplit("/", 1)[-1]
        if basename == "pyproject.toml":
            return parse_pyproject(content, filename)
        if basename == "Pipfile":
            return parse_pipfile(content, filename)
        if basename.endswith(".txt"):
            return parse_requirements(content)
        if "[project]" in content or "[tool.poetry" in content or "[build-system]" in content:
            return parse_pyproject(content, filename)
        if "[packages]" in content or "[dev-packages]" in content:
            return parse_pipfile(content, filename)
        return parse_requirements(content)
