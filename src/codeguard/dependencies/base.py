from __future__ import annotations

import json
import tomllib
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from fnmatch import fnmatchcase
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from ..errors import ManifestParseError, RuleCatalogError

ADVISORY_DIR = Path(__file__).parent / "advisories"
SUPPORTED_SCHEMA_VERSION = "1.0"
SEVERITIES = ("critical", "high", "medium", "low")


@dataclass(frozen=True)
class Advisory:
    id: str
    severity: str
    title: str
    description: str
    vulnerable_range: str
    patched_version: Optional[str] = None
    cve: Optional[str] = None
    ghsa: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class DependencyVulnerability:
    id: str
    ecosystem: str
    package_name: str
    installed_version: str
    severity: str
    title: str
    description: str
    vulnerable_range: str
    patched_version: Optional[str] = None
    cve: Optional[str] = None
    ghsa: Optional[str] = None
    url: Optional[str] = None
    manifest_file: Optional[str] = None

    @classmethod
    def from_advisory(
        cls,
        advisory: Advisory,
        ecosystem: str,
        package_name: str,
        installed_version: str,
        manifest_file: Optional[str] = None,
    ) -> "DependencyVulnerability":
        return cls(
            id=advisory.id,
            ecosystem=ecosystem,
            package_name=package_name,
            installed_version=installed_version,
            severity=advisory.severity,
            title=advisory.title,
            description=advisory.description,
            vulnerable_range=advisory.vulnerable_range,
            patched_version=advisory.patched_version,
            cve=advisory.cve,
            ghsa=advisory.ghsa,
            url=advisory.url,
            manifest_file=manifest_file,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


def _parse_advisory(package: str, raw: Mapping[str, Any], source: str) -> Advisory:
    try:
        advisory = Advisory(
            id=str(raw["id"]),
            severity=str(raw["severity"]).lower(),
            title=str(raw["title"]),
            description=str(raw.get("description") or ""),
            vulnerable_range=str(raw["vulnerable_range"]),
            patched_version=raw.get("patched_version"),
            cve=raw.get("cve"),
            ghsa=raw.get("ghsa"),
            url=raw.get("url"),
        )
    except KeyError as exc:
        raise RuleCatalogError(f"{source}: advisory for {package} missing field {exc}") from exc
    if advisory.severity not in SEVERITIES:
        raise RuleCatalogError(f"{source}: advisory {advisory.id} has invalid severity {advisory.severity!r}")
    return advisory


@lru_cache(maxsize=None)
def load_advisories(ecosystem: str, advisory_dir: Path = ADVISORY_DIR) -> Dict[str, Tuple[Advisory, ...]]:
    """Load the packaged advisory table ``{package: advisories}`` for one ecosystem."""
    path = advisory_dir / f"{ecosystem}.json"
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RuleCatalogError(f"Cannot load advisories from {path}: {exc}") from exc

    if data.get("schema_version") != SUPPORTED_SCHEMA_VERSION:
        raise RuleCatalogError(f"{path}: unsupported schema_version {data.get('schema_version')!r}")

    table: Dict[str, Tuple[Advisory, ...]] = {}
    for package, entries in (data.get("advisories") or {}).items():
        table[package] = tuple(_parse_advisory(package, entry, path.name) for entry in entries)
    return table


class EcosystemAdapter(ABC):
    """Parses one ecosystem's manifests and supplies its advisory table."""

    ecosystem: str = ""
    # Filename globs in priority order; within a directory the first scanned one wins.
    manifest_files: Tuple[str, ...] = ()

    @abstractmethod
    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        """Return ``{package name: version spec}``; raise ``ManifestParseError`` on unreadable content."""

    @property
    def advisories(self) -> Dict[str, Tuple[Advisory, ...]]:
        return load_advisories(self.ecosystem)

    def manifest_priority(self, filename: str) -> Optional[int]:
        """Index of the first glob matching ``filename``, or ``None``."""
        for index, pattern in enumerate(self.manifest_files):
            if fnmatchcase(filename, pattern):
                return index
        return None

    def handles(self, filename: str) -> bool:
        return self.manifest_priority(filename) is not None


def merge_specs(*sections: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Merge name->spec mappings, later sections overriding earlier ones; non-string specs are ignored."""
    merged: Dict[str, str] = {}
    for section in sections:
        if not isinstance(section, Mapping):
            continue
        for name, spec in section.items():
            if isinstance(spec, str):
                merged[str(name)] = spec
    return merged


def _fold_inline_tables(content: str) -> str:
    """Join ``{ ... }`` tables that span lines, dropping comments and trailing commas inside them."""
    out = []
    depth = 0
    quote = ""
    index = 0
    while index < len(content):
        char = content[index]
        if quote:
            out.append(char)
            if char == "\\" and quote == '"' and index + 1 < len(content):
                index += 1
                out.append(content[index])
            elif char == quote:
                quote = ""
        elif char in "\"'":
            quote = char
            out.append(char)
        elif char == "{":
            depth += 1
            out.append(char)
        elif char == "}" and depth:
            depth -= 1
            while out and out[-1] in " \t":
                out.pop()
            if out and out[-1] == ",":
                out.pop()
            out.append(" }")
        elif char == "#":
            end = content.find("\n", index)
            end = len(content) if end == -1 else end
            if not depth:
                out.append(content[index:end])
            index = end
            continue
        elif char in "\r\n" and depth:
            out.append(" ")
        else:
            out.append(char)
        index += 1
    return "".join(out)


def load_toml(content: str, filename: str) -> Dict[str, Any]:
    """Parse a TOML manifest; Cargo and Poetry accept multi-line inline tables, TOML 1.0 does not."""
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        try:
            return tomllib.loads(_fold_inline_tables(content))
        except tomllib.TOMLDecodeError:
            raise ManifestParseError(f"{filename}: invalid TOML: {exc}") from exc
