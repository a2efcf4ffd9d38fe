from __future__ import annotations

from typing import Any, Dict

from .base import EcosystemAdapter, load_toml

_SECTIONS = ("dependencies", "dev-dependencies", "build-dependencies")


def _collect(table: Any, deps: Dict[str, str]) -> None:
    if not isinstance(table, dict):
        return
    for section in _SECTIONS:
        entries = table.get(section)
        if not isinstance(entries, dict):
            continue
        for name, value in entries.items():
            # Path and git dependencies without a version are not on crates.io.
            if isinstance(value, dict):
                value = value.get("version")
            if isinstance(value, str) and value.strip():
                deps[name] = value.strip()


def parse_cargo_toml(content: str, filename: str = "Cargo.toml") -> Dict[str, str]:
    """Top-level and ``[target.'cfg(...)'.*]`` dependency tables, including ``[dependencies.<name>]``."""
    parsed = load_toml(content, filename)
    deps: Dict[str, str] = {}
    _collect(parsed, deps)
    targets = parsed.get("target")
    if isinstance(targets, dict):
        for target in targets.values():
            _collect(target, deps)
    return deps


class CargoAdapter(EcosystemAdapter):
    ecosystem = "cargo"
    manifest_files = ("Cargo.toml",)

    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        return parse_cargo_toml(content, filename)
