from __future__ import annotations

import re
from typing import Dict, Pattern

from .base import EcosystemAdapter

_PACKAGE = re.compile(r"<package\s+[^>]*?\bid=[\"']([^\"']+)[\"'][^>]*?\bversion=[\"']([^\"']+)[\"']", re.IGNORECASE)
_PACKAGE_REVERSED = re.compile(
    r"<package\s+[^>]*?\bversion=[\"']([^\"']+)[\"'][^>]*?\bid=[\"']([^\"']+)[\"']", re.IGNORECASE
)
_REFERENCE = re.compile(
    r"<PackageReference\s+[^>]*?\bInclude=[\"']([^\"']+)[\"'][^>]*?\bVersion=[\"']([^\"']+)[\"']", re.IGNORECASE
)
_REFERENCE_REVERSED = re.compile(
    r"<PackageReference\s+[^>]*?\bVersion=[\"']([^\"']+)[\"'][^>]*?\bInclude=[\"']([^\"']+)[\"']", re.IGNORECASE
)


def _collect(content: str, forward: Pattern[str], reversed_: Pattern[str]) -> Dict[str, str]:
    deps = {name: version for name, version in forward.findall(content)}
    for version, name in reversed_.findall(content):
        deps.setdefault(name, version)
    return deps


def parse_packages_config(content: str) -> Dict[str, str]:
    return _collect(content, _PACKAGE, _PACKAGE_REVERSED)


def parse_csproj(content: str) -> Dict[str, str]:
    """``<PackageReference Include=... Version=...>`` in either attribute order."""
    return _collect(content, _REFERENCE, _REFERENCE_REVERSED)


class NuGetAdapter(EcosystemAdapter):
    ecosystem = "nuget"
    manifest_files = ("packages.config", "*.csproj")

    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        if filename.lower().endswith(".csproj") or "<PackageReference" in content:
            return parse_csproj(content)
        return parse_packages_config(content)
