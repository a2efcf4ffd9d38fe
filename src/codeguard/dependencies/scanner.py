from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..constants import Limits
from ..errors import CodeGuardError
from ..languages import path_depth
from ..models import SeverityCounts
from .base import DependencyVulnerability, EcosystemAdapter
from .cargo import CargoAdapter
from .composer import ComposerAdapter
from .go import GoAdapter
from .maven import MavenAdapter
from .npm import NpmAdapter
from .nuget import NuGetAdapter
from .pip import PipAdapter
from .rubygems import RubyGemsAdapter
from .versions import clean_version, is_vulnerable

logger = logging.getLogger(__name__)

ADAPTERS: Tuple[EcosystemAdapter, ...] = (
    NpmAdapter(),
    PipAdapter(),
    MavenAdapter(),
    GoAdapter(),
    CargoAdapter(),
    RubyGemsAdapter(),
    ComposerAdapter(),
    NuGetAdapter(),
)

FetchFile = Callable[[str], Awaitable[Optional[str]]]


@dataclass
class EcosystemScanResult:
    ecosystem: str
    manifest_file: str
    total_dependencies: int
    findings: List[DependencyVulnerability] = field(default_factory=list)
    scanned: bool = True

    @property
    def counts(self) -> SeverityCounts:
        counts = SeverityCounts()
        for finding in self.findings:
            counts.add(finding.severity)
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ecosystem": self.ecosystem,
            "manifest_file": self.manifest_file,
            "total_dependencies": self.total_dependencies,
            "findings_count": len(self.findings),
        }


@dataclass
class DependencyScanResult:
    per_ecosystem: List[EcosystemScanResult] = field(default_factory=list)

    @property
    def ecosystems_scanned(self) -> List[str]:
        seen: List[str] = []
        for result in self.per_ecosystem:
            if result.ecosystem not in seen:
                seen.append(result.ecosystem)
        return seen

    @property
    def total_dependencies(self) -> int:
        return sum(result.total_dependencies for result in self.per_ecosystem)

    @property
    def findings(self) -> List[DependencyVulnerability]:
        return [finding for result in self.per_ecosystem for finding in result.findings]

    @property
    def counts(self) -> SeverityCounts:
        counts = SeverityCounts()
        for result in self.per_ecosystem:
            counts.merge(result.counts)
        return counts

    def to_summary(self) -> Dict[str, Any]:
        summary: Dict[str, Any] = {
            "ecosystems_scanned": self.ecosystems_scanned,
            "total_dependencies": self.total_dependencies,
        }
        summary.update(self.counts.to_dict())
        summary["findings"] = [finding.to_dict() for finding in self.findings]
        summary["per_ecosystem"] = [result.to_dict() for result in self.per_ecosystem]
        return summary


def scan_ecosystem(
    adapter: EcosystemAdapter,
    dependencies: Mapping[str, str],
    manifest_file: str,
) -> EcosystemScanResult:
    """Match parsed ``{name: spec}`` against the adapter's advisories."""
    advisories = adapter.advisories
    findings: List[DependencyVulnerability] = []
    for name, spec in dependencies.items():
        candidates = advisories.get(name)
        if not candidates:
            continue
        version = clean_version(spec)
        if version is None:
            continue
        for advisory in candidates:
            if is_vulnerable(version, advisory.vulnerable_range):
                findings.append(
                    DependencyVulnerability.from_advisory(
                        advisory,
                        ecosystem=adapter.ecosystem,
                        package_name=name,
                        installed_version=spec,
                        manifest_file=manifest_file,
                    )
                )
    return EcosystemScanResult(
        ecosystem=adapter.ecosystem,
        manifest_file=manifest_file,
        total_dependencies=len(dependencies),
        findings=findings,
    )


def find_manifests(
    paths: Iterable[str],
    adapters: Sequence[EcosystemAdapter] = ADAPTERS,
    max_depth: int = Limits.MANIFEST_MAX_DEPTH,
) -> Dict[Tuple[str, str], List[str]]:
    """Group manifest paths by ``(directory, ecosystem)`` in adapter priority order."""
    candidates: Dict[Tuple[str, str], List[Tuple[int, str]]] = {}
    for path in paths:
        normalized = path.replace("\\", "/")
        if path_depth(normalized) > max_depth:
            continue
        pure = PurePosixPath(normalized)
        for adapter in adapters:
            priority = adapter.manifest_priority(pure.name)
            if priority is None:
                continue
            key = (str(pure.parent), adapter.ecosystem)
            candidates.setdefault(key, []).append((priority, normalized))

    return {
        key: [path for _, path in sorted(entries)]
        for key, entries in sorted(candidates.items())
    }


async def scan_all_dependencies(
    tree_paths: Iterable[str],
    fetch_file: FetchFile,
    adapters: Sequence[EcosystemAdapter] = ADAPTERS,
) -> DependencyScanResult:
    """
    Scan manifests at depth <= 1 across every ecosystem.

    Within one directory and ecosystem the first manifest that yields any
    dependencies wins; siblings (package.json next to package-lock.json) are
    skipped so nothing is counted twice. Fetch and parse failures are logged
    and the next candidate is tried.
    """
    by_ecosystem = {adapter.ecosystem: adapter for adapter in adapters}
    result = DependencyScanResult()

    for (directory, ecosystem), manifest_paths in find_manifests(tree_paths, adapters).items():
        adapter = by_ecosystem[ecosystem]
        for manifest_path in manifest_paths:
            try:
                content = await fetch_file(manifest_path)
                if not content:
                    continue
                dependencies = adapter.parse_manifest(content, PurePosixPath(manifest_path).name)
            except CodeGuardError as exc:
                logger.warning("Skipping manifest %s (%s): %s", manifest_path, ecosystem, exc)
                continue
            if not dependencies:
                continue
            result.per_ecosystem.append(scan_ecosystem(adapter, dependencies, manifest_path))
            break

    if result.per_ecosystem:
        logger.info(
            "Dependency scan: %s, %d deps, %d finding(s)",
            ", ".join(result.ecosystems_scanned),
            result.total_dependencies,
            len(result.findings),
        )
    return result
