from .base import Advisory, DependencyVulnerability, EcosystemAdapter, load_advisories
from .scanner import (
    ADAPTERS,
    DependencyScanResult,
    EcosystemScanResult,
    find_manifests,
    scan_all_dependencies,
    scan_ecosystem,
)
from .versions import clean_version, compare_versions, is_vulnerable, parse_version

__all__ = [
    "ADAPTERS",
    "Advisory",
    "DependencyScanResult",
    "DependencyVulnerability",
    "EcosystemAdapter",
    "EcosystemScanResult",
    "clean_version",
    "compare_versions",
    "find_manifests",
    "is_vulnerable",
    "load_advisories",
    "parse_version",
    "scan_all_dependencies",
    "scan_ecosystem",
]
