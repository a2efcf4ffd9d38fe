from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

logger = logging.getLogger(__name__)

LicenseRisk = Literal["permissive", "weak-copyleft", "strong-copyleft", "unknown"]

_PERMISSIVE = (
    "MIT", "ISC", "BSD-2-Clause", "BSD-3-Clause", "Apache-2.0", "0BSD", "Unlicense", "CC0-1.0",
    "CC-BY-4.0", "CC-BY-3.0", "Zlib", "BlueOak-1.0.0", "Python-2.0", "PSF-2.0", "Artistic-2.0", "WTFPL",
)
_WEAK_COPYLEFT = (
    "LGPL-2.0", "LGPL-2.1", "LGPL-3.0", "LGPL-2.0-only", "LGPL-2.1-only", "LGPL-3.0-only",
    "LGPL-2.0-or-later", "LGPL-2.1-or-later", "LGPL-3.0-or-later", "MPL-2.0", "EPL-1.0", "EPL-2.0",
    "CDDL-1.0", "CDDL-1.1",
)
_STRONG_COPYLEFT = (
    "GPL-2.0", "GPL-3.0", "GPL-2.0-only", "GPL-3.0-only", "GPL-2.0-or-later", "GPL-3.0-or-later",
    "AGPL-3.0", "AGPL-3.0-only", "AGPL-3.0-or-later", "SSPL-1.0", "EUPL-1.2", "OSL-3.0",
)

LICENSE_CLASSIFICATIONS: Dict[str, LicenseRisk] = {
    **{spdx: "permissive" for spdx in _PERMISSIVE},
    **{spdx: "weak-copyleft" for spdx in _WEAK_COPYLEFT},
    **{spdx: "strong-copyleft" for spdx in _STRONG_COPYLEFT},
}

LICENSE_ALIASES = {
    "Apache 2.0": "Apache-2.0",
    "Apache License 2.0": "Apache-2.0",
    "Apache-2": "Apache-2.0",
    "BSD": "BSD-2-Clause",
    "BSD-2": "BSD-2-Clause",
    "BSD-3": "BSD-3-Clause",
    "GPLv2": "GPL-2.0",
    "GPLv3": "GPL-3.0",
    "LGPLv2": "LGPL-2.0",
    "LGPLv2.1": "LGPL-2.1",
    "LGPLv3": "LGPL-3.0",
    "AGPLv3": "AGPL-3.0",
    "Public Domain": "Unlicense",
}

_OR_EXPRESSION = re.compile(r"^\(?\s*([^()]+?)\s+OR\s+", re.IGNORECASE)


def normalize_license(raw: str) -> str:
    """Reduce a license string to an SPDX-like id; for ``A OR B`` the first choice is used."""
    trimmed = raw.strip()
    choice = _OR_EXPRESSION.match(trimmed)
    if choice:
        return normalize_license(choice.group(1))
    cleaned = trimmed.rstrip("+")
    return LICENSE_ALIASES.get(cleaned, cleaned)


def classify_license(raw: str) -> LicenseRisk:
    return LICENSE_CLASSIFICATIONS.get(normalize_license(raw), "unknown")


@dataclass(frozen=True)
class LicenseFinding:
    package_name: str
    version: str
    license: str
    risk: LicenseRisk
    ecosystem: str = "npm"


@dataclass
class LicenseResult:
    total_packages: int = 0
    permissive_count: int = 0
    weak_copyleft_count: int = 0
    strong_copyleft_count: int = 0
    unknown_count: int = 0
    findings: List[LicenseFinding] = field(default_factory=list)
    scanned: bool = False

    def record(self, name: str, version: str, license_name: str, risk: LicenseRisk) -> None:
        self.total_packages += 1
        if risk == "permissive":
            self.permissive_count += 1
            return
        if risk == "weak-copyleft":
            self.weak_copyleft_count += 1
        elif risk == "strong-copyleft":
            self.strong_copyleft_count += 1
        else:
            self.unknown_count += 1
        self.findings.append(LicenseFinding(package_name=name, version=version, license=license_name, risk=risk))

    def to_summary(self) -> Dict[str, Any]:
        return {
            "scanned": self.scanned,
            "total_packages": self.total_packages,
            "permissive": self.permissive_count,
            "weak_copyleft": self.weak_copyleft_count,
            "strong_copyleft": self.strong_copyleft_count,
            "unknown": self.unknown_count,
        }


def _license_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return str(value.get("type") or "")
    return ""


def _package_name(lock_key: str) -> Optional[str]:
    marker = "node_modules/"
    index = lock_key.rfind(marker)
    if index == -1:
        return None
    name = lock_key[index + len(marker) :]
    if not name or name.startswith("."):
        return None
    return name


def scan_npm_licenses(content: str, is_lockfile: bool) -> LicenseResult:
    """
    Classify npm licenses.

    Lockfiles (v2+) contribute every ``packages`` entry; a package without a
    license is reported as ``UNLICENSED``/unknown. A plain package.json only
    contributes the project's own license.
    """
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        logger.warning("Could not parse npm manifest for license scan: %s", exc)
        return LicenseResult()
    if not isinstance(parsed, dict):
        return LicenseResult()

    result = LicenseResult(scanned=True)

    if is_lockfile:
        packages = parsed.get("packages") or {}
        for key, meta in packages.items():
            if not key or not isinstance(meta, dict) or not meta.get("version"):
                continue
            name = _package_name(key)
            if name is None:
                continue
            license_name = _license_string(meta.get("license"))
            if not license_name:
                result.record(name, meta["version"], "UNLICENSED", "unknown")
                continue
            result.record(name, meta["version"], license_name, classify_license(license_name))
        return result

    license_name = _license_string(parsed.get("license"))
    if license_name:
        result.record(
            str(parsed.get("name") or "project"),
            str(parsed.get("version") or "0.0.0"),
            license_name,
            classify_license(license_name),
        )
    return result
