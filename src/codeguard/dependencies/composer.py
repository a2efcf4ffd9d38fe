from __future__ import annotations

import json
from typing import Dict

from ..errors import ManifestParseError
from .base import EcosystemAdapter, merge_specs


def parse_composer_json(content: str, filename: str = "composer.json") -> Dict[str, str]:
    """Merge ``require`` and ``require-dev``, dropping the ``php`` platform and ``ext-*`` entries."""
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ManifestParseError(f"{filename}: invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ManifestParseError(f"{filename}: expected a JSON object")

    merged = merge_specs(parsed.get("require"), parsed.get("require-dev"))
    return {name: spec for name, spec in merged.items() if name != "php" and not name.startswith("ext-")}


class ComposerAdapter(EcosystemAdapter):
    ecosystem = "composer"
    manifest_files = ("composer.json",)

    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        return parse_composer_json(content, filename)
