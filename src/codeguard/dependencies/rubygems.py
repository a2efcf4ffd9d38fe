from __future__ import annotations

import re
from typing import Dict

from .base import EcosystemAdapter

_GEM = re.compile(r"""^gem\s+['"]([^'"]+)['"]\s*(?:,\s*['"]([^'"]*)['"])?""")


def parse_gemfile(content: str) -> Dict[str, str]:
    """``gem 'name'[, 'constraint']`` lines; only the first constraint is kept."""
    deps: Dict[str, str] = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        match = _GEM.match(line)
        if match:
            deps[match.group(1)] = match.group(2) or "*"
    return deps


class RubyGemsAdapter(EcosystemAdapter):
    ecosystem = "rubygems"
    manifest_files = ("Gemfile",)

    def parse_manifest(self, content: str, filename: str) -> Dict[str, str]:
        return parse_gemfile(content)
