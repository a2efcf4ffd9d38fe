from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Mapping, Optional

from ..models import DetectorResult, SeverityCounts
from ..rules import RuleSet, evaluate, load_ruleset

DOCKERFILE = "dockerfile"
GITHUB_ACTIONS = "github-actions"
DOCKER_COMPOSE = "docker-compose"

_WORKFLOW_PATH = re.compile(r"(?:^|/)\.github/workflows/[^/]+\.ya?ml$", re.IGNORECASE)
_COMPOSE_NAME = re.compile(r"^docker-compose[^/]*\.ya?ml$|^compose\.ya?ml$", re.IGNORECASE)


def infra_file_type(path: str) -> Optional[str]:
    normalized = path.replace("\\", "/")
    name = PurePosixPath(normalized).name.lower()
    if name == "dockerfile" or name.startswith("dockerfile.") or name.endswith(".dockerfile"):
        return DOCKERFILE
    if _WORKFLOW_PATH.search(normalized):
        return GITHUB_ACTIONS
    if _COMPOSE_NAME.match(name):
        return DOCKER_COMPOSE
    return None


def _rules_for(ruleset: RuleSet, file_type: str) -> RuleSet:
    if file_type != DOCKER_COMPOSE:
        return ruleset.for_file_type(file_type)
    # Compose files also get the positive Dockerfile checks (inline build steps, images).
    compose = ruleset.for_file_type(DOCKER_COMPOSE, DOCKERFILE)
    return RuleSet(
        name=compose.name,
        rules=tuple(rule for rule in compose.rules if not (rule.file_type == DOCKERFILE and rule.negative_match)),
        match_chars=compose.match_chars,
    )


def detect_infrastructure(files: Mapping[str, str]) -> DetectorResult:
    """Evaluate infrastructure rules over ``{path: content}`` for recognised infra files."""
    ruleset = load_ruleset("infrastructure")
    findings = []
    for path in sorted(files):
        file_type = infra_file_type(path)
        if file_type is None:
            continue
        findings.extend(evaluate(files[path], None, _rules_for(ruleset, file_type), file_path=path))
    return DetectorResult(findings=findings, counts=SeverityCounts.from_findings(findings))
