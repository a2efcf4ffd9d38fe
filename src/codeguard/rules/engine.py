from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Pattern, Tuple, Union

from ..constants import Limits
from ..errors import RuleCatalogError
from ..languages import is_comment_line, is_test_path
from ..models import Finding
from .validators import RuleContext, get_validator

logger = logging.getLogger(__name__)

CATALOG_DIR = Path(__file__).parent / "catalog"
SCHEMA_VERSION = "1.0"

_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


@dataclass(frozen=True)
class Rule:
    id: str
    severity: str
    category: str
    title: str
    description: str
    remediation: str
    pattern: Pattern[str]
    languages: Union[str, FrozenSet[str]] = "*"
    validator: Optional[str] = None
    negative_match: bool = False
    first_match_only: bool = False
    skip_test_files: bool = False
    comment_only: bool = False
    mask_match: bool = False
    file_type: Optional[str] = None
    cwe: Optional[str] = None
    link: Optional[str] = None

    def applies_to(self, language: Optional[str]) -> bool:
        if self.languages == "*":
            return True
        return bool(language) and language.lower() in self.languages


@dataclass(frozen=True)
class RuleSet:
    name: str
    rules: Tuple[Rule, ...]
    match_chars: int = Limits.MAX_MATCH_CHARS

    def for_file_type(self, *file_types: str) -> "RuleSet":
        selected = tuple(rule for rule in self.rules if rule.file_type in file_types)
        return RuleSet(name=self.name, rules=selected, match_chars=self.match_chars)

    def get(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None

    def __len__(self) -> int:
        return len(self.rules)


def mask_secret(text: str) -> str:
    """Keep the first four characters of every long token."""
    masked = re.sub(
        r'(["\'])([A-Za-z0-9_\-]{8,})\1',
        lambda m: f"{m.group(1)}{m.group(2)[:4]}****{m.group(1)}",
        text,
    )
    return re.sub(r"\b([A-Za-z0-9_\-]{8,})\b", lambda m: f"{m.group(1)[:4]}****", masked)


def _truncate(text: str, max_chars: int) -> str:
    return text[:max_chars]


def _compile_rule(entry: Dict[str, Any], source: str) -> Rule:
    flags = 0
    for flag in entry.get("flags", ""):
        if flag not in _FLAGS:
            raise RuleCatalogError(f"{source}: unknown regex flag {flag!r} on {entry.get('id')}")
        flags |= _FLAGS[flag]
    try:
        pattern = re.compile(entry["pattern"], flags)
    except (KeyError, re.error) as exc:
        raise RuleCatalogError(f"{source}: invalid pattern on {entry.get('id')}: {exc}") from exc

    languages = entry.get("languages", "*")
    if languages != "*":
        languages = frozenset(lang.lower() for lang in languages)

    validator = entry.get("validator")
    if validator:
        get_validator(validator)

    return Rule(
        id=entry["id"],
        severity=entry["severity"],
        category=entry.get("category", ""),
        title=entry["title"],
        description=entry.get("description", ""),
        remediation=entry.get("remediation", ""),
        pattern=pattern,
        languages=languages,
        validator=validator,
        negative_match=bool(entry.get("negative_match", False)),
        first_match_only=bool(entry.get("first_match_only", False)),
        skip_test_files=bool(entry.get("skip_test_files", False)),
        comment_only=bool(entry.get("comment_only", False)),
        mask_match=bool(entry.get("mask_match", False)),
        file_type=entry.get("file_type"),
        cwe=entry.get("cwe"),
        link=entry.get("link"),
    )


def parse_ruleset(data: Dict[str, Any], source: str = "<memory>") -> RuleSet:
    """Build a :class:`RuleSet` from decoded catalog JSON."""
    if data.get("schema_version") != SCHEMA_VERSION:
        raise RuleCatalogError(f"Unsupported schema version in {source}")

    rules: List[Rule] = []
    seen: set[str] = set()
    for entry in data.get("rules", []):
        rule = _compile_rule(entry, source)
        if rule.id in seen:
            logger.warning("Duplicate rule id %s in %s; keeping the first definition", rule.id, source)
            continue
        seen.add(rule.id)
        rules.append(rule)

    return RuleSet(
        name=data.get("catalog", Path(source).stem),
        rules=tuple(rules),
        match_chars=int(data.get("match_chars", Limits.MAX_MATCH_CHARS)),
    )


@lru_cache(maxsize=None)
def load_ruleset(name: str, catalog_dir: Path = CATALOG_DIR) -> RuleSet:
    """Load and compile the packaged ``<name>.json`` catalog (cached)."""
    path = catalog_dir / f"{name}.json"
    if not path.is_file():
        raise RuleCatalogError(f"Rule catalog not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    return parse_ruleset(data, source=str(path))


def _make_finding(
    rule: Rule,
    ruleset: RuleSet,
    line: Optional[int],
    matched: Optional[str],
    file_path: Optional[str],
) -> Finding:
    matched_text = None
    if matched is not None:
        matched_text = _truncate(mask_secret(matched) if rule.mask_match else matched, ruleset.match_chars)
    return Finding(
        rule_id=rule.id,
        severity=rule.severity,
        category=rule.category,
        title=rule.title,
        description=rule.description,
        remediation=rule.remediation,
        file_path=file_path,
        line=line,
        matched_text=matched_text,
        cwe=rule.cwe,
        link=rule.link,
    )


def evaluate(
    text: str,
    language: Optional[str],
    ruleset: RuleSet,
    file_path: Optional[str] = None,
) -> List[Finding]:
    """
    Evaluate ``ruleset`` against ``text`` line by line.

    Findings come out line-major, in rule order within a line, followed by
    negative-match findings (rules whose pattern appears nowhere in the text).
    Pure: the same input always yields the same list.
    """
    skip_tests = file_path is not None and is_test_path(file_path)
    active = [
        rule
        for rule in ruleset.rules
        if rule.applies_to(language) and not (rule.skip_test_files and skip_tests)
    ]
    positive = [rule for rule in active if not rule.negative_match]
    negative = [rule for rule in active if rule.negative_match]

    lines = [line[: Limits.MAX_LINE_CHARS] for line in text.split("\n")]
    findings: List[Finding] = []
    fired: set[str] = set()

    for index, line in enumerate(lines):
        if not line.strip():
            continue
        comment: Optional[bool] = None
        for rule in positive:
            if rule.first_match_only and rule.id in fired:
                continue
            if rule.comment_only:
                if comment is None:
                    comment = is_comment_line(line)
                if not comment:
                    continue
            match = rule.pattern.search(line)
            if match is None:
                continue
            if rule.validator:
                ctx = RuleContext(
                    lines=lines,
                    line_index=index,
                    match=match,
                    language=language or "",
                    file_path=file_path,
                )
                if not get_validator(rule.validator)(ctx):
                    continue
            fired.add(rule.id)
            findings.append(_make_finding(rule, ruleset, index + 1, match.group(0), file_path))

    for rule in negative:
        if not any(rule.pattern.search(line) for line in lines):
            findings.append(_make_finding(rule, ruleset, None, None, file_path))

    return findings
