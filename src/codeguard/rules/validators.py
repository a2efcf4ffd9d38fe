"""Named refinements that rules reference from catalog data via ``"validator"``."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Match, Optional

from ..errors import RuleCatalogError


@dataclass(frozen=True)
class RuleContext:
    lines: List[str]
    line_index: int
    match: Match[str]
    language: str
    file_path: Optional[str] = None

    @property
    def line(self) -> str:
        return self.lines[self.line_index]


Validator = Callable[[RuleContext], bool]

_VALIDATORS: Dict[str, Validator] = {}

_QUOTED_VALUE = re.compile(r"""[:=]\s*['"`]([^'"`]*)""")
_ENV_LOOKUP = re.compile(r"""[:=]\s*(?:process\.env|os\.environ|os\.getenv|System\.getenv|ENV\[)""")
_SECRET_PLACEHOLDER = re.compile(
    r"^(?:test|example|demo|placeholder|changeme|change_me|dummy|todo|xxx|your[_-]|replace|<)",
    re.IGNORECASE,
)
_API_KEY_PLACEHOLDER = re.compile(
    r"^(?:test|example|demo|placeholder|public|dummy|todo|xxx|your[_-]|replace|<)",
    re.IGNORECASE,
)


def register_validator(name: str) -> Callable[[Validator], Validator]:
    def decorator(func: Validator) -> Validator:
        _VALIDATORS[name] = func
        return func

    return decorator


def get_validator(name: str) -> Validator:
    try:
        return _VALIDATORS[name]
    except KeyError as exc:
        raise RuleCatalogError(f"Unknown rule validator: {name}") from exc


def _quoted_value(line: str) -> Optional[str]:
    found = _QUOTED_VALUE.search(line)
    return found.group(1) if found else None


@register_validator("placeholder_secret")
def validate_hardcoded_secret(ctx: RuleContext) -> bool:
    """Keep the finding unless the literal is a placeholder or comes from the environment."""
    if _ENV_LOOKUP.search(ctx.line):
        return False
    value = _quoted_value(ctx.line)
    if value is not None and _SECRET_PLACEHOLDER.match(value):
        return False
    return True


@register_validator("placeholder_api_key")
def validate_hardcoded_api_key(ctx: RuleContext) -> bool:
    if _ENV_LOOKUP.search(ctx.line):
        return False
    value = _quoted_value(ctx.line)
    if value is not None and _API_KEY_PLACEHOLDER.match(value):
        return False
    return True


@register_validator("not_in_test_block")
def validate_not_in_test_block(ctx: RuleContext) -> bool:
    """Suppress matches inside ``describe(``/``it(``/``def test_`` blocks a few lines up."""
    window = ctx.lines[max(0, ctx.line_index - 5) : ctx.line_index]
    return not any(re.match(r"\s*(?:describe|it|test)\s*\(|\s*def test_", line) for line in window)
