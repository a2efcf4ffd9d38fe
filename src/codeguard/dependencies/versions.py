"""
Minimal version arithmetic for advisory ranges.

Ranges are a ``||``-separated list of clauses; a clause is one or more
space-separated comparators (``<X``, ``<=X``, ``>X``, ``>=X``, ``=X`` or a bare
version) that must all hold. When the branches skip whole major lines, a
branch with only an upper bound (``<=3.1.3``) is limited to the major version
of that bound. Anything that cannot be parsed never matches.
"""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

Version = Tuple[int, int, int]

_UNRESOLVABLE = re.compile(r"^(?:workspace:|file:|git[+:]|https?:|ssh:|\*|latest)", re.IGNORECASE)
_RANGE_PREFIX = re.compile(r"^[~^>=<|!\sv\[(]+")
_VERSION = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")
_COMPARATOR = re.compile(r"(<=|>=|<|>|=)?\s*(v?\d+(?:\.\d+){0,2}[0-9A-Za-z.+-]*)")


def clean_version(spec: str) -> Optional[str]:
    """Reduce a manifest version spec (``^1.2``, ``~> 7.0``, ``v0.17.0``) to ``major.minor.patch``."""
    spec = (spec or "").strip()
    if not spec or _UNRESOLVABLE.match(spec):
        return None
    cleaned = _RANGE_PREFIX.sub("", spec).strip()
    parsed = parse_version(cleaned)
    if parsed is None:
        return None
    return "%d.%d.%d" % parsed


def parse_version(value: str) -> Optional[Version]:
    match = _VERSION.match((value or "").strip())
    if not match:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor or 0), int(patch or 0)


def compare_versions(left: str, right: str) -> Optional[int]:
    """Return -1, 0 or 1; ``None`` when either side does not parse."""
    a = parse_version(left)
    b = parse_version(right)
    if a is None or b is None:
        return None
    return (a > b) - (a < b)


def _parse_clause(clause: str) -> Optional[List[Tuple[str, str]]]:
    comparators: List[Tuple[str, str]] = []
    position = 0
    text = clause.strip()
    while position < len(text):
        if text[position].isspace():
            position += 1
            continue
        match = _COMPARATOR.match(text, position)
        if not match:
            return None
        comparators.append((match.group(1) or "=", match.group(2)))
        position = match.end()
    return comparators or None


def _satisfies(installed: str, operator: str, bound: str) -> bool:
    result = compare_versions(installed, bound)
    if result is None:
        return False
    if operator == "<":
        return result < 0
    if operator == "<=":
        return result <= 0
    if operator == ">":
        return result > 0
    if operator == ">=":
        return result >= 0
    return result == 0


def _lower_major(comparators: List[Tuple[str, str]]) -> Optional[int]:
    for op, bound in comparators:
        parsed = parse_version(bound)
        if op in (">", ">=") and parsed is not None:
            return parsed[0]
    return None


def _outside_release_line(installed: str, comparators: List[Tuple[str, str]], others: List[int]) -> bool:
    """
    True when an upper-bound-only branch should not match ``installed``.

    Only applies when another branch starts more than one major above this
    branch's bound: ``<=3.1.3 || >=9.0.0 <=9.0.6`` lists separate patch
    windows, so ``<=3.1.3`` covers the 3.x line alone. Contiguous ranges such
    as ``<1.5.5 || >=2.0.0 <2.1.0`` keep the plain comparison.
    """
    if any(op not in ("<", "<=") for op, _ in comparators):
        return False
    current = parse_version(installed)
    for _, bound in comparators:
        parsed = parse_version(bound)
        if current is None or parsed is None:
            return False
        if any(major > parsed[0] + 1 for major in others) and current[0] != parsed[0]:
            return True
    return False


def is_vulnerable(installed: str, range_expr: str) -> bool:
    if parse_version(installed) is None:
        return False
    clauses = [_parse_clause(clause) for clause in (range_expr or "").split("||")]
    lower_majors = [_lower_major(comparators) if comparators else None for comparators in clauses]
    for index, comparators in enumerate(clauses):
        if not comparators:
            continue
        others = [major for position, major in enumerate(lower_majors) if position != index and major is not None]
        if others and _outside_release_line(installed, comparators, others):
            continue
        if all(_satisfies(installed, op, bound) for op, bound in comparators):
            return True
    return False
