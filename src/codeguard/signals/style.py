"""
Stylistic heuristics for AI-authored code.

Each analyzer returns a value in [0, 1] where higher means "more like
generated code": long descriptive identifiers, uniformly capitalised
comments, no human typo markers, perfectly regular indentation, try/except
around most functions, boilerplate guards, formal docstrings, sorted imports.
"""
from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass
from functools import reduce
from typing import Dict, Optional

STYLE_WEIGHTS: Dict[str, float] = {
    "naming_verbosity": 0.20,
    "comment_uniformity": 0.15,
    "typo_absence": 0.10,
    "indent_consistency": 0.10,
    "error_handling_ratio": 0.15,
    "boilerplate_ratio": 0.10,
    "docstring_formality": 0.10,
    "import_organization": 0.10,
}

COMMON_KEYWORDS = frozenset(
    {
        "if", "else", "for", "while", "return", "const", "let", "var",
        "function", "class", "import", "export", "from", "async", "await",
        "try", "catch", "throw", "new", "this", "true", "false", "null",
        "undefined", "def", "self", "None", "True", "False",
    }
)

_PY_IDENTIFIER = re.compile(r"\b([a-z][a-z0-9_]*)\b")
_IDENTIFIER = re.compile(r"\b([a-z][a-zA-Z0-9]*)\b")
_PY_COMMENT = re.compile(r"^\s*#\s*(.+)$", re.MULTILINE)
_COMMENT = re.compile(r"^\s*//\s*(.+)$", re.MULTILINE)

HUMAN_MARKERS = (
    re.compile(r"\bteh\b"),
    re.compile(r"\breciever\b"),
    re.compile(r"\boccured\b"),
    re.compile(r"\bseperator\b"),
    re.compile(r"\blenght\b"),
    re.compile(r"\bwidht\b"),
    re.compile(r"\bretrun\b"),
    re.compile(r"\bfunciton\b"),
    re.compile(r"\btodo\b", re.IGNORECASE),
    re.compile(r"\bfixme\b", re.IGNORECASE),
    re.compile(r"\bhack\b", re.IGNORECASE),
    re.compile(r"\bugly\b", re.IGNORECASE),
    re.compile(r"\bwtf\b", re.IGNORECASE),
    re.compile(r"\bxxx\b", re.IGNORECASE),
)

_FUNCTION_DEFS = re.compile(r"function\s|def\s+\w+|const\s+\w+\s*=\s*(?:async\s*)?\(")
_PY_TRY = re.compile(r"\btry\s*:")
_TRY = re.compile(r"\btry\s*\{")

BOILERPLATE_PATTERNS = (
    re.compile(r"if\s*\(!?\w+\)\s*(?:return|throw)\s"),
    re.compile(r"console\.(?:log|error|warn)"),
    re.compile(r"res\.status\(\d+\)\.json"),
    re.compile(r"throw new (?:Error|TypeError|RangeError)"),
)
_STATEMENT_BREAKS = re.compile(r";|\n")

_PY_FORMAL_DOC = re.compile(r'"""\s*\n\s*(?:Args|Returns|Raises|Parameters|Yields):')
_FORMAL_DOC = re.compile(r"@(?:param|returns|throws|example)\s")
_DOC_TARGETS = re.compile(r"function\s|def\s|const\s+\w+\s*=")


@dataclass(frozen=True)
class StyleSignals:
    naming_verbosity: float
    comment_uniformity: float
    typo_absence: float
    indent_consistency: float
    error_handling_ratio: float
    boilerplate_ratio: float
    docstring_formality: float
    import_organization: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class StyleResult:
    score: float
    signals: StyleSignals


def _is_python(language: Optional[str]) -> bool:
    return (language or "").lower() == "python"


def naming_verbosity(code: str, language: Optional[str]) -> float:
    pattern = _PY_IDENTIFIER if _is_python(language) else _IDENTIFIER
    identifiers = [
        identifier
        for identifier in pattern.findall(code)
        if len(identifier) > 2 and identifier not in COMMON_KEYWORDS
    ]
    if not identifiers:
        return 0.5

    average = sum(len(identifier) for identifier in identifiers) / len(identifiers)
    if average > 18:
        return 0.95
    if average > 14:
        return 0.8
    if average > 10:
        return 0.5
    return 0.2


def comment_uniformity(code: str, language: Optional[str]) -> float:
    pattern = _PY_COMMENT if _is_python(language) else _COMMENT
    comments = [comment.strip() for comment in pattern.findall(code)]
    if len(comments) < 2:
        return 0.5

    capitalized = sum(1 for comment in comments if comment[:1].isupper()) / len(comments)
    average = sum(len(comment) for comment in comments) / len(comments)
    variance = sum((len(comment) - average) ** 2 for comment in comments) / len(comments)
    normalized_variance = min(variance / 500, 1.0)
    return min(capitalized * (1 - normalized_variance), 1.0)


def typo_absence(code: str) -> float:
    return 0.1 if any(marker.search(code) for marker in HUMAN_MARKERS) else 0.7


def indent_consistency(code: str) -> float:
    lines = [line for line in code.split("\n") if line.strip()]
    if len(lines) < 5:
        return 0.5

    indents = [len(line) - len(line.lstrip()) for line in (line.expandtabs(4) for line in lines)]
    non_zero = [indent for indent in indents if indent > 0]
    if not non_zero:
        return 0.5

    # A one-column unit means odd indents are mixed in with the regular ones.
    unit = reduce(math.gcd, non_zero)
    return 0.8 if unit >= 2 else 0.3


def error_handling_ratio(code: str, language: Optional[str]) -> float:
    functions = len(_FUNCTION_DEFS.findall(code)) or 1
    try_pattern = _PY_TRY if _is_python(language) else _TRY
    ratio = len(try_pattern.findall(code)) / functions
    if ratio > 0.8:
        return 0.9
    if ratio > 0.5:
        return 0.6
    return 0.2


def boilerplate_ratio(code: str) -> float:
    matches = sum(len(pattern.findall(code)) for pattern in BOILERPLATE_PATTERNS)
    statements = len(_STATEMENT_BREAKS.findall(code)) or 1
    ratio = matches / statements
    if ratio > 0.3:
        return 0.8
    if ratio > 0.15:
        return 0.5
    return 0.2


def docstring_formality(code: str, language: Optional[str]) -> float:
    pattern = _PY_FORMAL_DOC if _is_python(language) else _FORMAL_DOC
    functions = len(_DOC_TARGETS.findall(code)) or 1
    ratio = len(pattern.findall(code)) / functions
    if ratio > 0.8:
        return 0.85
    if ratio > 0.4:
        return 0.5
    return 0.15


def import_organization(code: str) -> float:
    imports = [
        line.strip().lower()
        for line in code.split("\n")
        if line.strip().startswith(("import ", "from "))
    ]
    if len(imports) < 3:
        return 0.5
    return 0.75 if imports == sorted(imports) else 0.25


def analyze_style(code: str, language: Optional[str]) -> StyleResult:
    signals = StyleSignals(
        naming_verbosity=naming_verbosity(code, language),
        comment_uniformity=comment_uniformity(code, language),
        typo_absence=typo_absence(code),
        indent_consistency=indent_consistency(code),
        error_handling_ratio=error_handling_ratio(code, language),
        boilerplate_ratio=boilerplate_ratio(code),
        docstring_formality=docstring_formality(code, language),
        import_organization=import_organization(code),
    )
    values = signals.to_dict()
    score = sum(values[name] * weight for name, weight in STYLE_WEIGHTS.items())
    return StyleResult(score=min(score, 1.0), signals=signals)
