"""Text-level complexity estimates (no parsing; braces and keywords only)."""
from __future__ import annotations

import re

DECISION_PATTERNS = (
    re.compile(r"\bif\b\s*\(?"),
    re.compile(r"\belse\s+if\b|\belif\b"),
    re.compile(r"\bfor\b\s*\(?"),
    re.compile(r"\bwhile\b\s*\(?"),
    re.compile(r"\bcase\s+"),
    re.compile(r"\bcatch\s*\(|\bexcept\b"),
    re.compile(r"&&|\band\b"),
    re.compile(r"\|\||\bor\b"),
    re.compile(r"\?[^?:.\[]"),
)

_FUNCTION_START = re.compile(
    r"(?:function\s+\w+"
    r"|(?:const|let|var)\s+\w+\s*=\s*(?:async\s+)?(?:function|\([^)]*\)\s*=>)"
    r"|def\s+\w+"
    r"|func\s+\w+"
    r"|(?:public|private|protected|static)\s+\w+\s+\w+\s*\()"
)


def cyclomatic_complexity(code: str) -> int:
    """1 plus the number of decision points found anywhere in ``code``."""
    return 1 + sum(len(pattern.findall(code)) for pattern in DECISION_PATTERNS)


def max_function_length(code: str) -> int:
    max_length = 0
    current = 0
    depth = 0
    in_function = False

    for line in code.split("\n"):
        trimmed = line.strip()
        if not in_function and _FUNCTION_START.search(trimmed):
            in_function = True
            current = 0
            depth = 0

        if in_function:
            current += 1
            depth += trimmed.count("{") - trimmed.count("}")
            if depth <= 0 and current > 1:
                max_length = max(max_length, current)
                in_function = False
                current = 0

    if in_function:
        max_length = max(max_length, current)
    return max_length


def max_nesting_depth(code: str) -> int:
    max_depth = 0
    depth = 0
    for char in code:
        if char == "{":
            depth += 1
            max_depth = max(max_depth, depth)
        elif char == "}":
            depth = max(0, depth - 1)
    return max_depth
