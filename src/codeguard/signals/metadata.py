from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

COMMIT_CONFIDENCE = 0.90
PR_CONFIDENCE = 0.85
TRAILER_CONFIDENCE = 0.95

COPILOT_TRAILER = "Co-authored-by: GitHub Copilot"

AI_COMMIT_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bcopilot\b",
        r"\bcursor\b",
        r"\bcodeium\b",
        r"generated\s+(?:by|with|using)\s+(?:ai|claude|chatgpt|gpt|openai|copilot|gemini|llm)",
        r"ai[- ]assisted",
        r"auto[- ]generated",
        r"\[ai\]",
        r"\[copilot\]",
        r"co-authored-by:[^\n]*?(?:copilot|github|noreply)",
        "\U0001F916",
    )
)

AI_PR_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"generated\s+(?:by|with|using)\s+(?:ai|claude|chatgpt|gpt|copilot)",
        r"ai[- ]generated",
        r"this\s+pr\s+was\s+(?:created|generated)\s+(?:by|with|using)",
        r"copilot\s+suggestion",
        r"claude\s+(?:wrote|generated|created)",
    )
)


@dataclass(frozen=True)
class MetadataSignal:
    matched: bool
    confidence: float = 0.0
    source: Optional[str] = None
    matched_text: Optional[str] = None


NO_METADATA = MetadataSignal(matched=False)


def analyze_metadata(
    commit_message: str,
    pr_title: Optional[str] = None,
    pr_body: Optional[str] = None,
) -> MetadataSignal:
    """Look for AI-tool attribution in commit and pull request text.

    The explicit Copilot co-author trailer is checked first since it is the
    strongest evidence; then commit phrases, then the PR title and body.
    """
    commit_message = commit_message or ""

    if COPILOT_TRAILER in commit_message:
        return MetadataSignal(
            matched=True,
            confidence=TRAILER_CONFIDENCE,
            source="copilot_trailer",
            matched_text=COPILOT_TRAILER,
        )

    for pattern in AI_COMMIT_PATTERNS:
        match = pattern.search(commit_message)
        if match:
            return MetadataSignal(
                matched=True,
                confidence=COMMIT_CONFIDENCE,
                source="commit_message",
                matched_text=match.group(0),
            )

    pr_text = f"{pr_title or ''} {pr_body or ''}"
    for pattern in AI_PR_PATTERNS:
        match = pattern.search(pr_text)
        if match:
            return MetadataSignal(
                matched=True,
                confidence=PR_CONFIDENCE,
                source="pr_description",
                matched_text=match.group(0),
            )

    return NO_METADATA
