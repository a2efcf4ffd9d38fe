"""
Blend metadata, style and ML signals into one AI-authorship probability.

Missing optional signals shift their weight onto the ones present rather
than failing; the style signal is always available.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..config import CodeGuardSettings
from ..logging import ScanLogger
from ..models import RiskTier
from .metadata import MetadataSignal, analyze_metadata
from .ml_client import MlSignal, classify_with_ml
from .style import StyleResult, analyze_style

HIGH_RISK_THRESHOLD = 0.70
MEDIUM_RISK_THRESHOLD = 0.40


@dataclass(frozen=True)
class FusionResult:
    probability: float
    risk: RiskTier
    method: str


@dataclass(frozen=True)
class AiDetection:
    fusion: FusionResult
    metadata: MetadataSignal
    style: StyleResult
    ml: Optional[MlSignal]

    @property
    def probability(self) -> float:
        return self.fusion.probability


def round_probability(value: float) -> float:
    """Two decimals, halves rounded up (``0.125`` -> ``0.13``)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def risk_tier(probability: float) -> RiskTier:
    if probability >= HIGH_RISK_THRESHOLD:
        return "high"
    if probability >= MEDIUM_RISK_THRESHOLD:
        return "medium"
    return "low"


def fuse_signals(metadata: MetadataSignal, style_score: float, ml: Optional[MlSignal]) -> FusionResult:
    if metadata.matched and ml is not None:
        raw = 0.40 * metadata.confidence + 0.30 * style_score + 0.30 * ml.probability
        method = "metadata+style+ml"
    elif metadata.matched:
        raw = 0.45 * metadata.confidence + 0.55 * style_score
        method = "metadata+style"
    elif ml is not None:
        raw = 0.50 * style_score + 0.50 * ml.probability
        method = "style+ml"
    else:
        raw = style_score
        method = "style_only"

    # Tier uses the unrounded value.
    clamped = max(0.0, min(1.0, raw))
    return FusionResult(probability=round_probability(clamped), risk=risk_tier(clamped), method=method)


async def detect_ai_code(
    code: str,
    language: Optional[str],
    commit_message: str = "",
    pr_title: Optional[str] = None,
    pr_body: Optional[str] = None,
    settings: Optional[CodeGuardSettings] = None,
    logger: Optional[ScanLogger] = None,
) -> AiDetection:
    metadata = analyze_metadata(commit_message, pr_title, pr_body)
    style = analyze_style(code, language)
    ml = await classify_with_ml(code, language, settings=settings, logger=logger)
    return AiDetection(
        fusion=fuse_signals(metadata, style.score, ml),
        metadata=metadata,
        style=style,
        ml=ml,
    )
