from .fusion import AiDetection, FusionResult, detect_ai_code, fuse_signals, risk_tier
from .metadata import MetadataSignal, NO_METADATA, analyze_metadata
from .ml_client import MlSignal, classify_with_ml
from .style import StyleResult, StyleSignals, analyze_style

__all__ = [
    "AiDetection",
    "FusionResult",
    "MetadataSignal",
    "MlSignal",
    "NO_METADATA",
    "StyleResult",
    "StyleSignals",
    "analyze_metadata",
    "analyze_style",
    "classify_with_ml",
    "detect_ai_code",
    "fuse_signals",
    "risk_tier",
]
