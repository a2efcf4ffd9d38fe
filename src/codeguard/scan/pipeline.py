from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from ..config import CodeGuardSettings
from ..detection import (
    CodeQualityResult,
    EnhancementResult,
    VulnerabilityResult,
    detect_code_quality,
    detect_enhancements,
    detect_vulnerabilities,
)
from ..languages import detect_language
from ..logging import ScanLogger
from ..scoring.debt import round_half_up
from ..signals import AiDetection, detect_ai_code

AI_FILE_THRESHOLD = 0.5


@dataclass
class FileAnalysis:
    path: str
    language: Optional[str]
    total_loc: int
    detection: AiDetection
    vulnerabilities: VulnerabilityResult
    code_quality: CodeQualityResult
    enhancements: EnhancementResult

    @property
    def ai_probability(self) -> float:
        return self.detection.probability

    @property
    def ai_loc(self) -> int:
        return round_half_up(self.total_loc * self.ai_probability)

    @property
    def is_ai_file(self) -> bool:
        return self.ai_probability > AI_FILE_THRESHOLD

    def signals(self) -> Dict[str, Any]:
        detection = self.detection
        return {
            "method": detection.fusion.method,
            "metadata": asdict(detection.metadata),
            "style": {"score": round(detection.style.score, 4), "signals": detection.style.signals.to_dict()},
            "ml": asdict(detection.ml) if detection.ml is not None else None,
        }

    def to_row(self, scan_id: int, repository_id: int) -> Dict[str, Any]:
        return {
            "scan_id": scan_id,
            "repository_id": repository_id,
            "file_path": self.path,
            "language": self.language,
            "total_loc": self.total_loc,
            "ai_loc": self.ai_loc,
            "ai_probability": self.ai_probability,
            "risk_tier": self.detection.fusion.risk,
            "detection_method": self.detection.fusion.method,
            "signals": self.signals(),
            "vulnerabilities": self.vulnerabilities.to_dict(),
            "code_quality": self.code_quality.to_dict(),
            "enhancements": self.enhancements.to_dict(),
        }


def run_content_rules(
    content: str, language: Optional[str], path: str
) -> Tuple[VulnerabilityResult, CodeQualityResult, EnhancementResult]:
    return (
        detect_vulnerabilities(content, language, file_path=path),
        detect_code_quality(content, language, file_path=path),
        detect_enhancements(content, language, file_path=path),
    )


async def analyze_file(
    path: str,
    content: str,
    commit_message: str = "",
    settings: Optional[CodeGuardSettings] = None,
    logger: Optional[ScanLogger] = None,
) -> FileAnalysis:
    """Signals, fusion and the three content rule sets for one file."""
    language = detect_language(path)
    detection = await detect_ai_code(content, language, commit_message, settings=settings, logger=logger)
    # CPU-bound; runs off the event loop.
    vulnerabilities, quality, enhancements = await asyncio.to_thread(run_content_rules, content, language, path)
    return FileAnalysis(
        path=path,
        language=language,
        total_loc=len(content.split("\n")),
        detection=detection,
        vulnerabilities=vulnerabilities,
        code_quality=quality,
        enhancements=enhancements,
    )
