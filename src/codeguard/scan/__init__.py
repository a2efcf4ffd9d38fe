from .orchestrator import ProcessOutcome, ScanOrchestrator
from .pipeline import FileAnalysis, analyze_file
from .summary import ScanTotals, build_summary, zero_summary

__all__ = [
    "FileAnalysis",
    "ProcessOutcome",
    "ScanOrchestrator",
    "ScanTotals",
    "analyze_file",
    "build_summary",
    "zero_summary",
]
