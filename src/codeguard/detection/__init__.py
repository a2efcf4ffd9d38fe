from .code_quality import CodeQualityResult, calculate_grade, detect_code_quality, worse_grade
from .enhancements import EnhancementResult, detect_enhancements
from .infrastructure import detect_infrastructure, infra_file_type
from .licenses import LicenseResult, classify_license, normalize_license, scan_npm_licenses
from .sensitive_files import detect_sensitive_files
from .vulnerabilities import VulnerabilityResult, detect_vulnerabilities

__all__ = [
    "CodeQualityResult",
    "EnhancementResult",
    "LicenseResult",
    "VulnerabilityResult",
    "calculate_grade",
    "classify_license",
    "detect_code_quality",
    "detect_enhancements",
    "detect_infrastructure",
    "detect_sensitive_files",
    "detect_vulnerabilities",
    "infra_file_type",
    "normalize_license",
    "scan_npm_licenses",
    "worse_grade",
]
