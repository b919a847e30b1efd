"""SSP photodetector digitizer diagnostics."""

from .analyzer import JobSummary, RunSummary, SSPDiagnosticAnalyzer
from .config import AnalysisConfig, ConfigError, load_config

__all__ = [
    "AnalysisConfig",
    "ConfigError",
    "JobSummary",
    "RunSummary",
    "SSPDiagnosticAnalyzer",
    "load_config",
]

__version__ = "0.1.0"
