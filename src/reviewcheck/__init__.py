"""ReviewCheck - fake review detection across interchangeable LLM providers."""

__version__ = "1.0.0"
__author__ = "ReviewCheck Team"

from .core.models import *
from .core.config import settings, AnalysisConfig
from .services.orchestrator import AnalysisOrchestrator, AnalysisWorkerPool, AnalysisJob
from .services.router import ProviderRouter

__all__ = [
    "settings",
    "AnalysisConfig",
    "AnalysisOrchestrator",
    "AnalysisWorkerPool",
    "AnalysisJob",
    "ProviderRouter",
]
