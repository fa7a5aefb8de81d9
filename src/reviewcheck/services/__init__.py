"""Services for ReviewCheck."""

from .alerts import AlertSink, CollectingAlertSink, LoggingAlertSink, ProviderEvent
from .chunking import ChunkedAnalyzer
from .health import ProviderHealthTracker
from .orchestrator import AnalysisJob, AnalysisOrchestrator, AnalysisWorkerPool
from .providers import (
    DeepSeekProvider,
    OllamaProvider,
    OpenAIProvider,
    ReviewAnalysisProvider,
    build_providers,
)
from .router import ProviderRouter
from .store import DiskProductStore, InMemoryProductStore, ProductStore

__all__ = [
    "AlertSink",
    "CollectingAlertSink",
    "LoggingAlertSink",
    "ProviderEvent",
    "ChunkedAnalyzer",
    "ProviderHealthTracker",
    "AnalysisJob",
    "AnalysisOrchestrator",
    "AnalysisWorkerPool",
    "DeepSeekProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "ReviewAnalysisProvider",
    "build_providers",
    "ProviderRouter",
    "DiskProductStore",
    "InMemoryProductStore",
    "ProductStore",
]
