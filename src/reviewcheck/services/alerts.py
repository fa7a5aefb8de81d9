"""Failure and recovery signals for the operational layer."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class ProviderEvent:
    """Raw signal about a provider. Thresholds and escalation live elsewhere."""
    kind: str  # "failure" or "recovery"
    provider: str
    error_kind: str = ""
    message: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


class AlertSink:
    """Receives provider events."""

    def emit(self, event: ProviderEvent) -> None:
        raise NotImplementedError

    def failure(self, provider: str, error_kind: str, message: str, **context) -> None:
        self.emit(ProviderEvent("failure", provider, error_kind, message, context))

    def recovery(self, provider: str, **context) -> None:
        self.emit(ProviderEvent("recovery", provider, context=context))


class LoggingAlertSink(AlertSink):
    """Writes events to the log."""

    def emit(self, event: ProviderEvent) -> None:
        if event.kind == "failure":
            logger.error(
                f"Provider failure: {event.provider} [{event.error_kind}] {event.message} context={event.context}"
            )
        else:
            logger.info(f"Provider recovery: {event.provider} context={event.context}")


class CollectingAlertSink(AlertSink):
    """Keeps events in memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[ProviderEvent] = []

    def emit(self, event: ProviderEvent) -> None:
        with self._lock:
            self.events.append(event)

    def of_kind(self, kind: str) -> List[ProviderEvent]:
        with self._lock:
            return [e for e in self.events if e.kind == kind]
