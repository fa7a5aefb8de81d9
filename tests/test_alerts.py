"""Tests for provider event sinks."""

import logging

from reviewcheck.services.alerts import CollectingAlertSink, LoggingAlertSink


def test_collecting_sink():
    sink = CollectingAlertSink()
    sink.failure("openai", "timeout", "slow", chunk_number=2)
    sink.recovery("openai", chunk_number=3)

    failure, = sink.of_kind("failure")
    assert failure.provider == "openai"
    assert failure.error_kind == "timeout"
    assert failure.context == {"chunk_number": 2}
    assert sink.of_kind("recovery")[0].context == {"chunk_number": 3}


def test_logging_sink(caplog):
    sink = LoggingAlertSink()
    with caplog.at_level(logging.INFO, logger="reviewcheck.services.alerts"):
        sink.failure("ollama", "http_error", "502")
        sink.recovery("ollama")
    assert "Provider failure: ollama [http_error] 502" in caplog.text
    assert "Provider recovery: ollama" in caplog.text
