"""Unit tests for structured logging helpers."""

import json
import logging
from unittest.mock import MagicMock

import pytest

from shared.config import LogFormat, LogLevel
from shared.observability import (
    LogContext,
    cluster_var,
    external_call,
    get_logger,
    request_id_var,
    setup_logging,
)
from shared.observability.logging import REDACTED, add_request_context, redact_credentials


class TestLogContext:
    async def test_async_context_sets_and_resets(self):
        assert request_id_var.get() is None

        async with LogContext(request_id="req-1", cluster="clusterA"):
            assert request_id_var.get() == "req-1"
            assert cluster_var.get() == "clusterA"

        assert request_id_var.get() is None
        assert cluster_var.get() is None

    def test_nested_contexts_restore_outer(self):
        with LogContext(request_id="outer"):
            with LogContext(request_id="inner"):
                assert request_id_var.get() == "inner"
            assert request_id_var.get() == "outer"

    def test_empty_context(self):
        with LogContext():
            assert request_id_var.get() is None
            assert cluster_var.get() is None


class TestProcessors:
    def test_request_context_added(self):
        with LogContext(request_id="req-2", cluster="clusterA"):
            event = add_request_context(None, "info", {"event": "hello"})

        assert event["request_id"] == "req-2"
        assert event["cluster"] == "clusterA"
        assert "request_id" not in add_request_context(None, "info", {"event": "hello"})

    def test_explicit_cluster_wins(self):
        with LogContext(cluster="clusterA"):
            event = add_request_context(None, "info", {"event": "hello", "cluster": "clusterB"})

        assert event["cluster"] == "clusterB"

    def test_credentials_redacted(self):
        event = redact_credentials(
            None, "info", {"event": "Credential stored", "token": "abc", "cluster": "clusterA"}
        )

        assert event == {"event": "Credential stored", "token": REDACTED, "cluster": "clusterA"}


class TestExternalCall:
    def test_success_logs_completion(self):
        logger = MagicMock()

        with external_call(logger, "kubernetes", "list functions"):
            pass

        assert logger.debug.call_count == 2
        assert logger.debug.call_args.args == ("External call completed",)
        logger.warning.assert_not_called()

    def test_failure_logged_and_reraised(self):
        logger = MagicMock()

        with pytest.raises(ConnectionError):
            with external_call(logger, "event-publisher", "publish attempt 1"):
                raise ConnectionError("refused")

        kwargs = logger.warning.call_args.kwargs
        assert kwargs["external_service"] == "event-publisher"
        assert kwargs["error"] == "ConnectionError: refused"


class TestSetupLogging:
    def test_json_logging(self, caplog):
        setup_logging(log_level=LogLevel.INFO, log_format=LogFormat.JSON)

        with caplog.at_level(logging.INFO, logger="test.json"):
            get_logger("test.json").info("Tunnel opened", local_port=9091, token="secret")

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["event"] == "Tunnel opened"
        assert payload["local_port"] == 9091
        assert payload["token"] == REDACTED
        assert payload["service"] == "cluster-bridge"
        assert payload["level"] == "info"
        assert "timestamp" in payload

    def test_accepts_plain_strings(self):
        setup_logging(log_level="debug", log_format="text")

        assert logging.getLogger("httpx").level == logging.WARNING
