# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import logging

import pytest

from plainmcp import Configuration, InstrumentationEvent


def test_defaults() -> None:
    config = Configuration()
    assert config.validate_tool_call_arguments is True
    assert config.page_size is None
    assert config.exception_reporter is None


def test_rejects_unknown_protocol_version() -> None:
    with pytest.raises(ValueError):
        Configuration(protocol_version="1999-01-01")


def test_rejects_non_positive_page_size() -> None:
    with pytest.raises(ValueError):
        Configuration(page_size=0)


def test_from_env_reads_plainmcp_variables() -> None:
    config = Configuration.from_env(
        {
            "PLAINMCP_PROTOCOL_VERSION": "2025-03-26",
            "PLAINMCP_VALIDATE_ARGUMENTS": "false",
            "PLAINMCP_PAGE_SIZE": "25",
        }
    )

    assert config.protocol_version == "2025-03-26"
    assert config.validate_tool_call_arguments is False
    assert config.page_size == 25


def test_from_env_overrides_win() -> None:
    config = Configuration.from_env({"PLAINMCP_PAGE_SIZE": "25"}, page_size=5)
    assert config.page_size == 5


def test_from_env_rejects_bad_page_size() -> None:
    with pytest.raises(ValueError):
        Configuration.from_env({"PLAINMCP_PAGE_SIZE": "many"})


def test_from_env_uses_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLAINMCP_VALIDATE_ARGUMENTS", "0")
    assert Configuration.from_env().validate_tool_call_arguments is False


def test_evolve_returns_a_copy() -> None:
    config = Configuration()
    evolved = config.evolve(page_size=3)
    assert evolved.page_size == 3
    assert config.page_size is None


def test_default_reporter_logs_with_traceback(caplog: pytest.LogCaptureFixture) -> None:
    config = Configuration()
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        error = exc

    with caplog.at_level(logging.ERROR, logger="plainmcp.configuration"):
        config.report_exception(error, None)

    [record] = [r for r in caplog.records if r.name == "plainmcp.configuration"]
    assert "boom" in record.getMessage()
    assert record.exc_info is not None


def test_instrumentation_event_as_dict() -> None:
    event = InstrumentationEvent(method="ping", duration=0.5, request_id=1, error="internal_error")
    payload = event.as_dict()
    assert payload["method"] == "ping"
    assert payload["error"] == "internal_error"
    assert payload["extra"] == {}
    assert not event.ok
