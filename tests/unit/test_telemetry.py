"""Telemetry context behavior when disabled and enabled."""

import pytest

from prompt_orchestrator import telemetry
from prompt_orchestrator.telemetry import (
    SimpleReporter,
    TelemetryContext,
    TelemetryReporter,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def telemetry_enabled(monkeypatch):
    monkeypatch.setattr(telemetry, "_TELEMETRY_ENABLED", True)


def test_disabled_returns_shared_no_op(monkeypatch):
    monkeypatch.setattr(telemetry, "_TELEMETRY_ENABLED", False)

    ctx = TelemetryContext(SimpleReporter())

    assert ctx is telemetry._NO_OP_SINGLETON
    assert not ctx.enabled
    with ctx("anything", key="value") as inner:
        inner.count("ignored")
        inner.gauge("ignored", 1.0)


def test_no_reporters_returns_no_op_even_when_enabled(telemetry_enabled):
    assert TelemetryContext() is telemetry._NO_OP_SINGLETON


def test_simple_reporter_satisfies_protocol():
    assert isinstance(SimpleReporter(), TelemetryReporter)


def test_nested_scopes_report_paths_and_depth(telemetry_enabled):
    reporter = SimpleReporter()
    ctx = TelemetryContext(reporter)

    with ctx("orchestrator"):
        with ctx("analyze", phase=1):
            ctx.count("calls")

    assert set(reporter.timings) == {"orchestrator", "orchestrator.analyze"}
    (_, inner_meta), = reporter.timings["orchestrator.analyze"]
    assert inner_meta["depth"] == 1
    assert inner_meta["parent_scope"] == "orchestrator"
    assert inner_meta["phase"] == 1
    (value, meta), = reporter.metrics["orchestrator.analyze.calls"]
    assert value == 1
    assert meta["metric_type"] == "counter"


def test_reporter_failures_are_logged_not_raised(telemetry_enabled, caplog):
    class Broken:
        def record_timing(self, scope, duration, **metadata):
            raise RuntimeError("reporter down")

        def record_metric(self, scope, value, **metadata):
            raise RuntimeError("reporter down")

    ctx = TelemetryContext(Broken())

    with ctx("scope"):
        ctx.gauge("g", 2.0)

    assert "reporter down" in caplog.text


def test_empty_scope_name_is_rejected(telemetry_enabled):
    ctx = TelemetryContext(SimpleReporter())

    with pytest.raises(ValueError), ctx(""):
        pass


def test_report_summarizes_timings_and_totals(telemetry_enabled):
    reporter = SimpleReporter()
    ctx = TelemetryContext(reporter)
    with ctx("phase"):
        ctx.count("fallbacks", 2)
        ctx.count("fallbacks")

    report = reporter.get_report()

    assert "=== Telemetry Report ===" in report
    assert "phase" in report
    assert reporter.total("phase.fallbacks") == 3
