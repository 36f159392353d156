from __future__ import annotations

from csrportal.services import telemetry


def test_request_latency_summary_percentiles() -> None:
    for latency in (10.0, 20.0, 30.0, 40.0):
        telemetry.record_request(path="/v1/members", method="GET", status_code=200, latency_ms=latency)
    telemetry.record_request(path="/v1/members", method="GET", status_code=503, latency_ms=100.0)
    summary = telemetry.request_latency_summary(60)
    assert summary["count"] == 5
    assert summary["errors"] == 1
    assert summary["p50"] == 30.0
    assert summary["p95"] == 100.0
    assert summary["max"] == 100.0


def test_store_latency_grouped_by_operation() -> None:
    telemetry.record_store_call(operation="members.list", latency_ms=5.0, success=True)
    telemetry.record_store_call(operation="members.list", latency_ms=7.0, success=False)
    telemetry.record_store_call(operation="dashboard.metrics", latency_ms=3.0, success=True)
    summary = telemetry.store_latency_by_operation(60)
    assert summary["members.list"]["count"] == 2
    assert summary["members.list"]["failures"] == 1
    assert summary["dashboard.metrics"]["p50"] == 3.0


def test_counters_and_reset() -> None:
    telemetry.increment_counter("store_timeouts_total")
    telemetry.increment_counter("store_timeouts_total", 2)
    assert telemetry.counters_snapshot() == {"store_timeouts_total": 3}
    telemetry.reset()
    assert telemetry.counters_snapshot() == {}
    assert telemetry.request_latency_summary(60)["count"] == 0
