from __future__ import annotations

import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque


@dataclass(frozen=True)
class RequestSample:
    ts: float
    path: str
    method: str
    status_code: int
    latency_ms: float


@dataclass(frozen=True)
class StoreCallSample:
    ts: float
    operation: str
    latency_ms: float
    success: bool


_request_samples: Deque[RequestSample] = deque(maxlen=20000)
_store_samples: Deque[StoreCallSample] = deque(maxlen=20000)
_counters: dict[str, int] = defaultdict(int)


def record_request(*, path: str, method: str, status_code: int, latency_ms: float) -> None:
    # Track request latency and status for ops visibility.
    _request_samples.append(
        RequestSample(
            ts=time.time(),
            path=path,
            method=method,
            status_code=status_code,
            latency_ms=latency_ms,
        )
    )


def record_store_call(*, operation: str, latency_ms: float, success: bool) -> None:
    _store_samples.append(
        StoreCallSample(
            ts=time.time(),
            operation=operation,
            latency_ms=latency_ms,
            success=success,
        )
    )


def increment_counter(name: str, value: int = 1) -> None:
    # Store counters for store failures and timeouts.
    _counters[name] += value


def counters_snapshot() -> dict[str, int]:
    return dict(_counters)


def _percentile(values: list[float], pct: float) -> float | None:
    # Nearest-rank percentile; stable for small sample sets.
    if not values:
        return None
    ordered = sorted(values)
    rank = max(1, math.ceil((pct / 100.0) * len(ordered)))
    return ordered[rank - 1]


def request_latency_summary(window_s: int) -> dict[str, float | int | None]:
    # Summarize request latency over a trailing window.
    cutoff = time.time() - window_s
    latencies = [sample.latency_ms for sample in _request_samples if sample.ts >= cutoff]
    errors = sum(
        1 for sample in _request_samples if sample.ts >= cutoff and sample.status_code >= 500
    )
    return {
        "count": len(latencies),
        "errors": errors,
        "p50": _percentile(latencies, 50),
        "p95": _percentile(latencies, 95),
        "max": max(latencies) if latencies else None,
    }


def store_latency_by_operation(window_s: int) -> dict[str, dict[str, float | int | None]]:
    cutoff = time.time() - window_s
    grouped: dict[str, list[StoreCallSample]] = defaultdict(list)
    for sample in _store_samples:
        if sample.ts >= cutoff:
            grouped[sample.operation].append(sample)
    summary: dict[str, dict[str, float | int | None]] = {}
    for operation, samples in grouped.items():
        latencies = [sample.latency_ms for sample in samples]
        summary[operation] = {
            "count": len(samples),
            "failures": sum(1 for sample in samples if not sample.success),
            "p50": _percentile(latencies, 50),
            "p95": _percentile(latencies, 95),
        }
    return summary


def reset() -> None:
    # Test hook; clears in-process samples and counters.
    _request_samples.clear()
    _store_samples.clear()
    _counters.clear()
