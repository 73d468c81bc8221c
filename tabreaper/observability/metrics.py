"""Prometheus metrics for the sweep loop."""

from __future__ import annotations

import threading

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

from ..logging_utils import get_logger


class SweepMetrics:
    """Counters fed from sweep reports; optionally exported over HTTP."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._log = get_logger("metrics")
        self._started = threading.Event()
        self.sweeps_total = Counter(
            "tabreaper_sweeps_total", "Sweeps executed", registry=self.registry
        )
        self.sweeps_dropped_total = Counter(
            "tabreaper_sweeps_dropped_total",
            "Ticks dropped because a sweep was still running",
            registry=self.registry,
        )
        self.sweep_errors_total = Counter(
            "tabreaper_sweep_errors_total", "Sweeps aborted by an error", registry=self.registry
        )
        self.evictions_total = Counter(
            "tabreaper_evictions_total", "Items evicted", registry=self.registry
        )
        self.eviction_failures_total = Counter(
            "tabreaper_eviction_failures_total",
            "Eviction attempts that failed",
            ["kind"],
            registry=self.registry,
        )
        self.candidates = Gauge(
            "tabreaper_sweep_candidates", "Candidates seen by the last sweep", registry=self.registry
        )

    def start(self, port: int) -> None:
        if not self._started.is_set():
            start_http_server(port, registry=self.registry)
            self._started.set()
            self._log.info("Prometheus exporter listening on {}", port)

    def observe(self, report) -> None:
        if report.dropped:
            self.sweeps_dropped_total.inc()
            return
        self.sweeps_total.inc()
        self.candidates.set(report.candidates)
        if report.evicted:
            self.evictions_total.inc(len(report.evicted))
        for failure in report.failures:
            self.eviction_failures_total.labels(kind=failure.kind).inc()

    def observe_error(self) -> None:
        self.sweep_errors_total.inc()
