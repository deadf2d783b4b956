"""
Prometheus metrics for the ledger engine.

Exposes operation outcomes, failure kinds and the platform aggregates for
monitoring and alerting.
"""

import logging
import threading
from typing import Any, Dict, Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
    start_http_server,
)

logger = logging.getLogger(__name__)


class EngineMetrics:
    """
    Ledger engine metrics collection and exposure

    Provides Prometheus-compatible metrics for:
    - Entry point outcomes (committed / aborted)
    - Abort reasons by error kind
    - Arbitrage profit, volume and flash-loan fees
    - TVL and pool count
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics with custom registry or default"""
        self.registry = registry or REGISTRY
        self._initialize_metrics()
        self._server_started = False

        # Thread-safe access
        self._lock = threading.RLock()

    def _initialize_metrics(self):
        """Initialize all Prometheus metrics"""

        # === OPERATION METRICS ===
        self.operations_total = Counter(
            "arbitpy_ledger_operations_total",
            "Total entry point calls by outcome",
            ["operation", "outcome"],
            registry=self.registry,
        )

        self.failures_total = Counter(
            "arbitpy_ledger_failures_total",
            "Total aborted calls by error kind",
            ["operation", "error_kind"],
            registry=self.registry,
        )

        # === SETTLEMENT METRICS ===
        self.arbitrage_profit_total = Counter(
            "arbitpy_ledger_arbitrage_profit_total",
            "Cumulative gross arbitrage profit in raw units",
            ["asset"],
            registry=self.registry,
        )

        self.volume_total = Counter(
            "arbitpy_ledger_volume_total",
            "Cumulative volume routed through arbitrage and strategies",
            ["asset"],
            registry=self.registry,
        )

        self.flash_loan_fees_total = Counter(
            "arbitpy_ledger_flash_loan_fees_total",
            "Cumulative flash-loan fees collected",
            ["asset"],
            registry=self.registry,
        )

        # === STATE METRICS ===
        self.total_value_locked = Gauge(
            "arbitpy_ledger_total_value_locked",
            "Total value locked across all pools in raw units",
            registry=self.registry,
        )

        self.pool_count = Gauge(
            "arbitpy_ledger_pool_count",
            "Number of pools in the registry",
            registry=self.registry,
        )

        self.paused = Gauge(
            "arbitpy_ledger_paused",
            "1 when the engine is paused",
            registry=self.registry,
        )

    # === METRIC RECORDING METHODS ===

    def record_success(self, operation: str):
        with self._lock:
            self.operations_total.labels(operation=operation, outcome="committed").inc()

    def record_failure(self, operation: str, error_kind: str):
        """Record an aborted call"""
        with self._lock:
            self.operations_total.labels(operation=operation, outcome="aborted").inc()
            self.failures_total.labels(operation=operation, error_kind=error_kind).inc()

    def record_arbitrage(self, asset: str, amount_in: int, profit: int):
        with self._lock:
            self.volume_total.labels(asset=asset).inc(amount_in)
            if profit > 0:
                self.arbitrage_profit_total.labels(asset=asset).inc(profit)

    def record_strategy(self, asset: str, input_amount: int):
        with self._lock:
            self.volume_total.labels(asset=asset).inc(input_amount)

    def record_flash_loan(self, asset: str, fee: int):
        with self._lock:
            if fee > 0:
                self.flash_loan_fees_total.labels(asset=asset).inc(fee)

    def update_state(self, total_value_locked: int, pool_count: int, paused: bool):
        """Refresh gauges from the engine's aggregates"""
        with self._lock:
            self.total_value_locked.set(total_value_locked)
            self.pool_count.set(pool_count)
            self.paused.set(1 if paused else 0)

    # === SERVER ===

    def start_server(self, port: int = 8000, host: str = "0.0.0.0"):
        """Expose the registry over HTTP on ``host:port``"""
        if self._server_started:
            logger.warning("Metrics server already running")
            return
        start_http_server(port, addr=host, registry=self.registry)
        self._server_started = True
        logger.info(f"Metrics server started on {host}:{port}")

    def render(self) -> bytes:
        """Current metrics in Prometheus text format"""
        return generate_latest(self.registry)

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get a summary of current metric values"""
        with self._lock:
            summary: Dict[str, Any] = {
                "total_value_locked": self.registry.get_sample_value("arbitpy_ledger_total_value_locked"),
                "pool_count": self.registry.get_sample_value("arbitpy_ledger_pool_count"),
                "paused": bool(self.registry.get_sample_value("arbitpy_ledger_paused")),
                "operations": {},
            }
            for metric in self.operations_total.collect():
                for sample in metric.samples:
                    if not sample.name.endswith("_total"):
                        continue
                    key = f"{sample.labels['operation']}:{sample.labels['outcome']}"
                    summary["operations"][key] = int(sample.value)
            return summary


# Global metrics instance (singleton pattern)
_global_metrics: Optional[EngineMetrics] = None


def get_metrics() -> EngineMetrics:
    """Get or create global metrics instance"""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = EngineMetrics()
    return _global_metrics


def initialize_metrics(registry: Optional[CollectorRegistry] = None) -> EngineMetrics:
    """Initialize global metrics with custom registry"""
    global _global_metrics
    _global_metrics = EngineMetrics(registry)
    return _global_metrics
