"""
Observability hooks for parser runs.

``parse_files`` reports per-file events and the engine's line anomaly
counters (lines seen, unmatched lines, unconvertible columns) to the global
ObservabilityManager. Hooks decide where they go: Python logging or a
Prometheus registry.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class MetricType(Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMER = "timer"


class EventType(Enum):
    PARSER_BOUND = "parser_bound"
    FILE_START = "file_start"
    FILE_COMPLETE = "file_complete"
    FILE_ERROR = "file_error"


@dataclass
class MetricEvent:
    """A single measurement, tagged with the table it belongs to."""
    metric_type: MetricType
    name: str
    value: float
    tags: Dict[str, str] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def __str__(self) -> str:
        tags = ",".join(f"{k}={v}" for k, v in sorted(self.tags.items()))
        return f"{self.name}:{self.value}|{self.metric_type.value}|{tags}"


@dataclass
class Event:
    """A lifecycle event of a table or one of its input files."""
    event_type: EventType
    table: Optional[str] = None
    file_path: Optional[Path] = None
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def __str__(self) -> str:
        parts = [self.event_type.value]
        if self.file_path:
            parts.append(f"file={Path(self.file_path).name}")
        if self.table:
            parts.append(f"table={self.table}")
        parts.extend(f"{k}={v}" for k, v in self.details.items())
        return " ".join(parts)


class ObservabilityHook:
    """Receives metrics and events; subclasses override what they need."""

    def on_metric(self, metric: MetricEvent) -> None:
        pass

    def on_event(self, event: Event) -> None:
        pass


class LoggingHook(ObservabilityHook):
    """Writes metrics at DEBUG and events at INFO (file errors at WARNING)."""

    def __init__(self, log_metrics: bool = True, log_events: bool = True):
        self.log_metrics = log_metrics
        self.log_events = log_events

    def on_metric(self, metric: MetricEvent) -> None:
        if self.log_metrics:
            logger.debug(f"METRIC: {metric}")

    def on_event(self, event: Event) -> None:
        if not self.log_events:
            return
        level = logging.WARNING if event.event_type is EventType.FILE_ERROR else logging.INFO
        logger.log(level, f"EVENT: {event}")


class PrometheusHook(ObservabilityHook):
    """Exports metrics to a Prometheus registry.

    Counters become ``<namespace>_<name>_total``, gauges ``<namespace>_<name>``
    and timers histograms in seconds. Tag keys become label names, so a metric
    must always be emitted with the same set of tags.

    Requires the ``prometheus`` extra (``pip install regex-line-parser[prometheus]``).
    """

    def __init__(self, namespace: str = "regex_line_parser", registry=None):
        try:
            import prometheus_client
        except ImportError as e:
            raise ImportError(
                "prometheus_client is required for PrometheusHook. "
                "Install with: pip install prometheus-client"
            ) from e
        self._prometheus = prometheus_client
        self.namespace = namespace
        self.registry = registry if registry is not None else prometheus_client.REGISTRY
        self._collectors: Dict[tuple, Any] = {}

    def _collector(self, metric: MetricEvent):
        key = (metric.name, metric.metric_type)
        collector = self._collectors.get(key)
        if collector is None:
            factory = {
                MetricType.COUNTER: self._prometheus.Counter,
                MetricType.GAUGE: self._prometheus.Gauge,
                MetricType.TIMER: self._prometheus.Histogram,
            }[metric.metric_type]
            collector = factory(
                metric.name,
                f"regex line parser {metric.name.replace('_', ' ')}",
                sorted(metric.tags),
                namespace=self.namespace,
                registry=self.registry,
            )
            self._collectors[key] = collector
        return collector

    def on_metric(self, metric: MetricEvent) -> None:
        collector = self._collector(metric)
        if metric.tags:
            collector = collector.labels(**metric.tags)

        if metric.metric_type is MetricType.COUNTER:
            collector.inc(metric.value)
        elif metric.metric_type is MetricType.GAUGE:
            collector.set(metric.value)
        else:
            collector.observe(metric.value)


class ObservabilityManager:
    """Fans metrics and events out to the registered hooks.

    A failing hook is logged and skipped; it never interrupts parsing.
    """

    def __init__(self):
        self.hooks: List[ObservabilityHook] = []
        self._timers: Dict[str, float] = {}

    def register_hook(self, hook: ObservabilityHook) -> None:
        self.hooks.append(hook)

    def clear_hooks(self) -> None:
        self.hooks.clear()

    def emit_metric(
        self,
        metric_type: MetricType,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None
    ) -> None:
        metric = MetricEvent(metric_type, name, value, dict(tags or {}))
        for hook in self.hooks:
            try:
                hook.on_metric(metric)
            except Exception as e:
                logger.error(f"Error in observability hook {type(hook).__name__}: {e}")

    def emit_event(
        self,
        event_type: EventType,
        table: Optional[str] = None,
        file_path: Optional[Path] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        event = Event(event_type, table, file_path, dict(details or {}))
        for hook in self.hooks:
            try:
                hook.on_event(event)
            except Exception as e:
                logger.error(f"Error in observability hook {type(hook).__name__}: {e}")

    def counter(self, name: str, value: float = 1, tags: Optional[Dict[str, str]] = None) -> None:
        self.emit_metric(MetricType.COUNTER, name, value, tags)

    def gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        self.emit_metric(MetricType.GAUGE, name, value, tags)

    def start_timer(self, name: str) -> None:
        self._timers[name] = time.perf_counter()

    def end_timer(self, name: str, tags: Optional[Dict[str, str]] = None) -> float:
        """Stop a timer started with start_timer and emit its duration in seconds."""
        started = self._timers.pop(name, None)
        if started is None:
            logger.warning(f"Timer '{name}' was not started")
            return 0.0
        duration = time.perf_counter() - started
        self.emit_metric(MetricType.TIMER, name, duration, tags)
        return duration


_global_manager: Optional[ObservabilityManager] = None


def get_observability_manager() -> ObservabilityManager:
    """Return the process-wide manager, creating it on first use."""
    global _global_manager
    if _global_manager is None:
        _global_manager = ObservabilityManager()
    return _global_manager


def configure_observability(hooks: List[ObservabilityHook]) -> None:
    """Register hooks on the global manager.

    Example:
        >>> from regex_line_parser.observability import configure_observability, LoggingHook
        >>> configure_observability([LoggingHook()])
    """
    manager = get_observability_manager()
    for hook in hooks:
        manager.register_hook(hook)
