"""OpenTelemetry bootstrap utilities for the simulation service."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional

from .config import TelemetryConfig

LOGGER = logging.getLogger(__name__)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from fastapi import FastAPI

    from .simulation import SimulationData


@dataclass
class SimulationMetrics:
    """Per-tick gauges fed from the simulator's observer hook.

    The latest values are always kept locally so ``/health`` can report them;
    OpenTelemetry instruments are only attached when a meter is available.
    """

    ticks: int = 0
    simulated_time: float = 0.0
    enzyme_count: int = 0
    mean_fitness: float = 0.0
    heat: float = 0.0
    _tick_counter: Any = None
    _enzyme_histogram: Any = None
    _fitness_histogram: Any = None

    def bind(self, meter: Any) -> None:
        self._tick_counter = meter.create_counter("metabolab.ticks", description="Simulation ticks applied")
        self._enzyme_histogram = meter.create_histogram(
            "metabolab.enzymes", description="Enzyme population after each tick"
        )
        self._fitness_histogram = meter.create_histogram(
            "metabolab.mean_fitness", description="Mean enzyme fitness after each tick"
        )

    def record(self, data: "SimulationData") -> None:
        self.ticks += 1
        self.simulated_time = data.time
        self.enzyme_count = len(data.enzymes)
        self.mean_fitness = float(data.evolution_stats.get("mean_fitness", 0.0))
        self.heat = float(data.cell.get("heat", 0.0))
        if self._tick_counter is not None:
            self._tick_counter.add(1)
            self._enzyme_histogram.record(self.enzyme_count)
            self._fitness_histogram.record(self.mean_fitness)

    def as_dict(self) -> dict[str, float]:
        return {
            "ticks": float(self.ticks),
            "simulated_time": self.simulated_time,
            "enzyme_count": float(self.enzyme_count),
            "mean_fitness": self.mean_fitness,
            "heat": self.heat,
        }


@dataclass
class TelemetryManager:
    """Configure tracing/metrics exporters when the SDK is available."""

    config: TelemetryConfig
    metrics: SimulationMetrics = field(default_factory=SimulationMetrics)
    _shutdown_hooks: List[Callable[[], None]] = field(default_factory=list)
    _instrument_fastapi: Optional[Callable[["FastAPI"], None]] = None
    _enabled: bool = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def configure(self) -> None:
        if not self.config.enabled:
            LOGGER.debug("Telemetry disabled by configuration")
            return
        if not self.config.capture_traces and not self.config.capture_metrics:
            LOGGER.debug("Telemetry disabled by configuration")
            return
        try:
            from opentelemetry import metrics, trace
            from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
            from opentelemetry.sdk.resources import Resource
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.export import BatchSpanProcessor
            from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
                OTLPSpanExporter,
            )
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
                OTLPMetricExporter,
            )
            from opentelemetry.sdk.metrics import MeterProvider
            from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        except ImportError:
            LOGGER.warning("OpenTelemetry SDK not available; telemetry disabled")
            return

        resource = Resource.create(
            {
                "service.name": self.config.service_name,
                "deployment.environment": self.config.environment,
            }
        )
        if self.config.capture_traces:
            sampler = TraceIdRatioBased(max(min(self.config.sampling_ratio, 1.0), 0.0))
            provider = TracerProvider(resource=resource, sampler=sampler)
            try:
                span_exporter = OTLPSpanExporter(endpoint=self.config.exporter_endpoint)
                provider.add_span_processor(BatchSpanProcessor(span_exporter))
                trace.set_tracer_provider(provider)
                self._shutdown_hooks.append(provider.shutdown)
                LOGGER.info("OpenTelemetry tracing configured (endpoint=%s)", self.config.exporter_endpoint)
            except Exception as exc:  # pragma: no cover - exporter wiring
                LOGGER.warning("Failed to initialise OTLP span exporter: %s", exc)
        if self.config.capture_metrics:
            try:
                reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=self.config.exporter_endpoint))
                meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
                metrics.set_meter_provider(meter_provider)
                self.metrics.bind(metrics.get_meter("metabolab.simulation"))
                self._shutdown_hooks.append(meter_provider.shutdown)  # type: ignore[arg-type]
                LOGGER.info("OpenTelemetry metrics configured (endpoint=%s)", self.config.exporter_endpoint)
            except Exception as exc:  # pragma: no cover - exporter wiring
                LOGGER.warning("Failed to initialise OTLP metric exporter: %s", exc)

        self._instrument_fastapi = FastAPIInstrumentor().instrument_app  # type: ignore[attr-defined]
        self._enabled = True

    def instrument_app(self, app: "FastAPI") -> None:
        if self._instrument_fastapi is None:
            return
        try:
            self._instrument_fastapi(app)
        except Exception as exc:  # pragma: no cover - instrumentation failure
            LOGGER.warning("Failed to instrument FastAPI: %s", exc)

    def shutdown(self) -> None:
        for hook in reversed(self._shutdown_hooks):
            try:
                hook()
            except Exception as exc:  # pragma: no cover - best effort cleanup
                LOGGER.debug("Telemetry shutdown hook failed: %s", exc)


def configure_telemetry(config: TelemetryConfig) -> TelemetryManager:
    manager = TelemetryManager(config=config)
    manager.configure()
    return manager


__all__ = ["SimulationMetrics", "TelemetryManager", "configure_telemetry"]
