"""OpenTelemetry tracing for Conveyor.

This module provides distributed tracing using OpenTelemetry, enabling:
- End-to-end visibility across a pipeline run
- Per-stage timing (which stage of a slow run took the time)
- Integration with observability platforms (Jaeger, Zipkin, etc.)

Usage:
    from conveyor.tracing import configure_tracing, trace_operation

    # Configure once at application startup
    configure_tracing(service_name="conveyor")

    with trace_operation("artifact.pack", stage="ViteBuild") as span:
        payload = pack_directory(base, "**/*")
        span.set_attribute("artifact.size", len(payload))

Without ``configure_tracing`` the OpenTelemetry API returns non-recording
spans, so instrumented code paths cost next to nothing.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Status, StatusCode

_tracer: trace.Tracer | None = None


def configure_tracing(
    service_name: str = "conveyor",
    service_version: str | None = None,
    environment: str | None = None,
) -> None:
    """Configure OpenTelemetry tracing for Conveyor.

    Call this once at application startup. Exporters are attached to the
    provider separately (e.g., OTLP, Jaeger, Zipkin).

    Args:
        service_name: Name of the service (appears in traces)
        service_version: Optional version string
        environment: Optional environment (local, production)
    """
    global _tracer

    resource_attrs = {"service.name": service_name}
    if service_version:
        resource_attrs["service.version"] = service_version
    if environment:
        resource_attrs["deployment.environment"] = environment

    provider = TracerProvider(resource=Resource.create(resource_attrs))
    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer("conveyor", service_version)


def get_tracer() -> trace.Tracer:
    """Get the configured tracer (the global API tracer if not configured)."""
    global _tracer

    if _tracer is None:
        _tracer = trace.get_tracer("conveyor")
    return _tracer


@contextmanager
def trace_operation(
    name: str,
    **attributes: Any,
) -> Iterator[Any]:
    """Context manager for tracing an operation.

    Creates a span for the operation and automatically:
    - Sets provided attributes
    - Records exceptions if raised
    - Sets error status on failure

    Args:
        name: Name of the operation (e.g., "stage.execute", "run.execute")
        **attributes: Attributes to set on the span

    Yields:
        The span
    """
    with get_tracer().start_as_current_span(name) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, str(value))

        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise


@contextmanager
def trace_run(run_id: str, pipeline: str, revision: str) -> Iterator[Any]:
    """Trace a pipeline run."""
    with trace_operation(
        "run.execute",
        run_id=run_id,
        pipeline=pipeline,
        revision=revision,
    ) as span:
        yield span


@contextmanager
def trace_stage(run_id: str, stage: str, ordinal: int) -> Iterator[Any]:
    """Trace a single stage execution."""
    with trace_operation(
        "stage.execute",
        run_id=run_id,
        stage=stage,
        ordinal=ordinal,
    ) as span:
        yield span
