"""Tracing for GapWatch: incoming API requests and outgoing Open Bus calls."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from gapwatch.core.config import Settings

logger = logging.getLogger(__name__)

TRACER_NAME = "gapwatch.open_bus"


def configure_tracing(settings: Settings) -> bool:
    """Install the OTLP tracer provider and trace httpx calls.

    Returns whether tracing is active. A broken exporter setup is logged and
    leaves the service running untraced.
    """
    if not settings.otel_enabled:
        logger.info("Tracing is disabled")
        return False

    try:
        provider = TracerProvider(
            resource=Resource.create(
                {
                    "service.name": settings.otel_service_name,
                    "service.version": settings.otel_service_version,
                    "service.namespace": "gapwatch",
                }
            )
        )
        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(
                    endpoint=settings.otel_exporter_otlp_endpoint,
                    headers=settings.otel_exporter_otlp_headers,
                )
            )
        )
        trace.set_tracer_provider(provider)
        HTTPXClientInstrumentor().instrument()
    except Exception as exc:
        logger.warning("Tracing setup failed, continuing without it: %s", exc)
        return False

    logger.info(
        "Tracing %s to %s",
        settings.otel_service_name,
        settings.otel_exporter_otlp_endpoint,
    )
    return True


def instrument_app(app: FastAPI, settings: Settings) -> None:
    """Trace incoming requests when tracing is enabled."""
    if not settings.otel_enabled:
        return
    try:
        FastAPIInstrumentor.instrument_app(app)
    except Exception as exc:
        logger.warning("Failed to instrument FastAPI: %s", exc)


@contextmanager
def upstream_span(endpoint: str, params: Mapping[str, Any]) -> Iterator[trace.Span]:
    """Span around one Open Bus request, tagged with its query parameters."""
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(f"open_bus.{endpoint}") as span:
        span.set_attribute("open_bus.endpoint", endpoint)
        for key, value in params.items():
            span.set_attribute(f"open_bus.{key}", str(value))
        yield span
