"""Tracing for the relay.

One global TracerProvider, installed by the app lifespan from ``Settings``:

  ============  ==============================================================
  ``console``   SimpleSpanProcessor + ConsoleSpanExporter (local development)
  ``otlp``      BatchSpanProcessor + OTLP/gRPC exporter (``[otlp]`` extra)
  ``none``      provider without processors; spans still carry trace ids
  ============  ==============================================================

Modules take a tracer at import time with ``get_tracer()``; it resolves to the
real provider once ``init_telemetry`` has run.
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SimpleSpanProcessor

logger = logging.getLogger(__name__)

SERVICE_NAME = "voice-relay"
TRACER_NAME = "voice_relay"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4317"

_provider: TracerProvider | None = None


def _span_processor(exporter: str, endpoint: str) -> SpanProcessor | None:
    if exporter == "none":
        return None
    if exporter == "otlp":
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        except ImportError:
            logger.warning("[Telemetry] OTLP exporter not installed (pip install voice-relay[otlp]) — using console.")
        else:
            logger.info("[Telemetry] OTLP exporter → %s", endpoint)
            return BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint))
    return SimpleSpanProcessor(ConsoleSpanExporter())


def init_telemetry(exporter: str = "console", *, endpoint: str = "") -> TracerProvider:
    """Install the global TracerProvider once and return it.

    Later calls return the provider from the first call unchanged.
    """
    global _provider
    if _provider is not None:
        return _provider

    exporter = (exporter or "console").lower()
    provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    processor = _span_processor(exporter, endpoint or DEFAULT_OTLP_ENDPOINT)
    if processor is not None:
        provider.add_span_processor(processor)

    trace.set_tracer_provider(provider)
    _provider = provider
    logger.info("[Telemetry] Tracing initialised (exporter=%s)", exporter)
    return provider


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)


def current_trace_id() -> str:
    """Hex trace id of the active span, or ``""`` outside any recorded span."""
    ctx = trace.get_current_span().get_span_context()
    return format(ctx.trace_id, "032x") if ctx.is_valid else ""
