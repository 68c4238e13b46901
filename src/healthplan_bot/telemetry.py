"""Tracing for bot turns.

``OBSERVABILITY`` selects the backend:

- ``"off"``: no tracing (default)
- ``"logfire"``: Pydantic Logfire, which also traces the OpenAI calls
  the planner makes (set ``LOGFIRE_TOKEN``)
- ``"otel"``: OpenTelemetry with an OTLP HTTP exporter

Whatever the backend, ``setup_telemetry`` stores a ``turn_span(activity)``
factory on ``app.state``. The messaging route wraps each turn in it, so
a turn shows up as one ``bot.turn`` span with channel, conversation and
activity type attributes.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from typing import Any

from fastapi import FastAPI
from loguru import logger

from healthplan_bot import __version__
from healthplan_bot.config import Settings

TURN_SPAN_NAME = "bot.turn"

TurnSpan = Callable[[Any], AbstractContextManager]


def turn_attributes(activity) -> dict[str, str]:
    return {
        "bot.channel": activity.channel_id or "",
        "bot.conversation": activity.conversation.id if activity.conversation else "",
        "bot.activity_type": activity.type or "",
    }


def _no_span(activity) -> AbstractContextManager:
    return nullcontext()


def setup_telemetry(app: FastAPI, settings: Settings) -> None:
    """Initialise the tracing backend and publish ``app.state.turn_span``."""
    mode = settings.observability.lower()
    app.state.turn_span = _no_span

    if mode == "off":
        logger.info("Observability disabled (OBSERVABILITY=off)")
        return

    if mode == "logfire":
        app.state.turn_span = _setup_logfire(app, settings)
    elif mode == "otel":
        app.state.turn_span = _setup_otel(app, settings)
    else:
        logger.warning("Unknown observability mode '{}', disabling", mode)


def _setup_logfire(app: FastAPI, settings: Settings) -> TurnSpan:
    import logfire

    logfire.configure(service_name=settings.otel_service_name, service_version=__version__)
    logfire.instrument_fastapi(app)
    logfire.instrument_openai()

    logger.info("Logfire enabled | service={}", settings.otel_service_name)
    return lambda activity: logfire.span(TURN_SPAN_NAME, **turn_attributes(activity))


def _setup_otel(app: FastAPI, settings: Settings) -> TurnSpan:
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    provider = TracerProvider(
        resource=Resource.create(
            {"service.name": settings.otel_service_name, "service.version": __version__}
        )
    )
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{settings.otel_exporter_otlp_endpoint}/v1/traces"))
    )
    if settings.otel_console_exporter:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app)
    tracer = trace.get_tracer("healthplan_bot", __version__)

    logger.info(
        "OpenTelemetry enabled | service={} | endpoint={}",
        settings.otel_service_name,
        settings.otel_exporter_otlp_endpoint,
    )
    return lambda activity: tracer.start_as_current_span(TURN_SPAN_NAME, attributes=turn_attributes(activity))
