import atexit

from opentelemetry import propagate, trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from variant_engine.config.logging import get_configured_logger
from variant_engine.core.config import settings

logger = get_configured_logger(__name__)

_tracer_provider = None


def setup_telemetry():
    """
    TracerProvider + OTLP exporter 설정, httpx 클라이언트 계측.
    OTEL_ENABLED=false 이면 아무것도 하지 않는다 (no-op tracer 사용).
    """
    global _tracer_provider
    if not settings.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled; using no-op tracer.")
        return None
    if _tracer_provider is not None:
        return _tracer_provider

    try:
        resource = Resource.create({
            "service.name": settings.OTEL_SERVICE_NAME,
            "deployment.environment": settings.ENVIRONMENT,
        })
        tracer_provider = TracerProvider(resource=resource)
        span_exporter = OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT)
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
        trace.set_tracer_provider(tracer_provider)

        propagate.set_global_textmap(TraceContextTextMapPropagator())

        # product service 로 나가는 호출 계측
        HTTPXClientInstrumentor().instrument(tracer_provider=tracer_provider)
        logger.info("HTTPXClientInstrumentor applied.")

        _tracer_provider = tracer_provider
        atexit.register(shutdown_telemetry)
        logger.info(
            f"OpenTelemetry setup for '{settings.OTEL_SERVICE_NAME}' completed. "
            f"Exporting to: {settings.OTEL_EXPORTER_OTLP_ENDPOINT}"
        )
        return tracer_provider
    except Exception as e:
        logger.error(f"Failed to setup OpenTelemetry for {settings.OTEL_SERVICE_NAME}: {str(e)}", exc_info=True)
        raise


def shutdown_telemetry():
    if _tracer_provider is not None:
        _tracer_provider.shutdown()


def instrument_fastapi_app(app):
    """FastAPI 앱을 OpenTelemetry로 계측합니다."""
    if app is None:
        logger.error("FastAPI app instance is None for instrumentation.")
        raise ValueError("FastAPI app instance cannot be None")
    if _tracer_provider is None:
        return
    FastAPIInstrumentor.instrument_app(app, tracer_provider=_tracer_provider)
    logger.info(f"FastAPI application instrumented by OpenTelemetry for {settings.OTEL_SERVICE_NAME}")
