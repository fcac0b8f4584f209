# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Tracing sink shared by registries and actions.

Actions record a span per invocation on the module-level `tracer`. The
tracer provider is the process-wide OpenTelemetry provider; a root registry
captures it on construction and hands the same reference to its children,
so span processors registered through any registry in a tree land in the
same sink.
"""

from opentelemetry import trace as trace_api
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)

from actionkit.core.environment import is_dev_environment
from actionkit.core.logging import get_logger

ATTR_PREFIX = 'actionkit'
logger = get_logger(__name__)

tracer = trace_api.get_tracer('actionkit-tracer', 'v1')


def init_provider() -> TracerProvider:
    """Inits and returns the global SDK tracer provider.

    Raises:
        TypeError: If a non-SDK provider was already installed globally.
    """
    tracer_provider = trace_api.get_tracer_provider()

    if not isinstance(tracer_provider, TracerProvider):
        trace_api.set_tracer_provider(TracerProvider())
        tracer_provider = trace_api.get_tracer_provider()
        logger.debug('Creating a new global tracer provider for telemetry.')

    if not isinstance(tracer_provider, TracerProvider):
        raise TypeError(
            f'The current trace provider is not an instance of TracerProvider.  It is of type: {type(tracer_provider)}'
        )

    return tracer_provider


def add_span_processor(provider: TracerProvider, processor: SpanProcessor) -> None:
    """Attaches a span processor to the given provider."""
    provider.add_span_processor(processor)
    logger.debug('span processor added', processor=type(processor).__name__)


def add_custom_exporter(provider: TracerProvider, exporter: SpanExporter) -> None:
    """Adds a span exporter, wrapped in a processor suited to the environment.

    Development uses a `SimpleSpanProcessor` so spans show up immediately;
    production batches them.
    """
    span_processor = SimpleSpanProcessor if is_dev_environment() else BatchSpanProcessor
    add_span_processor(provider, span_processor(exporter))
