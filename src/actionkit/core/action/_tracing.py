# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Span attribute recording for action invocations."""

from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from urllib.parse import quote

from opentelemetry.trace import Span
from opentelemetry.util import types as otel_types

from actionkit.core.codec import dump_json
from actionkit.core.tracing import ATTR_PREFIX

SpanAttributeValue = otel_types.AttributeValue

_parent_path_context: ContextVar[str] = ContextVar('actionkit_parent_path', default='')


def build_path(name: str, parent_path: str, type_str: str, subtype: str | None = None) -> str:
    """Build a hierarchical span path with type annotations.

    Examples:
        >>> build_path('myFlow', '', 'action', 'flow')
        '/{myFlow,t:action,s:flow}'

        >>> build_path('my/tool', '/{myFlow,t:action,s:flow}', 'action', 'tool')
        '/{myFlow,t:action,s:flow}/{my%2Ftool,t:action,s:tool}'
    """
    segment = f'{quote(name, safe="")},t:{type_str}'
    if subtype:
        segment = f'{segment},s:{subtype}'
    return parent_path + '/{' + segment + '}'


@contextmanager
def save_parent_path() -> Generator[None, None, None]:
    """Restores the parent span path when the block exits."""
    saved = _parent_path_context.get()
    try:
        yield
    finally:
        _parent_path_context.set(saved)


def record_input_metadata(
    span: Span,
    kind: str,
    name: str,
    span_metadata: dict[str, SpanAttributeValue] | None,
    input: object | None,
) -> None:
    """Records input metadata onto the span of an action invocation.

    Args:
        span: The OpenTelemetry span.
        kind: The kind of the action (e.g. 'model', 'tool').
        name: The name of the action.
        span_metadata: Optional custom attributes to add.
        input: The input data provided to the action.
    """
    span.set_attribute(f'{ATTR_PREFIX}:type', 'action')
    span.set_attribute(f'{ATTR_PREFIX}:metadata:subtype', kind)
    span.set_attribute(f'{ATTR_PREFIX}:name', name)
    if input is not None:
        span.set_attribute(f'{ATTR_PREFIX}:input', dump_json(input))

    path = build_path(name, _parent_path_context.get(), 'action', kind)
    span.set_attribute(f'{ATTR_PREFIX}:path', path)
    _parent_path_context.set(path)

    if span_metadata is not None:
        for meta_key, meta_value in span_metadata.items():
            span.set_attribute(meta_key, meta_value)


def record_output_metadata(span: Span, output: object) -> None:
    """Marks the span as successful and records the action output."""
    span.set_attribute(f'{ATTR_PREFIX}:state', 'success')
    span.set_attribute(f'{ATTR_PREFIX}:output', dump_json(output))
