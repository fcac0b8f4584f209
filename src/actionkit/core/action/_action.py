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

"""Action module for defining named, typed, invocable units.

An `Action` wraps a plain Python function (sync or async) and gives it the
two capabilities the registry relies on:

    - invoke: `arun()` / `run()` execute the function inside an
      OpenTelemetry span and return an `ActionResponse` carrying the output
      and the trace id. Failures are re-raised as `ActionKitError` with the
      trace id attached.
    - describe: `describe()` returns the `ActionMetadata` used by listings,
      without invoking anything.

Input and output JSON schemas are inferred from the function's type hints
with pydantic's `TypeAdapter`. The function may take zero, one (input) or two
(input, `ActionRunContext`) arguments.

During an invocation the caller-supplied context dictionary is bound to a
`ContextVar`, so nested actions invoked on the same call chain inherit it
unless they pass their own.
"""

import inspect
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from functools import cached_property
from types import MappingProxyType
from typing import Any

from pydantic import TypeAdapter

from actionkit.aio import ensure_async
from actionkit.core.error import ActionKitError
from actionkit.core.schema import to_json_schema
from actionkit.core.tracing import tracer

from ._tracing import record_input_metadata, record_output_metadata, save_parent_path
from ._util import extract_action_args_and_types, noop_streaming_callback
from .types import ActionKind, ActionMetadata, ActionMetadataKey, ActionResponse

StreamingCallback = Callable[[Any], None]

_action_context: ContextVar[dict[str, Any] | None] = ContextVar('actionkit_action_context', default=None)


class ActionRunContext:
    """Per-invocation context handed to action functions that accept it.

    Attributes:
        context: Arbitrary caller-supplied context data.
        is_streaming: Whether a chunk callback was supplied.
    """

    def __init__(
        self,
        on_chunk: StreamingCallback | None = None,
        context: dict[str, Any] | None = None,
    ):
        self._on_chunk = on_chunk if on_chunk is not None else noop_streaming_callback
        self._context = context if context is not None else {}

    @property
    def context(self) -> dict[str, Any]:
        return self._context

    @cached_property
    def is_streaming(self) -> bool:
        return self._on_chunk != noop_streaming_callback

    def send_chunk(self, chunk: Any) -> None:
        """Send an intermediate chunk to the caller."""
        self._on_chunk(chunk)

    @staticmethod
    def current_context() -> dict[str, Any] | None:
        """Returns the context of the action running on this call chain, if any."""
        return _action_context.get()


class Action:
    """A named, typed, invocable unit of work.

    Attributes:
        kind: The type category of the action (e.g. MODEL, TOOL, FLOW).
        name: The action name, plugin-qualified where applicable.
        description: An optional human-readable description.
        input_schema: JSON schema of the expected input.
        output_schema: JSON schema of the output.
        metadata: Arbitrary metadata associated with the action.
        is_async: Whether the wrapped function is a coroutine function.
    """

    def __init__(
        self,
        kind: ActionKind,
        name: str,
        fn: Callable[..., Any],
        metadata_fn: Callable[..., Any] | None = None,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
        config_schema: type | dict[str, Any] | None = None,
        span_metadata: dict[str, Any] | None = None,
    ) -> None:
        """Initialize an Action.

        Args:
            kind: The kind of action.
            name: Unique name of the action within its kind.
            fn: The function to call when the action is executed.
            metadata_fn: Function whose signature is used to infer schemas,
                when it differs from `fn`.
            description: Optional human-readable description.
            metadata: Optional metadata dictionary.
            config_schema: Optional type or JSON schema of the action's config.
            span_metadata: Optional extra span attributes.

        Raises:
            TypeError: If the function takes more than two arguments.
        """
        self._kind = ActionKind(kind)
        self._name = name
        self._fn = fn
        self._metadata = dict(metadata) if metadata else {}
        self._description = description
        self._config_schema = to_json_schema(config_schema) if config_schema is not None else None
        self._span_metadata = span_metadata
        self._is_async = inspect.iscoroutinefunction(fn)

        input_spec = inspect.getfullargspec(metadata_fn if metadata_fn else fn)
        action_args, arg_types = extract_action_args_and_types(input_spec)
        self._n_action_args = len(action_args)
        self._initialize_io_schemas(action_args, arg_types, input_spec)

    @property
    def kind(self) -> ActionKind:
        return self._kind

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str | None:
        return self._description

    @property
    def metadata(self) -> Mapping[str, Any]:
        """Read-only view of the action metadata."""
        return MappingProxyType(self._metadata)

    @property
    def input_type(self) -> TypeAdapter | None:
        return self._input_type

    @property
    def input_schema(self) -> dict[str, Any]:
        return self._input_schema

    @property
    def output_schema(self) -> dict[str, Any]:
        return self._output_schema

    @property
    def config_schema(self) -> dict[str, Any] | None:
        return self._config_schema

    @property
    def is_async(self) -> bool:
        return self._is_async

    def describe(self) -> ActionMetadata:
        """Returns the descriptive metadata of this action."""
        return ActionMetadata(
            name=self._name,
            kind=self._kind,
            description=self._description,
            input_schema=self._input_schema,
            output_schema=self._output_schema,
            config_schema=self._config_schema,
            metadata=self._metadata,
        )

    def run(
        self,
        input: Any = None,
        on_chunk: StreamingCallback | None = None,
        context: dict[str, Any] | None = None,
    ) -> ActionResponse:
        """Executes a synchronous action.

        Args:
            input: The input data for the action.
            on_chunk: Optional callback receiving intermediate chunks.
            context: Optional context data, inherited from the enclosing
                action when omitted.

        Returns:
            The final result and trace id.

        Raises:
            TypeError: If the wrapped function is async; use `arun()`.
            ActionKitError: If the function raises.
        """
        if self._is_async:
            raise TypeError(f'action {self._name} is async, use arun()')

        token = _action_context.set(context if context else _action_context.get())
        try:
            with tracer.start_as_current_span(self._name) as span, save_parent_path():
                trace_id = format(span.get_span_context().trace_id, '032x')
                record_input_metadata(span, self._kind, self._name, self._span_metadata, input)
                try:
                    output = self._call(self._fn, input, ActionRunContext(on_chunk, _action_context.get()))
                except Exception as e:
                    raise ActionKitError(
                        cause=e,
                        message=f'Error while running action {self._name}',
                        trace_id=trace_id,
                    ) from e
                record_output_metadata(span, output)
                return ActionResponse(response=output, trace_id=trace_id)
        finally:
            _action_context.reset(token)

    async def arun(
        self,
        input: Any = None,
        on_chunk: StreamingCallback | None = None,
        context: dict[str, Any] | None = None,
    ) -> ActionResponse:
        """Executes the action asynchronously.

        Synchronous functions are wrapped so they can be awaited.

        Args:
            input: The input data for the action.
            on_chunk: Optional callback receiving intermediate chunks.
            context: Optional context data, inherited from the enclosing
                action when omitted.

        Returns:
            The final result and trace id.

        Raises:
            ActionKitError: If the function raises.
        """
        token = _action_context.set(context if context else _action_context.get())
        try:
            with tracer.start_as_current_span(self._name) as span, save_parent_path():
                trace_id = format(span.get_span_context().trace_id, '032x')
                record_input_metadata(span, self._kind, self._name, self._span_metadata, input)
                try:
                    output = await self._call(
                        ensure_async(self._fn), input, ActionRunContext(on_chunk, _action_context.get())
                    )
                except Exception as e:
                    raise ActionKitError(
                        cause=e.cause if isinstance(e, ActionKitError) and e.cause else e,
                        message=f'Error while running action {self._name}',
                        trace_id=trace_id,
                    ) from e
                record_output_metadata(span, output)
                return ActionResponse(response=output, trace_id=trace_id)
        finally:
            _action_context.reset(token)

    async def arun_raw(
        self,
        raw_input: Any,
        on_chunk: StreamingCallback | None = None,
        context: dict[str, Any] | None = None,
    ) -> ActionResponse:
        """Validates `raw_input` against the input type, then calls `arun()`."""
        input_action = self._input_type.validate_python(raw_input) if self._input_type is not None else None
        return await self.arun(input=input_action, on_chunk=on_chunk, context=context)

    def _call(self, fn: Callable[..., Any], input: Any, ctx: ActionRunContext) -> Any:
        match self._n_action_args:
            case 0:
                return fn()
            case 1:
                return fn(input)
            case _:
                return fn(input, ctx)

    def _initialize_io_schemas(
        self,
        action_args: list[str],
        arg_types: list[type],
        input_spec: inspect.FullArgSpec,
    ) -> None:
        if len(action_args) > 2:
            raise TypeError(f'can only have up to 2 arg: {action_args}')

        if action_args:
            type_adapter = TypeAdapter(arg_types[0])
            self._input_schema = type_adapter.json_schema()
            self._input_type = type_adapter
        else:
            self._input_schema = TypeAdapter(Any).json_schema()
            self._input_type = None
        self._metadata[ActionMetadataKey.INPUT_KEY] = self._input_schema

        if ActionMetadataKey.RETURN in input_spec.annotations:
            type_adapter = TypeAdapter(input_spec.annotations[ActionMetadataKey.RETURN])
            self._output_schema = type_adapter.json_schema()
        else:
            self._output_schema = TypeAdapter(Any).json_schema()
        self._metadata[ActionMetadataKey.OUTPUT_KEY] = self._output_schema

    def __repr__(self) -> str:
        return f'Action(kind={self._kind!r}, name={self._name!r})'
