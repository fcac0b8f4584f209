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

"""Registry for managing actions, plugins, values and schemas.

The `Registry` is the catalog every other layer consumes. It owns four
tables:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Table   │ Keyed by            │ Holds                               │
    ├─────────┼─────────────────────┼─────────────────────────────────────┤
    │ actions │ '/<kind>/<name>'    │ Action, or a pending registration   │
    │ plugins │ plugin name         │ PluginProvider                      │
    │ values  │ (kind, name)        │ arbitrary shared values             │
    │ schemas │ schema name         │ Python type or JSON schema          │
    └─────────┴─────────────────────┴─────────────────────────────────────┘

All tables are first-write-wins: registering an existing key raises. Lookups
never raise on absence; they return None.

Action lookup is a two-phase process. A miss on a plugin-qualified key
(`/model/openai/gpt-4`) first runs the plugin's memoized initializer, then, if
the key is still missing, the plugin's resolver, which is expected to
register the action. Concurrent lookups share both the single initializer
run and any in-flight resolution of the same key. Initializers and resolvers
run in a fresh `contextvars.Context`, so they never observe the caller's
ambient state.

Registries can be layered with `Registry.with_parent()`. A child checks its
own tables first and falls back to its parent on a miss; it never writes into
the parent, and plugins registered on the child are invisible to the parent.

Example:
    >>> registry = Registry()
    >>> registry.define_action(ActionKind.CUSTOM, 'my_action', lambda x: x)
    >>> action = await registry.lookup_action('/custom/my_action')
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import threading
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Literal

from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import SpanExporter

from actionkit.aio import await_shared, ensure_async, run_in_fresh_context, share_future
from actionkit.core.action import (
    Action,
    ActionKey,
    ActionKind,
    ActionMetadata,
    create_action_key,
    parse_action_key,
    parse_plugin_name_from_action_name,
)
from actionkit.core.context import AsyncStore, run_outside_action_context
from actionkit.core.error import (
    ActionKitError,
    ActionTypeMismatchError,
    DuplicatePluginError,
    DuplicateRegistrationError,
    DuplicateSchemaError,
    DuplicateValueError,
    PluginResolutionError,
)
from actionkit.core.logging import get_logger
from actionkit.core.plugin import PluginProvider
from actionkit.core.schema import to_json_schema
from actionkit.core.tracing import add_custom_exporter, add_span_processor, init_provider

logger = get_logger(__name__)

DEFAULT_MODEL_KEY = 'defaultModel'
PROMPT_DIR_KEY = 'promptDir'

ApiStability = Literal['stable', 'beta']


class _PendingAction:
    """An action registered as an awaitable that has not resolved yet.

    The awaitable is scheduled at most once; every waiter shares the outcome.
    """

    def __init__(self, key: str, kind: ActionKind, awaitable: Awaitable[Action]) -> None:
        self.key = key
        self.kind = kind
        self._awaitable = awaitable
        self._future: concurrent.futures.Future[Action] | None = None
        self._lock = threading.Lock()

    async def resolve(self) -> Action:
        with self._lock:
            if self._future is None:
                if inspect.iscoroutine(self._awaitable):
                    coro = self._awaitable
                    self._future = share_future(run_in_fresh_context(lambda: coro))
                else:
                    self._future = share_future(asyncio.ensure_future(self._awaitable))
        action = await await_shared(self._future)
        if not isinstance(action, Action):
            raise ActionKitError(
                status='INVALID_ARGUMENT',
                message=f'pending registration {self.key} resolved to {type(action).__name__}, not Action',
            )
        if action.kind != self.kind:
            raise ActionTypeMismatchError(self.kind, action.kind)
        if create_action_key(action.kind, action.name) != self.key:
            raise ActionKitError(
                status='INVALID_ARGUMENT',
                message=f'pending registration {self.key} resolved to action named {action.name}',
            )
        return action


class Registry:
    """Central repository for actions, plugins, values and schemas.

    Table access is guarded by a re-entrant lock that is never held across an
    `await`, so a registry may be shared between threads as well as tasks.
    Shared initializer and resolver outcomes are kept in thread-safe futures;
    callers on any event loop wait on the same run. The run itself executes
    on the loop of the caller that started it, which must keep running until
    it completes.

    Attributes:
        parent: The registry this one overlays, if any.
        async_store: Scoped context slots, shared with the whole tree.
        tracer_provider: Tracing sink, shared with the whole tree.
        api_stability: 'stable' or 'beta', inherited from the parent.
    """

    def __init__(self, parent: Registry | None = None) -> None:
        """Initialize an empty Registry.

        Args:
            parent: Optional registry to fall back to on lookup misses.
        """
        self._lock = threading.RLock()
        self._entries: dict[str, Action | _PendingAction] = {}
        self._plugins: dict[str, PluginProvider] = {}
        self._plugin_inits: dict[str, concurrent.futures.Future[Any]] = {}
        self._resolutions: dict[str, concurrent.futures.Future[None]] = {}
        self._values: dict[str, dict[str, Any]] = {}
        self._schemas: dict[str, type | dict[str, Any]] = {}
        self._all_plugins_initialized = False

        self.parent = parent
        if parent is not None:
            self.api_stability: ApiStability = parent.api_stability
            self.async_store: AsyncStore = parent.async_store
            self.tracer_provider: TracerProvider = parent.tracer_provider
        else:
            self.api_stability = 'stable'
            self.async_store = AsyncStore()
            self.tracer_provider = init_provider()

    @classmethod
    def with_parent(cls, parent: Registry) -> Registry:
        """Creates a new registry overlaid onto `parent`."""
        return cls(parent=parent)

    # Actions.

    def register_action(self, kind: ActionKind, action: Action) -> None:
        """Registers an action under `/<kind>/<action.name>`.

        Raises:
            ActionTypeMismatchError: If `kind` differs from `action.kind`.
            DuplicateRegistrationError: If the key is already registered here.
            MalformedKeyError: If the resulting key does not parse.
        """
        if kind != action.kind:
            raise ActionTypeMismatchError(kind, action.kind)
        self._add_entry(kind, action.name, action)

    def register_action_async(self, kind: ActionKind, name: str, action: Awaitable[Action]) -> None:
        """Registers an action that will become available once `action` resolves.

        Args:
            kind: The kind of the action.
            name: The action name.
            action: An awaitable (coroutine, task or future) of the Action.

        Raises:
            DuplicateRegistrationError: If the key is already registered here.
            MalformedKeyError: If the resulting key does not parse.
        """
        key = create_action_key(kind, name)
        self._add_entry(kind, name, _PendingAction(key, ActionKind(kind), action))

    def define_action(
        self,
        kind: ActionKind,
        name: str,
        fn: Callable[..., Any],
        metadata_fn: Callable[..., Any] | None = None,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
        config_schema: type | dict[str, Any] | None = None,
        span_metadata: dict[str, Any] | None = None,
    ) -> Action:
        """Creates an Action from `fn` and registers it.

        Returns:
            The newly created and registered Action.
        """
        action = Action(
            kind=kind,
            name=name,
            fn=fn,
            metadata_fn=metadata_fn,
            description=description,
            metadata=metadata,
            config_schema=config_schema,
            span_metadata=span_metadata,
        )
        self.register_action(kind, action)
        return action

    def _add_entry(self, kind: ActionKind, name: str, entry: Action | _PendingAction) -> None:
        key = str(parse_action_key(create_action_key(kind, name)))
        with self._lock:
            if key in self._entries:
                raise DuplicateRegistrationError(key)
            self._entries[key] = entry
        logger.debug('registered action', key=key, pending=isinstance(entry, _PendingAction))

    async def lookup_action(self, key: str) -> Action | None:
        """Looks up an action by key, resolving it through its plugin if needed.

        Args:
            key: The action key, e.g. `/model/openai/gpt-4`.

        Returns:
            The Action, or None if neither this registry, its plugins nor its
            ancestors provide it.

        Raises:
            MalformedKeyError: If `key` does not parse.
            PluginResolutionError: If the plugin's initializer or resolver fails.
        """
        parsed = parse_action_key(key)
        key = str(parsed)

        action = await self._lookup_local(key)
        if action is not None:
            return action

        plugin_name = parsed.plugin_name
        if plugin_name is not None and self._has_local_plugin(plugin_name):
            await self.initialize_plugin(plugin_name)
            if not self._has_local_entry(key):
                await self._resolve_plugin_action(plugin_name, parsed)
            action = await self._lookup_local(key)
            if action is not None:
                return action

        if self.parent is not None:
            return await self.parent.lookup_action(key)
        return None

    async def lookup_action_by_kind(self, kind: ActionKind, name: str) -> Action | None:
        """Looks up an action by kind and (optionally plugin-qualified) name."""
        return await self.lookup_action(create_action_key(kind, name))

    def _has_local_entry(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    async def _lookup_local(self, key: str) -> Action | None:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or isinstance(entry, Action):
            return entry
        return await self._settle(key, entry)

    async def _settle(self, key: str, pending: _PendingAction) -> Action:
        action = await pending.resolve()
        with self._lock:
            if self._entries.get(key) is pending:
                self._entries[key] = action
        return action

    async def _resolve_plugin_action(self, plugin_name: str, parsed: ActionKey) -> None:
        key = str(parsed)
        with self._lock:
            provider = self._plugins.get(plugin_name)
            if provider is None or provider.resolver is None:
                return
            resolution = self._resolutions.get(key)
            if resolution is None:
                resolution = share_future(run_in_fresh_context(_run_resolver, provider, parsed))
                self._resolutions[key] = resolution
                resolution.add_done_callback(lambda _: self._forget_resolution(key, resolution))
        await await_shared(resolution)

    def _forget_resolution(self, key: str, resolution: concurrent.futures.Future[None]) -> None:
        with self._lock:
            if self._resolutions.get(key) is resolution:
                del self._resolutions[key]

    async def list_actions(self) -> dict[str, Action]:
        """Returns every registered action in this registry and its ancestors.

        Initializes all plugins and waits for every pending registration.
        Entries of this registry shadow those of its ancestors.

        Returns:
            A map of key to Action.
        """
        await self.initialize_all_plugins()
        actions: dict[str, Action] = {}
        if self.parent is not None:
            actions.update(await self.parent.list_actions())
        actions.update(await self._list_local_actions())
        return actions

    async def _list_local_actions(self) -> dict[str, Action]:
        with self._lock:
            entries = list(self._entries.items())
        resolved = await asyncio.gather(
            *(self._settle(key, e) if isinstance(e, _PendingAction) else _identity(e) for key, e in entries)
        )
        return {key: action for (key, _), action in zip(entries, resolved, strict=True)}

    async def list_resolvable_actions(self) -> dict[str, ActionMetadata]:
        """Returns metadata of every action plugins can provide plus registered ones.

        Plugin listers run concurrently and without initializing the plugins.
        A lister that fails, or returns invalid metadata, is logged and its
        entries omitted; it never fails the overall listing.

        Returns:
            A map of key to ActionMetadata, child entries shadowing parent ones.
        """
        with self._lock:
            plugins = list(self._plugins.values())

        resolvable: dict[str, ActionMetadata] = {}
        listed = await asyncio.gather(*(_list_plugin_actions(p) for p in plugins))
        for metas in listed:
            for meta in metas:
                resolvable[create_action_key(meta.kind, meta.name)] = meta

        for key, action in (await self._list_local_actions()).items():
            resolvable[key] = action.describe()

        if self.parent is None:
            return resolvable
        return {**(await self.parent.list_resolvable_actions()), **resolvable}

    async def list_serializable_actions(
        self, allowed_kinds: Iterable[ActionKind] | None = None
    ) -> dict[str, dict[str, Any]]:
        """Lists resolvable actions as JSON-ready dictionaries.

        Args:
            allowed_kinds: The kinds to include. If None, all are listed.

        Returns:
            A map of key to `{key, name, inputSchema, outputSchema, metadata}`.
        """
        kinds = set(allowed_kinds) if allowed_kinds is not None else None
        actions = {}
        for key, meta in (await self.list_resolvable_actions()).items():
            if kinds is not None and meta.kind not in kinds:
                continue
            actions[key] = {
                'key': key,
                'name': meta.name,
                'inputSchema': meta.input_schema,
                'outputSchema': meta.output_schema,
                'metadata': meta.metadata,
            }
        return actions

    # Plugins.

    def register_plugin(self, name: str, provider: PluginProvider) -> None:
        """Registers a plugin provider. It is initialized lazily.

        Raises:
            DuplicatePluginError: If a plugin with this name is registered here.
        """
        with self._lock:
            if name in self._plugins:
                raise DuplicatePluginError(name)
            self._plugins[name] = provider
            self._all_plugins_initialized = False
        logger.debug('registered plugin', plugin=name)

    def lookup_plugin(self, name: str) -> PluginProvider | None:
        """Returns the plugin provider for `name`, searching ancestors on a miss."""
        with self._lock:
            provider = self._plugins.get(name)
        if provider is None and self.parent is not None:
            return self.parent.lookup_plugin(name)
        return provider

    def list_plugins(self) -> list[str]:
        """Names of all plugins visible from this registry."""
        names = self.parent.list_plugins() if self.parent is not None else []
        with self._lock:
            local = list(self._plugins)
        return names + [n for n in local if n not in names]

    def _has_local_plugin(self, name: str) -> bool:
        with self._lock:
            return name in self._plugins

    async def initialize_plugin(self, name: str) -> Any:
        """Runs the initializer of a plugin registered on this registry, once.

        Concurrent and repeated calls share the first call's outcome; a
        failure is cached and re-raised to every caller. Plugins that are not
        registered on this registry are ignored.

        Returns:
            Whatever the initializer returned.

        Raises:
            PluginResolutionError: If the initializer failed.
        """
        with self._lock:
            provider = self._plugins.get(name)
            if provider is None:
                return None
            init = self._plugin_inits.get(name)
            if init is None:
                init = share_future(run_in_fresh_context(_run_initializer, provider))
                self._plugin_inits[name] = init
        return await await_shared(init)

    async def initialize_all_plugins(self) -> None:
        """Initializes every plugin registered on this registry.

        Raises:
            PluginResolutionError: If any initializer failed.
        """
        if self._all_plugins_initialized:
            return
        with self._lock:
            names = list(self._plugins)
        for name in names:
            await self.initialize_plugin(name)
        with self._lock:
            if all(n in self._plugin_inits for n in self._plugins):
                self._all_plugins_initialized = True

    # Values.

    def register_value(self, kind: str, name: str, value: Any) -> None:
        """Registers an arbitrary value under (kind, name).

        Raises:
            DuplicateValueError: If the (kind, name) pair is already registered.
        """
        with self._lock:
            values = self._values.setdefault(kind, {})
            if name in values:
                raise DuplicateValueError(kind, name)
            values[name] = value
        logger.debug('registered value', kind=kind, name=name)

    async def lookup_value(self, kind: str, key: str) -> Any | None:
        """Looks up a value, initializing the owning plugin first if needed.

        `key` is plugin-qualified when written as `plugin/name` or as a full
        action key (`/kind/plugin/name`).

        Returns:
            The value, or None if it is not registered here or in an ancestor.
        """
        found, value = self._lookup_local_value(kind, key)
        if not found:
            plugin_name = _plugin_name_from_value_key(key)
            if plugin_name is not None and self._has_local_plugin(plugin_name):
                await self.initialize_plugin(plugin_name)
                found, value = self._lookup_local_value(kind, key)
        if found:
            return value
        if self.parent is not None:
            return await self.parent.lookup_value(kind, key)
        return None

    def _lookup_local_value(self, kind: str, key: str) -> tuple[bool, Any]:
        with self._lock:
            values = self._values.get(kind, {})
            if key in values:
                return True, values[key]
            return False, None

    async def list_values(self, kind: str) -> dict[str, Any]:
        """Returns all values of `kind`, local values shadowing ancestors'."""
        await self.initialize_all_plugins()
        values = await self.parent.list_values(kind) if self.parent is not None else {}
        with self._lock:
            values.update(self._values.get(kind, {}))
        return values

    # Schemas.

    def register_schema(self, name: str, schema: type | dict[str, Any]) -> None:
        """Registers a named schema (a Python type or a JSON schema).

        Raises:
            DuplicateSchemaError: If the name is already registered here.
        """
        with self._lock:
            if name in self._schemas:
                raise DuplicateSchemaError(name)
            self._schemas[name] = schema

    def lookup_schema(self, name: str) -> type | dict[str, Any] | None:
        """Returns the named schema as registered, searching ancestors on a miss."""
        with self._lock:
            schema = self._schemas.get(name)
        if schema is None and self.parent is not None:
            return self.parent.lookup_schema(name)
        return schema

    def lookup_json_schema(self, name: str) -> dict[str, Any] | None:
        """Returns the named schema in JSON schema form."""
        schema = self.lookup_schema(name)
        return to_json_schema(schema) if schema is not None else None

    # Tracing.

    def register_span_processor(self, processor: SpanProcessor) -> None:
        """Adds a span processor to the tracing sink shared by this registry tree."""
        add_span_processor(self.tracer_provider, processor)

    def register_span_exporter(self, exporter: SpanExporter) -> None:
        """Exports the spans of this registry tree through `exporter`."""
        add_custom_exporter(self.tracer_provider, exporter)


async def _identity(action: Action) -> Action:
    return action


async def _run_initializer(provider: PluginProvider) -> Any:
    logger.debug('initializing plugin', plugin=provider.name)
    try:
        return await ensure_async(provider.initializer)()
    except Exception as e:
        raise PluginResolutionError(provider.name, 'initialization', e) from e


async def _run_resolver(provider: PluginProvider, key: ActionKey) -> None:
    logger.debug('resolving action', plugin=provider.name, key=str(key))
    try:
        await ensure_async(provider.resolver)(key.action_type, key.action_name)
    except Exception as e:
        raise PluginResolutionError(provider.name, 'resolution', e) from e


async def _list_plugin_actions(provider: PluginProvider) -> list[ActionMetadata]:
    if provider.lister is None:
        return []
    try:
        listed = await run_outside_action_context(provider.lister)
        return [ActionMetadata.model_validate(meta) for meta in listed]
    except Exception:
        logger.exception('Error listing actions', plugin=provider.name)
        return []


def _plugin_name_from_value_key(key: str) -> str | None:
    if key.startswith('/'):
        try:
            return parse_action_key(key).plugin_name
        except ActionKitError:
            return None
    return parse_plugin_name_from_action_name(key)
