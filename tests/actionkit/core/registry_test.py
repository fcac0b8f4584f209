#!/usr/bin/env python3
#
# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Tests for the registry module.

Covers registration, lazy plugin resolution, memoized initialization, the
value and schema tables, listings and parent/child overlays.
"""

import asyncio
import threading
import time

import pytest
from pydantic import BaseModel

from actionkit.core.action import Action, ActionKind, ActionMetadata
from actionkit.core.context import SESSION_SLOT
from actionkit.core.error import (
    ActionKitError,
    ActionTypeMismatchError,
    DuplicatePluginError,
    DuplicateRegistrationError,
    DuplicateSchemaError,
    DuplicateValueError,
    MalformedKeyError,
    PluginResolutionError,
)
from actionkit.core.plugin import PluginProvider
from actionkit.core.registry import Registry


def _model(name: str) -> Action:
    return Action(kind=ActionKind.MODEL, name=name, fn=lambda x: x)


class Counter:
    """Records plugin callbacks."""

    def __init__(self) -> None:
        self.inits = 0
        self.resolves: list[tuple[ActionKind, str]] = []


def _openai_provider(registry: Registry, counter: Counter) -> PluginProvider:
    async def initializer():
        counter.inits += 1
        await asyncio.sleep(0)

    async def resolver(kind: ActionKind, name: str):
        counter.resolves.append((kind, name))
        await asyncio.sleep(0)
        if kind == ActionKind.MODEL and name == 'gpt-4':
            registry.register_action(kind, _model('openai/gpt-4'))

    return PluginProvider(name='openai', initializer=initializer, resolver=resolver)


@pytest.mark.asyncio
async def test_register_and_lookup_action(registry: Registry) -> None:
    """A registered action is returned as-is and skips plugin initialization."""
    counter = Counter()
    registry.register_plugin('openai', _openai_provider(registry, counter))
    action = _model('openai/gpt-3')
    registry.register_action(ActionKind.MODEL, action)

    assert await registry.lookup_action('/model/openai/gpt-3') is action
    assert counter.inits == 0
    assert counter.resolves == []


@pytest.mark.asyncio
async def test_define_action_and_lookup_by_kind(registry: Registry) -> None:
    action = registry.define_action(ActionKind.CUSTOM, 'test_action', lambda x: x)

    got = await registry.lookup_action_by_kind(ActionKind.CUSTOM, 'test_action')
    assert got is action
    assert got.kind == ActionKind.CUSTOM


def test_register_duplicate_action_fails(registry: Registry) -> None:
    registry.register_action(ActionKind.MODEL, _model('m'))

    with pytest.raises(DuplicateRegistrationError, match='/model/m'):
        registry.register_action(ActionKind.MODEL, _model('m'))


def test_register_duplicate_async_action_fails(registry: Registry) -> None:
    registry.register_action(ActionKind.MODEL, _model('m'))

    async def make():
        return _model('m')

    coro = make()
    with pytest.raises(DuplicateRegistrationError):
        registry.register_action_async(ActionKind.MODEL, 'm', coro)
    coro.close()


def test_register_action_type_mismatch(registry: Registry) -> None:
    with pytest.raises(ActionTypeMismatchError, match=r'action type \(tool\) does not match type on action \(model\)'):
        registry.register_action(ActionKind.TOOL, _model('m'))


def test_register_action_with_malformed_name(registry: Registry) -> None:
    with pytest.raises(MalformedKeyError):
        registry.register_action(ActionKind.MODEL, _model('/leading-slash'))


@pytest.mark.asyncio
async def test_lookup_missing_action_returns_none(registry: Registry) -> None:
    assert await registry.lookup_action('/model/unknown') is None
    assert await registry.lookup_action('/model/noplugin/unknown') is None


@pytest.mark.asyncio
async def test_lookup_malformed_key_raises(registry: Registry) -> None:
    with pytest.raises(MalformedKeyError):
        await registry.lookup_action('invalid_key')


@pytest.mark.asyncio
async def test_register_action_async(registry: Registry) -> None:
    calls = 0

    async def make():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0)
        return _model('lazy')

    registry.register_action_async(ActionKind.MODEL, 'lazy', make())

    first, second = await asyncio.gather(
        registry.lookup_action('/model/lazy'),
        registry.lookup_action('/model/lazy'),
    )
    assert first is second
    assert first.name == 'lazy'
    assert calls == 1
    assert await registry.lookup_action('/model/lazy') is first


@pytest.mark.asyncio
async def test_register_action_async_kind_mismatch(registry: Registry) -> None:
    async def make():
        return _model('x')

    registry.register_action_async(ActionKind.TOOL, 'x', make())

    with pytest.raises(ActionTypeMismatchError):
        await registry.lookup_action('/tool/x')


@pytest.mark.asyncio
async def test_register_action_async_name_mismatch(registry: Registry) -> None:
    async def make():
        return _model('other')

    registry.register_action_async(ActionKind.MODEL, 'wanted', make())

    with pytest.raises(ActionKitError, match='resolved to action named other') as excinfo:
        await registry.lookup_action('/model/wanted')
    assert excinfo.value.status == 'INVALID_ARGUMENT'
    assert await registry.lookup_action('/model/other') is None


@pytest.mark.asyncio
async def test_lazy_resolution_through_plugin(registry: Registry) -> None:
    """The resolver runs once; later lookups hit the table."""
    counter = Counter()
    registry.register_plugin('openai', _openai_provider(registry, counter))

    action = await registry.lookup_action('/model/openai/gpt-4')
    assert action is not None
    assert action.name == 'openai/gpt-4'
    assert counter.inits == 1
    assert counter.resolves == [(ActionKind.MODEL, 'gpt-4')]

    assert await registry.lookup_action('/model/openai/gpt-4') is action
    assert counter.resolves == [(ActionKind.MODEL, 'gpt-4')]


@pytest.mark.asyncio
async def test_unresolvable_plugin_action_returns_none(registry: Registry) -> None:
    counter = Counter()
    registry.register_plugin('openai', _openai_provider(registry, counter))

    assert await registry.lookup_action('/model/openai/does-not-exist') is None
    assert counter.inits == 1
    assert counter.resolves == [(ActionKind.MODEL, 'does-not-exist')]


@pytest.mark.asyncio
async def test_initializer_registered_action_skips_resolver(registry: Registry) -> None:
    resolves = []

    async def initializer():
        registry.register_action(ActionKind.MODEL, _model('eager/m'))

    async def resolver(kind, name):
        resolves.append(name)

    registry.register_plugin('eager', PluginProvider(name='eager', initializer=initializer, resolver=resolver))

    assert (await registry.lookup_action('/model/eager/m')).name == 'eager/m'
    assert resolves == []


@pytest.mark.asyncio
async def test_concurrent_lookups_share_resolution(registry: Registry) -> None:
    counter = Counter()
    registry.register_plugin('openai', _openai_provider(registry, counter))

    results = await asyncio.gather(*(registry.lookup_action('/model/openai/gpt-4') for _ in range(5)))

    assert all(r is results[0] for r in results)
    assert counter.inits == 1
    assert len(counter.resolves) == 1


@pytest.mark.asyncio
async def test_initialize_plugin_runs_once_for_concurrent_callers(registry: Registry) -> None:
    calls = 0
    gate = asyncio.Event()

    async def initializer():
        nonlocal calls
        calls += 1
        await gate.wait()
        return 'ready'

    registry.register_plugin('p', PluginProvider(name='p', initializer=initializer))

    waiters = [asyncio.create_task(registry.initialize_plugin('p')) for _ in range(10)]
    await asyncio.sleep(0)
    gate.set()

    assert await asyncio.gather(*waiters) == ['ready'] * 10
    assert calls == 1
    assert await registry.initialize_plugin('p') == 'ready'
    assert calls == 1


def test_initialize_plugin_shared_across_event_loops(registry: Registry) -> None:
    """Threads running their own loops wait on the same in-flight initialization."""
    calls = 0
    started = threading.Event()
    release = threading.Event()

    async def initializer():
        nonlocal calls
        calls += 1
        started.set()
        await asyncio.to_thread(release.wait, 5)
        return 'ready'

    registry.register_plugin('p', PluginProvider(name='p', initializer=initializer))

    results: list[object] = []
    errors: list[BaseException] = []

    def worker() -> None:
        try:
            results.append(asyncio.run(registry.initialize_plugin('p')))
        except BaseException as e:
            errors.append(e)

    first = threading.Thread(target=worker)
    first.start()
    assert started.wait(5)
    second = threading.Thread(target=worker)
    second.start()
    time.sleep(0.1)
    release.set()
    first.join(5)
    second.join(5)

    assert errors == []
    assert results == ['ready', 'ready']
    assert calls == 1


@pytest.mark.asyncio
async def test_initializer_failure_is_cached(registry: Registry) -> None:
    calls = 0

    async def initializer():
        nonlocal calls
        calls += 1
        raise RuntimeError('no credentials')

    registry.register_plugin('p', PluginProvider(name='p', initializer=initializer))

    for _ in range(2):
        with pytest.raises(PluginResolutionError, match='no credentials') as excinfo:
            await registry.lookup_action('/model/p/m')
        assert isinstance(excinfo.value.cause, RuntimeError)
    assert calls == 1


@pytest.mark.asyncio
async def test_resolver_failure_propagates(registry: Registry) -> None:
    async def resolver(kind, name):
        raise RuntimeError('boom')

    registry.register_plugin('p', PluginProvider(name='p', initializer=lambda: None, resolver=resolver))

    with pytest.raises(PluginResolutionError, match='resolution'):
        await registry.lookup_action('/model/p/m')


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_initialization(registry: Registry) -> None:
    gate = asyncio.Event()
    done = []

    async def initializer():
        await gate.wait()
        done.append(True)

    registry.register_plugin('p', PluginProvider(name='p', initializer=initializer))

    first = asyncio.create_task(registry.initialize_plugin('p'))
    await asyncio.sleep(0)
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first

    second = asyncio.create_task(registry.initialize_plugin('p'))
    gate.set()
    await second
    assert done == [True]


@pytest.mark.asyncio
async def test_resolution_runs_outside_caller_context(registry: Registry) -> None:
    seen = {}

    async def initializer():
        seen['init'] = registry.async_store.get_store(SESSION_SLOT)

    async def resolver(kind, name):
        seen['resolve'] = registry.async_store.get_store(SESSION_SLOT)

    registry.register_plugin('p', PluginProvider(name='p', initializer=initializer, resolver=resolver))

    async def lookup():
        return await registry.lookup_action('/model/p/m')

    await registry.async_store.run(SESSION_SLOT, 'sessionA', lookup)
    assert seen == {'init': None, 'resolve': None}


@pytest.mark.asyncio
async def test_sync_plugin_callbacks(registry: Registry) -> None:
    """Plain functions work as initializer, resolver and lister."""

    def resolver(kind, name):
        registry.register_action(kind, _model(f'sync/{name}'))

    registry.register_plugin(
        'sync',
        PluginProvider(
            name='sync',
            initializer=lambda: None,
            resolver=resolver,
            lister=lambda: [ActionMetadata(kind=ActionKind.MODEL, name='sync/listed')],
        ),
    )

    assert (await registry.lookup_action('/model/sync/m')).name == 'sync/m'
    assert '/model/sync/listed' in await registry.list_resolvable_actions()


def test_register_plugin_twice_fails(registry: Registry) -> None:
    registry.register_plugin('p', PluginProvider(name='p', initializer=lambda: None))

    with pytest.raises(DuplicatePluginError, match='Plugin p already registered'):
        registry.register_plugin('p', PluginProvider(name='p', initializer=lambda: None))


def test_lookup_plugin(registry: Registry) -> None:
    provider = PluginProvider(name='p', initializer=lambda: None)
    registry.register_plugin('p', provider)

    assert registry.lookup_plugin('p') is provider
    assert registry.lookup_plugin('q') is None
    assert registry.list_plugins() == ['p']


@pytest.mark.asyncio
async def test_initialize_all_plugins(registry: Registry) -> None:
    inits = []
    for name in ('a', 'b'):
        registry.register_plugin(name, PluginProvider(name=name, initializer=lambda n=name: inits.append(n)))

    await registry.initialize_all_plugins()
    await registry.initialize_all_plugins()
    assert inits == ['a', 'b']

    registry.register_plugin('c', PluginProvider(name='c', initializer=lambda: inits.append('c')))
    await registry.initialize_all_plugins()
    assert inits == ['a', 'b', 'c']


@pytest.mark.asyncio
async def test_list_actions_waits_for_pending(registry: Registry) -> None:
    async def make():
        await asyncio.sleep(0)
        return _model('pending')

    eager = registry.define_action(ActionKind.TOOL, 'eager', lambda x: x)
    registry.register_action_async(ActionKind.MODEL, 'pending', make())

    actions = await registry.list_actions()
    assert set(actions) == {'/tool/eager', '/model/pending'}
    assert actions['/tool/eager'] is eager
    assert actions['/model/pending'].name == 'pending'


@pytest.mark.asyncio
async def test_list_actions_initializes_plugins(registry: Registry) -> None:
    async def initializer():
        registry.register_action(ActionKind.MODEL, _model('p/m'))

    registry.register_plugin('p', PluginProvider(name='p', initializer=initializer))

    assert '/model/p/m' in await registry.list_actions()


@pytest.mark.asyncio
async def test_list_resolvable_actions_isolates_broken_plugin(registry: Registry) -> None:
    """A failing lister is logged and skipped; everything else is listed."""
    inits = []

    async def healthy_lister():
        return [
            ActionMetadata(kind=ActionKind.MODEL, name='healthy/m1'),
            {'actionType': 'embedder', 'name': 'healthy/e1'},
        ]

    async def broken_lister():
        raise RuntimeError('listing failed')

    registry.register_plugin(
        'healthy',
        PluginProvider(name='healthy', initializer=lambda: inits.append('healthy'), lister=healthy_lister),
    )
    registry.register_plugin(
        'broken',
        PluginProvider(name='broken', initializer=lambda: inits.append('broken'), lister=broken_lister),
    )
    registry.define_action(ActionKind.TOOL, 'registered', lambda x: x)

    got = await registry.list_resolvable_actions()

    assert set(got) == {'/model/healthy/m1', '/embedder/healthy/e1', '/tool/registered'}
    assert got['/tool/registered'].kind == ActionKind.TOOL
    assert inits == []


@pytest.mark.asyncio
async def test_list_resolvable_actions_rejects_invalid_metadata(registry: Registry) -> None:
    async def lister():
        return [{'name': 'bad/no-kind'}]

    registry.register_plugin('bad', PluginProvider(name='bad', initializer=lambda: None, lister=lister))

    assert await registry.list_resolvable_actions() == {}


@pytest.mark.parametrize(
    'allowed_kinds, expected',
    [
        ({ActionKind.CUSTOM}, {'/custom/test_action'}),
        (None, {'/custom/test_action', '/tool/test_tool'}),
        ({ActionKind.CUSTOM, ActionKind.TOOL}, {'/custom/test_action', '/tool/test_tool'}),
    ],
)
@pytest.mark.asyncio
async def test_list_serializable_actions(allowed_kinds, expected) -> None:
    def lister():
        return [
            ActionMetadata(kind=ActionKind.CUSTOM, name='test_action'),
            ActionMetadata(kind=ActionKind.TOOL, name='test_tool'),
        ]

    registry = Registry()
    registry.register_plugin('test_plugin', PluginProvider(name='test_plugin', initializer=lambda: None, lister=lister))

    got = await registry.list_serializable_actions(allowed_kinds)
    assert set(got) == expected
    assert got['/custom/test_action'] == {
        'key': '/custom/test_action',
        'name': 'test_action',
        'inputSchema': None,
        'outputSchema': None,
        'metadata': None,
    }


@pytest.mark.asyncio
async def test_register_and_lookup_value(registry: Registry) -> None:
    registry.register_value('format', 'json', [1, 2, 3])
    registry.register_value('flag', 'off', False)

    assert await registry.lookup_value('format', 'json') == [1, 2, 3]
    assert await registry.lookup_value('flag', 'off') is False
    assert await registry.lookup_value('format', 'xml') is None


def test_register_duplicate_value_fails(registry: Registry) -> None:
    registry.register_value('format', 'json', 1)

    with pytest.raises(DuplicateValueError, match='value for kind "format" and name "json" is already registered'):
        registry.register_value('format', 'json', 2)


@pytest.mark.asyncio
async def test_lookup_value_initializes_owning_plugin(registry: Registry) -> None:
    async def initializer():
        registry.register_value('format', 'myplugin/csv', 'csv-formatter')

    registry.register_plugin('myplugin', PluginProvider(name='myplugin', initializer=initializer))

    assert await registry.lookup_value('format', 'myplugin/csv') == 'csv-formatter'


@pytest.mark.asyncio
async def test_list_values(registry: Registry) -> None:
    async def initializer():
        registry.register_value('format', 'p/yaml', 'yaml')

    registry.register_plugin('p', PluginProvider(name='p', initializer=initializer))
    registry.register_value('format', 'json', 'json')

    assert await registry.list_values('format') == {'json': 'json', 'p/yaml': 'yaml'}
    assert await registry.list_values('nothing') == {}


class Recipe(BaseModel):
    title: str


def test_register_and_lookup_schema(registry: Registry) -> None:
    registry.register_schema('Recipe', Recipe)
    registry.register_schema('Raw', {'type': 'string'})

    assert registry.lookup_schema('Recipe') is Recipe
    assert registry.lookup_json_schema('Recipe') == Recipe.model_json_schema()
    assert registry.lookup_json_schema('Raw') == {'type': 'string'}
    assert registry.lookup_schema('Missing') is None

    with pytest.raises(DuplicateSchemaError):
        registry.register_schema('Recipe', Recipe)


class TestRegistryHierarchy:
    """Parent/child overlay semantics."""

    @pytest.mark.asyncio
    async def test_child_sees_parent_entries(self) -> None:
        parent = Registry()
        action = parent.define_action(ActionKind.TOOL, 'shared', lambda x: x)
        parent.register_value('defaultModel', 'defaultModel', 'openai/gpt-4')
        parent.register_schema('S', {'type': 'string'})
        provider = PluginProvider(name='p', initializer=lambda: None)
        parent.register_plugin('p', provider)

        child = Registry.with_parent(parent)

        assert await child.lookup_action('/tool/shared') is action
        assert await child.lookup_value('defaultModel', 'defaultModel') == 'openai/gpt-4'
        assert child.lookup_schema('S') == {'type': 'string'}
        assert child.lookup_plugin('p') is provider
        assert child.parent is parent

    @pytest.mark.asyncio
    async def test_parent_never_sees_child_entries(self) -> None:
        parent = Registry()
        child = Registry.with_parent(parent)
        child.define_action(ActionKind.TOOL, 'local', lambda x: x)
        child.register_value('k', 'n', 1)
        child.register_plugin('p', PluginProvider(name='p', initializer=lambda: None))

        assert await parent.lookup_action('/tool/local') is None
        assert await parent.lookup_value('k', 'n') is None
        assert parent.lookup_plugin('p') is None
        assert '/tool/local' not in await parent.list_actions()
        assert parent.list_plugins() == []

    @pytest.mark.asyncio
    async def test_child_shadows_parent(self) -> None:
        parent = Registry()
        parent.define_action(ActionKind.TOOL, 't', lambda x: 'parent')
        parent.register_value('k', 'n', 'parent')
        child = Registry.with_parent(parent)
        child_action = child.define_action(ActionKind.TOOL, 't', lambda x: 'child')
        child.register_value('k', 'n', 'child')

        assert await child.lookup_action('/tool/t') is child_action
        assert await child.lookup_value('k', 'n') == 'child'
        assert (await child.list_actions())['/tool/t'] is child_action
        assert await child.list_values('k') == {'n': 'child'}

    @pytest.mark.asyncio
    async def test_child_falls_back_to_parent_plugin(self) -> None:
        parent = Registry()
        counter = Counter()
        parent.register_plugin('openai', _openai_provider(parent, counter))
        child = Registry.with_parent(parent)

        action = await child.lookup_action('/model/openai/gpt-4')

        assert action is not None
        assert await parent.lookup_action('/model/openai/gpt-4') is action
        assert counter.inits == 1

    @pytest.mark.asyncio
    async def test_child_list_resolvable_merges_parent(self) -> None:
        parent = Registry()
        parent.define_action(ActionKind.TOOL, 'p_tool', lambda x: x)
        child = Registry.with_parent(parent)
        child.define_action(ActionKind.TOOL, 'c_tool', lambda x: x)

        assert set(await child.list_resolvable_actions()) == {'/tool/p_tool', '/tool/c_tool'}
        assert set(await parent.list_resolvable_actions()) == {'/tool/p_tool'}

    def test_child_shares_singletons(self) -> None:
        parent = Registry()
        parent.api_stability = 'beta'
        child = Registry.with_parent(parent)

        assert child.async_store is parent.async_store
        assert child.tracer_provider is parent.tracer_provider
        assert child.api_stability == 'beta'
