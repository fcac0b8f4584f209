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

"""Plugin contract of the registry.

Plugins are the extension mechanism that lazily populates a registry. There
are two levels to the contract:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Type              │ Description                                     │
    ├───────────────────┼─────────────────────────────────────────────────┤
    │ PluginProvider    │ What the registry stores: one initializer, one  │
    │                   │ resolver and one lister. The resolver registers │
    │                   │ actions into the registry as a side effect.     │
    │ Plugin            │ Base class for plugin authors. `init()` and     │
    │                   │ `resolve()` return actions instead of           │
    │                   │ registering them; `plugin_provider()` adapts a  │
    │                   │ Plugin into a PluginProvider for one registry.  │
    └───────────────────┴─────────────────────────────────────────────────┘

Lifecycle:

    register ──► init (once, lazy) ──► resolve (per missing key) ──► Action
        │
        └──────► list_actions (discovery, no init)

Example:
    ```python
    class MyPlugin(Plugin):
        name = 'myplugin'

        async def init(self) -> list[Action]:
            return []

        async def resolve(self, action_type: ActionKind, name: str) -> Action | None:
            if action_type == ActionKind.MODEL:
                return Action(kind=ActionKind.MODEL, name=name, fn=self._generate)
            return None

        async def list_actions(self) -> list[ActionMetadata]:
            return [ActionMetadata(kind=ActionKind.MODEL, name='myplugin/my-model')]


    registry = Registry()
    registry.register_plugin('myplugin', plugin_provider(registry, MyPlugin()))
    model = await registry.lookup_action('/model/myplugin/my-model')
    ```
"""

from __future__ import annotations

import abc
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from actionkit.aio import ensure_async
from actionkit.core.action import Action, ActionKind, ActionMetadata
from actionkit.core.logging import get_logger

if TYPE_CHECKING:
    from actionkit.core.registry import Registry

logger = get_logger(__name__)

Initializer = Callable[[], Awaitable[Any] | Any]
Resolver = Callable[[ActionKind, str], Awaitable[None] | None]
Lister = Callable[[], Awaitable[list[ActionMetadata]] | list[ActionMetadata]]


@dataclass(frozen=True)
class PluginProvider:
    """A named bundle of initializer, resolver and lister.

    Attributes:
        name: The plugin namespace (e.g. 'openai').
        initializer: Called at most once per registry, lazily.
        resolver: Called with `(kind, action_name)` for keys missing after
            initialization, where `action_name` excludes the plugin segment.
            Expected to register actions as a side effect.
        lister: Returns metadata for the actions the plugin can provide,
            without requiring initialization.
    """

    name: str
    initializer: Initializer
    resolver: Resolver | None = None
    lister: Lister | None = None


class Plugin(abc.ABC):
    """Abstract base class for implementing plugins."""

    name: str

    @abc.abstractmethod
    async def init(self) -> list[Action]:
        """Lazy warm-up called once per registry.

        Returns:
            Actions to pre-register. Their names should carry the plugin
            namespace (e.g. 'myplugin/my-model').
        """
        ...

    async def resolve(self, action_type: ActionKind, name: str) -> Action | None:
        """Resolve a single action on demand.

        Args:
            action_type: The kind of action to resolve.
            name: The namespaced name (e.g. 'myplugin/my-model').

        Returns:
            The Action if this plugin provides it, None otherwise.
        """
        return None

    async def list_actions(self) -> list[ActionMetadata]:
        """Advertised set of actions for discovery.

        Should be inexpensive and must not depend on `init()` having run.
        """
        return []


def plugin_provider(registry: Registry, plugin: Plugin) -> PluginProvider:
    """Adapts a `Plugin` into a `PluginProvider` that registers into `registry`.

    Args:
        registry: The registry the plugin's actions are registered into.
        plugin: The plugin to adapt.

    Returns:
        A provider suitable for `registry.register_plugin(plugin.name, ...)`.
    """

    async def initializer() -> None:
        logger.debug('Initializing plugin', plugin=plugin.name)
        for action in await ensure_async(plugin.init)():
            registry.register_action(action.kind, action)

    async def resolver(action_type: ActionKind, action_name: str) -> None:
        action = await plugin.resolve(action_type, f'{plugin.name}/{action_name}')
        if action is not None:
            registry.register_action(action_type, action)

    return PluginProvider(
        name=plugin.name,
        initializer=initializer,
        resolver=resolver,
        lister=plugin.list_actions,
    )
