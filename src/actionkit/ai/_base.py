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

"""Application object wrapping a registry with an explicit lifecycle.

`ActionKit` wires plugins and defaults into a `Registry` and exposes
`configure()`, `start()` and `stop()`. It installs no signal handlers and has
no import-time side effects; the host program decides when to call `stop()`.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from actionkit.core.action import Action, ActionKind
from actionkit.core.context import SESSION_SLOT
from actionkit.core.logging import get_logger
from actionkit.core.plugin import Plugin, PluginProvider, plugin_provider
from actionkit.core.registry import DEFAULT_MODEL_KEY, PROMPT_DIR_KEY, Registry

logger = get_logger(__name__)

T = TypeVar('T')


class ActionKit:
    """A single application instance and the registry it exclusively modifies."""

    def __init__(
        self,
        plugins: Sequence[Plugin | PluginProvider] | None = None,
        model: str | None = None,
        prompt_dir: str | None = None,
        registry: Registry | None = None,
    ) -> None:
        """Initialize a new instance.

        Args:
            plugins: Plugins to register. They are initialized lazily, or all
                at once by `start()`.
            model: Default model name, e.g. 'openai/gpt-4'.
            prompt_dir: Directory prompt loaders should read from.
            registry: Registry to populate. A fresh root registry by default.
        """
        self.registry = registry if registry is not None else Registry()
        self._started = False
        self.configure(plugins=plugins, model=model, prompt_dir=prompt_dir)

    @property
    def started(self) -> bool:
        return self._started

    def configure(
        self,
        plugins: Sequence[Plugin | PluginProvider] | None = None,
        model: str | None = None,
        prompt_dir: str | None = None,
    ) -> None:
        """Registers plugins and default values on the registry.

        Raises:
            ValueError: If an entry of `plugins` is neither a Plugin nor a
                PluginProvider.
            DuplicatePluginError: If a plugin name is already registered.
            DuplicateValueError: If a default model or prompt dir was already
                configured.
        """
        if model is not None:
            self.registry.register_value(DEFAULT_MODEL_KEY, DEFAULT_MODEL_KEY, model)
        if prompt_dir is not None:
            self.registry.register_value(PROMPT_DIR_KEY, PROMPT_DIR_KEY, prompt_dir)

        for plugin in plugins or []:
            if isinstance(plugin, Plugin):
                provider = plugin_provider(self.registry, plugin)
            elif isinstance(plugin, PluginProvider):
                provider = plugin
            else:
                raise ValueError(f'Invalid {plugin=}: must be a `Plugin` or `PluginProvider`')
            logger.debug('Registering plugin', plugin=provider.name)
            self.registry.register_plugin(provider.name, provider)

    async def start(self) -> None:
        """Initializes every configured plugin.

        Raises:
            PluginResolutionError: If a plugin fails to initialize.
        """
        await self.registry.initialize_all_plugins()
        self._started = True
        await logger.ainfo('actionkit started', plugins=self.registry.list_plugins())

    async def stop(self) -> None:
        """Flushes pending spans. The registry stays usable afterwards."""
        self.registry.tracer_provider.force_flush()
        self._started = False
        await logger.ainfo('actionkit stopped')

    def child(self) -> ActionKit:
        """Returns an instance over a child registry, for isolated scopes."""
        return ActionKit(registry=Registry.with_parent(self.registry))

    def define_action(self, kind: ActionKind, name: str, fn: Callable[..., Any], **kwargs: Any) -> Action:
        """Defines and registers an action. See `Registry.define_action`."""
        return self.registry.define_action(kind, name, fn, **kwargs)

    async def lookup_action(self, key: str) -> Action | None:
        return await self.registry.lookup_action(key)

    async def resolve_model(self, model: str | None = None) -> Action | None:
        """Looks up a model action by name, falling back to the default model.

        Returns:
            The model action, or None if it can't be found.

        Raises:
            ValueError: If no model is given and no default is configured.
        """
        if model is None:
            model = await self.registry.lookup_value(DEFAULT_MODEL_KEY, DEFAULT_MODEL_KEY)
            if model is None:
                raise ValueError('Unable to resolve model.')
        return await self.registry.lookup_action_by_kind(ActionKind.MODEL, model)

    def run_in_session(self, session: Any, fn: Callable[..., T], *args: Any) -> T:
        """Runs `fn(*args)` with `session` as the current session."""
        return self.registry.async_store.run(SESSION_SLOT, session, fn, *args)

    def current_session(self) -> Any | None:
        """Returns the session bound on this call chain, if any."""
        return self.registry.async_store.get_store(SESSION_SLOT)
