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

"""Scoped, call-chain-local state.

`AsyncStore` manages a set of named slots of ambient state. Each slot is
backed by its own `ContextVar`, so:

    - a value bound with `run()` or `bind()` is visible to everything the
      body calls or awaits, including tasks it spawns while the binding is
      active (asyncio tasks snapshot the context on creation);
    - nested bindings of the same slot shadow the outer value and restore it
      on exit;
    - concurrently running sibling tasks only observe bindings made on their
      own call chain.

Example:
    >>> store = AsyncStore()
    >>> store.run(SESSION_SLOT, 'session-a', lambda: store.get_store(SESSION_SLOT))
    'session-a'
    >>> store.get_store(SESSION_SLOT) is None
    True
"""

from __future__ import annotations

import inspect
import threading
from collections.abc import Awaitable, Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

from actionkit.aio import run_in_fresh_context

T = TypeVar('T')

SESSION_SLOT = 'actionkit:session'


class AsyncStore:
    """Manages named `ContextVar` slots in a single place."""

    def __init__(self) -> None:
        self._slots: dict[str, ContextVar[Any]] = {}
        self._lock = threading.Lock()

    def _slot(self, key: str) -> ContextVar[Any]:
        with self._lock:
            var = self._slots.get(key)
            if var is None:
                var = ContextVar(f'actionkit_store_{key}', default=None)
                self._slots[key] = var
            return var

    def get_store(self, key: str) -> Any | None:
        """Returns the value bound to `key` on this call chain, or None."""
        var = self._slots.get(key)
        if var is None:
            return None
        return var.get()

    @contextmanager
    def bind(self, key: str, value: Any) -> Generator[None, None, None]:
        """Binds `value` to `key` for the duration of the `with` block."""
        var = self._slot(key)
        token = var.set(value)
        try:
            yield
        finally:
            var.reset(token)

    def run(self, key: str, value: Any, fn: Callable[..., T], *args: Any) -> T:
        """Runs `fn(*args)` with `value` bound to `key`.

        If `fn` returns an awaitable (a coroutine function, or a plain
        callable such as `lambda: body()`), the returned awaitable keeps the
        binding while it is awaited, and the binding is released when it
        completes.
        """
        with self.bind(key, value):
            result = fn(*args)
        if inspect.isawaitable(result):
            return self._await_bound(key, value, result)
        return result

    async def _await_bound(self, key: str, value: Any, awaitable: Awaitable[T]) -> T:
        with self.bind(key, value):
            return await awaitable


async def run_outside_action_context(fn: Callable[..., Awaitable[T]], *args: Any) -> T:
    """Runs `fn(*args)` with every ambient slot unset.

    Plugin initialization and resolution go through here so plugin code never
    inherits the calling request's session, action context or trace span.
    """
    return await run_in_fresh_context(fn, *args)
