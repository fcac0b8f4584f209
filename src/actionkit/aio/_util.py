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

"""AIO util module for defining and managing AIO utilities."""

import asyncio
import concurrent.futures
import contextvars
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar('T')


def ensure_async(fn: Callable) -> Callable:
    """Ensure the function is async.

    Synchronous functions are wrapped so they can be awaited. If a
    synchronous function happens to return an awaitable (for example a
    lambda returning a coroutine), the wrapper awaits it as well.

    Args:
        fn: The function to ensure is async.

    Returns:
        The async function.
    """
    if inspect.iscoroutinefunction(fn):
        return fn

    async def async_wrapper(*args, **kwargs):
        result = fn(*args, **kwargs)
        if inspect.isawaitable(result):
            return await result
        return result

    return async_wrapper


def run_in_fresh_context(fn: Callable[..., Awaitable[T]], *args: Any) -> asyncio.Task[T]:
    """Schedules `fn(*args)` as a task that runs in an empty context.

    The task does not inherit any `ContextVar` bindings of the caller, which
    means ambient state such as scoped slots, the current action context or
    the active OpenTelemetry span are all unset inside `fn`.

    Must be called from within a running event loop.

    Args:
        fn: The coroutine function (or sync function) to run.
        *args: Positional arguments for `fn`.

    Returns:
        The scheduled task.
    """
    loop = asyncio.get_running_loop()
    return loop.create_task(ensure_async(fn)(*args), context=contextvars.Context())


def share_future(fut: asyncio.Future[T]) -> concurrent.futures.Future[T]:
    """Mirrors the outcome of an asyncio future into a thread-safe future.

    The returned future can be awaited from any event loop with
    `await_shared()`, while `fut` keeps running on the loop that owns it.

    Args:
        fut: The asyncio future or task to mirror.

    Returns:
        A `concurrent.futures.Future` settled when `fut` completes.
    """
    shared: concurrent.futures.Future[T] = concurrent.futures.Future()

    def _copy(done: asyncio.Future[T]) -> None:
        if done.cancelled():
            shared.cancel()
            return
        exc = done.exception()
        if exc is not None:
            shared.set_exception(exc)
        else:
            shared.set_result(done.result())

    fut.add_done_callback(_copy)
    return shared


async def await_shared(shared: concurrent.futures.Future[T]) -> T:
    """Awaits a future produced by `share_future()` from the running loop.

    Cancelling the caller does not cancel the shared outcome.
    """
    return await asyncio.shield(asyncio.wrap_future(shared))
