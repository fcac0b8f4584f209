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

"""Action key module for parsing and formatting action keys.

Keys are part of the wire contract with inspection tooling and look like:

    - `/util/generate`                     (no plugin)
    - `/model/googleai/gemini-2.0-flash`   (plugin `googleai`)
    - `/prompt/my-plugin/folder/my-prompt` (action name `folder/my-prompt`)
"""

from dataclasses import dataclass

from actionkit.core.error import MalformedKeyError

from .types import ActionKind


@dataclass(frozen=True)
class ActionKey:
    """Structured form of an action key."""

    action_type: ActionKind
    action_name: str
    plugin_name: str | None = None

    @property
    def qualified_name(self) -> str:
        """The action name as registered, i.e. `plugin/name` or `name`."""
        if self.plugin_name is None:
            return self.action_name
        return f'{self.plugin_name}/{self.action_name}'

    def __str__(self) -> str:
        return format_action_key(self)


def parse_action_key(key: str) -> ActionKey:
    """Parse an action key into its components.

    Args:
        key: The key, `/<kind>/<name>` or `/<kind>/<plugin>/<name...>`.

    Returns:
        The parsed `ActionKey`.

    Raises:
        MalformedKeyError: If the key has fewer than three segments, lacks the
            leading slash, has empty segments, or names an unknown kind.
    """
    tokens = key.split('/')
    if len(tokens) < 3:
        raise MalformedKeyError(key)
    if tokens[0]:
        raise MalformedKeyError(key, 'missing leading slash')
    if not tokens[1]:
        raise MalformedKeyError(key, 'empty kind')

    try:
        kind = ActionKind(tokens[1])
    except ValueError as e:
        raise MalformedKeyError(key, f'invalid action kind `{tokens[1]}`') from e

    if len(tokens) == 3:
        if not tokens[2]:
            raise MalformedKeyError(key, 'empty name')
        return ActionKey(action_type=kind, action_name=tokens[2])

    plugin_name = tokens[2]
    action_name = '/'.join(tokens[3:])
    if not plugin_name:
        raise MalformedKeyError(key, 'empty plugin name')
    if not action_name:
        raise MalformedKeyError(key, 'empty name')
    return ActionKey(action_type=kind, plugin_name=plugin_name, action_name=action_name)


def format_action_key(key: ActionKey) -> str:
    """Formats an `ActionKey` back into its string form."""
    return create_action_key(key.action_type, key.qualified_name)


def create_action_key(kind: ActionKind | str, name: str) -> str:
    """Create an action key from its kind and name components.

    Args:
        kind: The kind of action.
        name: The name of the action, optionally plugin-qualified.

    Returns:
        The action key in the format `/<kind>/<name>`.
    """
    return f'/{kind}/{name}'
