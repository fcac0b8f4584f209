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

"""actionkit: action registry and dynamic resolution core."""

from actionkit.ai import ActionKit
from actionkit.core.action import (
    Action,
    ActionKey,
    ActionKind,
    ActionMetadata,
    ActionResponse,
    ActionRunContext,
    create_action_key,
    format_action_key,
    parse_action_key,
)
from actionkit.core.context import SESSION_SLOT, AsyncStore
from actionkit.core.error import (
    ActionKitError,
    ActionTypeMismatchError,
    DuplicatePluginError,
    DuplicateRegistrationError,
    DuplicateSchemaError,
    DuplicateValueError,
    MalformedKeyError,
    PluginResolutionError,
    UserFacingError,
)
from actionkit.core.plugin import Plugin, PluginProvider, plugin_provider
from actionkit.core.registry import DEFAULT_MODEL_KEY, PROMPT_DIR_KEY, Registry

__all__ = [
    'DEFAULT_MODEL_KEY',
    'PROMPT_DIR_KEY',
    'SESSION_SLOT',
    'Action',
    'ActionKey',
    'ActionKind',
    'ActionKit',
    'ActionKitError',
    'ActionMetadata',
    'ActionResponse',
    'ActionRunContext',
    'ActionTypeMismatchError',
    'AsyncStore',
    'DuplicatePluginError',
    'DuplicateRegistrationError',
    'DuplicateSchemaError',
    'DuplicateValueError',
    'MalformedKeyError',
    'Plugin',
    'PluginProvider',
    'PluginResolutionError',
    'Registry',
    'UserFacingError',
    'create_action_key',
    'format_action_key',
    'parse_action_key',
    'plugin_provider',
]
