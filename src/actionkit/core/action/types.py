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

"""Action types module for defining and managing action types."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Type alias for action name.
ActionName = str

# A resolver registers actions for (kind, name) as a side effect.
ActionResolver = Callable[['ActionKind', str], Awaitable[None] | None]


class ActionKind(StrEnum):
    """Enumerates all the types of action that can be registered.

    `BACKGROUND_MODEL`, `CHECK_OPERATION` and `CANCEL_OPERATION` make up the
    background-job family: a long running model plus the operations used to
    poll and cancel it.
    """

    BACKGROUND_MODEL = 'background-model'
    CANCEL_OPERATION = 'cancel-operation'
    CHECK_OPERATION = 'check-operation'
    CUSTOM = 'custom'
    EMBEDDER = 'embedder'
    EVALUATOR = 'evaluator'
    EXECUTABLE_PROMPT = 'executable-prompt'
    FLOW = 'flow'
    INDEXER = 'indexer'
    MODEL = 'model'
    PROMPT = 'prompt'
    RERANKER = 'reranker'
    RESOURCE = 'resource'
    RETRIEVER = 'retriever'
    TOOL = 'tool'
    UTIL = 'util'


class ActionResponse(BaseModel):
    """The response from an action.

    Attributes:
        response: The actual response data from the action execution.
        trace_id: A unique identifier for tracing the action execution.
    """

    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    response: Any
    trace_id: str = Field(alias='traceId')


class ActionMetadata(BaseModel):
    """Descriptive record of an action, used for listing without invoking.

    Attributes:
        name: The action name, plugin-qualified where applicable
            (e.g. `openai/gpt-4`).
        kind: The action type. Serialized as `actionType`.
        description: Optional human-readable description.
        input_schema: JSON schema of the input.
        output_schema: JSON schema of the output.
        config_schema: JSON schema of the action's configuration, if any.
        metadata: Free-form descriptive info.
    """

    model_config = ConfigDict(extra='forbid', populate_by_name=True)

    name: str
    kind: ActionKind = Field(alias='actionType')
    description: str | None = None
    input_schema: dict[str, Any] | None = Field(None, alias='inputSchema')
    output_schema: dict[str, Any] | None = Field(None, alias='outputSchema')
    config_schema: dict[str, Any] | None = Field(None, alias='configSchema')
    metadata: dict[str, Any] | None = None


class ActionMetadataKey(StrEnum):
    """Enumerates all the keys of the action metadata.

    Attributes:
        INPUT_KEY: Key for the input schema metadata.
        OUTPUT_KEY: Key for the output schema metadata.
        RETURN: Key for the return type metadata.
    """

    INPUT_KEY = 'inputSchema'
    OUTPUT_KEY = 'outputSchema'
    RETURN = 'return'
