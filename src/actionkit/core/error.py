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

"""Base error classes and utilities for actionkit.

Every error raised by the registry derives from `ActionKitError`, which
carries a canonical status name, its HTTP mapping, and a details dictionary
that always includes the formatted stack of the originating exception.

Registration-time errors (duplicates, type mismatches, malformed keys) are
raised directly to the caller. Lookup absence is never an error: lookups
return `None` instead.
"""

import traceback
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from actionkit.core.status_types import StatusCodes, StatusName, http_status_code


class ErrorDetailsWireFormat(BaseModel):
    """Wire format for error details."""

    model_config = ConfigDict(extra='allow', populate_by_name=True)

    stack: str | None = None
    trace_id: str | None = Field(None, alias='traceId')


class ErrorWireFormat(BaseModel):
    """Wire format consumed by introspection tools."""

    model_config = ConfigDict(frozen=True, extra='forbid', populate_by_name=True)

    details: ErrorDetailsWireFormat | None = None
    message: str
    code: int = StatusCodes.INTERNAL.value


class ActionKitError(Exception):
    """Base error class for actionkit errors."""

    def __init__(
        self,
        *,
        message: str,
        status: StatusName | None = None,
        cause: Exception | None = None,
        details: Any = None,
        trace_id: str | None = None,
        source: str | None = None,
    ) -> None:
        """Initialize an ActionKitError.

        Args:
            message: The error message.
            status: The status name for this error. Inherited from `cause`
                when it is an `ActionKitError`, otherwise `INTERNAL`.
            cause: The underlying exception, if any.
            details: Optional detail information.
            trace_id: Trace id of the span the error was raised in.
            source: Optional source of the error.
        """
        source_prefix = f'{source}: ' if source else ''
        if not status and isinstance(cause, ActionKitError):
            status = cause.status
        if not status:
            status = 'INTERNAL'
        super().__init__(f'{source_prefix}{status}: {message}')
        self.original_message = message
        self.status: StatusName = status
        self.http_code = http_status_code(status)

        if not details:
            details = {}
        if 'stack' not in details:
            details['stack'] = get_error_stack(cause if cause else self)
        if 'trace_id' not in details and trace_id:
            details['trace_id'] = trace_id

        self.details = details
        self.source = source
        self.trace_id = trace_id
        self.cause = cause

    def to_serializable(self) -> ErrorWireFormat:
        """Returns a JSON-serializable representation of this error."""
        return ErrorWireFormat(
            details=self.details,
            code=StatusCodes[self.status].value,
            message=repr(self.cause) if self.cause else self.original_message,
        )


class UserFacingError(ActionKitError):
    """Error class for issues that are safe to return to end users.

    The registry itself only reports raw facts; orchestration layers use this
    type to turn them (for example a missing action) into user-visible errors.
    """

    def __init__(self, status: StatusName, message: str, details: Any = None) -> None:
        super().__init__(status=status, message=message, details=details)


class MalformedKeyError(ActionKitError, ValueError):
    """Raised when an action key string cannot be parsed."""

    def __init__(self, key: str, reason: str | None = None) -> None:
        msg = f'Invalid action key format: `{key}`. Expected format: `/<kind>/<name>` or `/<kind>/<plugin>/<name>`'
        if reason:
            msg = f'{msg} ({reason})'
        super().__init__(status='INVALID_ARGUMENT', message=msg)
        self.key = key


class ActionTypeMismatchError(ActionKitError):
    """Raised when the registration kind disagrees with the action's own kind."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            status='INVALID_ARGUMENT',
            message=f'action type ({expected}) does not match type on action ({actual})',
        )
        self.expected = expected
        self.actual = actual


class DuplicateRegistrationError(ActionKitError):
    """Raised when an action key is registered twice in the same registry."""

    def __init__(self, key: str) -> None:
        super().__init__(status='ALREADY_EXISTS', message=f'action {key} is already registered')
        self.key = key


class DuplicatePluginError(ActionKitError):
    """Raised when a plugin name is registered twice in the same registry."""

    def __init__(self, name: str) -> None:
        super().__init__(status='ALREADY_EXISTS', message=f'Plugin {name} already registered')
        self.name = name


class DuplicateValueError(ActionKitError):
    """Raised when a (kind, name) value is registered twice."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(
            status='ALREADY_EXISTS',
            message=f'value for kind "{kind}" and name "{name}" is already registered',
        )
        self.kind = kind
        self.name = name


class DuplicateSchemaError(ActionKitError):
    """Raised when a schema name is registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(status='ALREADY_EXISTS', message=f'Schema {name} already registered')
        self.name = name


class PluginResolutionError(ActionKitError):
    """Raised when a plugin's initializer or resolver fails."""

    def __init__(self, plugin_name: str, phase: str, cause: Exception) -> None:
        super().__init__(
            message=f'Plugin {plugin_name} failed during {phase}: {cause}',
            cause=cause,
            source=plugin_name,
        )
        self.plugin_name = plugin_name
        self.phase = phase


def get_http_status(error: Any) -> int:
    """Get the HTTP status code for an error (500 for foreign errors)."""
    if isinstance(error, ActionKitError):
        return error.http_code
    return 500


def get_error_stack(error: Exception) -> str | None:
    """Extract stack trace from an error object.

    Args:
        error: The error to get the stack trace from.

    Returns:
        The stack trace string if available.
    """
    if isinstance(error, Exception):
        return ''.join(traceback.format_tb(error.__traceback__))
    return None
