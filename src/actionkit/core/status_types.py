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

"""Statuses carried by registry and action errors.

Numeric values are the gRPC canonical codes, so layers built on top of the
registry can map errors onto any transport.
"""

from enum import IntEnum
from typing import Literal


class StatusCodes(IntEnum):
    """Canonical codes of the statuses the registry reports."""

    # Malformed keys, kind or name disagreeing with a registration.
    INVALID_ARGUMENT = 3
    # Used by orchestration layers for actions that could not be resolved.
    NOT_FOUND = 5
    # First-write-wins tables rejecting a second registration.
    ALREADY_EXISTS = 6
    # Plugin failures and errors raised by action functions.
    INTERNAL = 13


StatusName = Literal['INVALID_ARGUMENT', 'NOT_FOUND', 'ALREADY_EXISTS', 'INTERNAL']

_HTTP_STATUS: dict[StatusCodes, int] = {
    StatusCodes.INVALID_ARGUMENT: 400,
    StatusCodes.NOT_FOUND: 404,
    StatusCodes.ALREADY_EXISTS: 409,
    StatusCodes.INTERNAL: 500,
}


def http_status_code(status: StatusName) -> int:
    """Returns the HTTP status code corresponding to `status`."""
    return _HTTP_STATUS[StatusCodes[status]]
