# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Functions for working with schema."""

from typing import Any

from pydantic import TypeAdapter


def to_json_schema(schema: type | dict[str, Any]) -> dict[str, Any]:
    """Converts a Python type to a JSON schema.

    If the input `schema` is already a dictionary it is assumed to be a JSON
    schema and returned directly. Otherwise a pydantic `TypeAdapter` is used
    to generate the schema.

    Example:
        >>> to_json_schema({'type': 'string'})
        {'type': 'string'}
        >>> to_json_schema(int)
        {'type': 'integer'}
    """
    if isinstance(schema, dict):
        return schema
    return TypeAdapter(schema).json_schema()
