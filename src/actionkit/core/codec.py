# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Serialization helpers for span attributes and listings."""

import json
from typing import Any

from pydantic import BaseModel


def dump_dict(obj: Any) -> Any:
    """Converts a pydantic model into a dictionary, by alias.

    Any other object is returned unchanged.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(exclude_none=True, by_alias=True)
    return obj


def dump_json(obj: Any, indent: int | None = None) -> str:
    """Dumps an object to a JSON string.

    Pydantic models are dumped by alias with `None` fields excluded. Anything
    `json.dumps` can't handle falls back to its `str()` form.

    Args:
        obj: The object to dump.
        indent: Optional indentation.

    Returns:
        A JSON string.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump_json(by_alias=True, exclude_none=True, indent=indent)
    return json.dumps(obj, indent=indent, default=lambda o: dump_dict(o) if isinstance(o, BaseModel) else str(o))
