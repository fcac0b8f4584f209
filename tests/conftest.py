# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures."""

import pytest

from actionkit.core.registry import Registry


@pytest.fixture
def registry() -> Registry:
    """A fresh root registry."""
    return Registry()
