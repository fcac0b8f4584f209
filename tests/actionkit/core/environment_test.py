#!/usr/bin/env python3
#
# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Tests for environment detection."""

import pytest

from actionkit.core.environment import (
    EnvVar,
    Environment,
    get_current_environment,
    is_dev_environment,
    is_prod_environment,
)


@pytest.mark.parametrize(
    'value, expected',
    [
        ('dev', Environment.DEV),
        ('prod', Environment.PROD),
        ('staging', Environment.PROD),
    ],
)
def test_get_current_environment(monkeypatch: pytest.MonkeyPatch, value: str, expected: Environment) -> None:
    monkeypatch.setenv(EnvVar.ACTIONKIT_ENV, value)
    assert get_current_environment() == expected


def test_defaults_to_prod(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(EnvVar.ACTIONKIT_ENV, raising=False)
    assert is_prod_environment()
    assert not is_dev_environment()


def test_dev(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(EnvVar.ACTIONKIT_ENV, 'dev')
    assert is_dev_environment()
    assert not is_prod_environment()
