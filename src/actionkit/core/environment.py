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

"""Convenience functionality to determine the running environment."""

import os
from enum import StrEnum


class EnvVar(StrEnum):
    """Enumerates all the environment variables used by actionkit."""

    ACTIONKIT_ENV = 'ACTIONKIT_ENV'


class Environment(StrEnum):
    """Enumerates all the environments actionkit can run in."""

    DEV = 'dev'
    PROD = 'prod'


def is_dev_environment() -> bool:
    """Returns True if the current environment is a development environment."""
    return get_current_environment() == Environment.DEV


def is_prod_environment() -> bool:
    """Returns True if the current environment is a production environment."""
    return get_current_environment() == Environment.PROD


def get_current_environment() -> Environment:
    """Returns the current environment.

    Unset or unrecognized values fall back to production.

    Returns:
        The current environment.
    """
    env = os.getenv(EnvVar.ACTIONKIT_ENV)
    if env is None:
        return Environment.PROD
    try:
        return Environment(env)
    except ValueError:
        return Environment.PROD
