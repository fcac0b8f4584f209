# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Core foundations of actionkit.

This package provides:

    - Actions: named, typed, invocable units and their key codec
    - The registry of actions, plugins, values and schemas
    - The plugin contract used for lazy resolution
    - Scoped, call-chain-local context
    - Errors, logging and tracing shared by all of the above
"""
