# Copyright 2025 Google LLC
# SPDX-License-Identifier: Apache-2.0

"""Application-facing entry points."""

from ._base import ActionKit

__all__ = ['ActionKit']
