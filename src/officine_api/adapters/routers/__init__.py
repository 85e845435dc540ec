# src/officine_api/adapters/routers/__init__.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Routers mounted by :func:`officine_api.main.create_app`."""

from __future__ import annotations

from .analytics_router import router as analytics_router  # noqa: F401
from .metrics_router import router as metrics_router  # noqa: F401

__all__ = ["analytics_router", "metrics_router"]
