# src/officine_api/config/__init__.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Configuration entry points: ``from officine_api.config import get_settings``."""

from __future__ import annotations

from .settings import Environment, Settings, get_settings

__all__ = ["Environment", "Settings", "get_settings"]
