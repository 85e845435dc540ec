# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Base domain exception."""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Root of all domain-level errors.

    Attributes:
        code: Stable machine-readable error code mapped by the HTTP layer.
        message: Human-readable message, safe to show to API clients.
        details: Optional structured context (never SQL or predicate text).
    """

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        return self.message or self.code
