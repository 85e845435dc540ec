# src/officine_api/application/schemas/dto/base.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Base class for application DTOs.

DTOs leave the use cases in two directions: to presenters, and to the
result cache as JSON. The helpers below are the only cache encoding, so a
payload written by one process validates in another.
"""

from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class BaseDTO(BaseModel):
    """Frozen, strict DTO base. Transport-agnostic: no HTTP aliases here."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dict; decimals become strings, dates ISO strings."""
        return self.model_dump(mode="json")

    @classmethod
    def from_payload(cls, raw: Any) -> Self:
        """Rebuild a DTO from :meth:`to_payload` output.

        Raises:
            pydantic.ValidationError: If ``raw`` does not match the schema.
        """
        return cls.model_validate(raw)
