# src/officine_api/adapters/schemas/http/base.py
# Copyright (c) Officine.
# SPDX-License-Identifier: MIT
"""Wire conventions shared by every HTTP schema.

Python attributes are snake_case, the JSON body is camelCase. Requests may
use either spelling but no unknown key: a misspelled filter must fail with
422 instead of silently widening the query. Decimals leave as strings so
amounts keep their exact scale.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseHTTPSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
        ser_json_inf_nan="null",
    )

    def model_dump_http(self, **kwargs: Any) -> dict[str, Any]:
        """Dump with camelCase keys and JSON-native values."""
        kwargs.setdefault("by_alias", True)
        return self.model_dump(mode="json", **kwargs)
