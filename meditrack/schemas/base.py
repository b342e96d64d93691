# =====================================================================
# BASE SCHEMA
# =====================================================================

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """
    Base for every payload exchanged with the backend.

    The backend speaks camelCase JSON; fields are declared in snake_case and
    accepted under either name. Unknown fields are kept so that screens can
    surface them without a schema change.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the wire (camelCase, no empty fields)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Ref(ApiModel):
    """Embedded reference to another record (`{"id": 1, "name": "..."}`)."""
    id: Optional[int] = None
    name: Optional[str] = None
