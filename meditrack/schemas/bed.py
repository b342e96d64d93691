# =====================================================================
# BED SCHEMAS
# =====================================================================

from __future__ import annotations

from typing import Optional

from pydantic import Field

from .base import ApiModel, Ref
from .enums import BedStatus


class BedCreate(ApiModel):
    bed_number: str = Field(min_length=1)
    ward_id: Optional[int] = None
    status: BedStatus = BedStatus.AVAILABLE


class BedOut(ApiModel):
    id: int
    bed_number: str
    ward: Optional[Ref] = None
    status: BedStatus = BedStatus.AVAILABLE
