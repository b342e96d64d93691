# =====================================================================
# CONSOLE FORM BODIES
# =====================================================================

from pydantic import BaseModel


class StatusChange(BaseModel):
    """Target status picked from a row's status selector"""
    status: str


class Remarks(BaseModel):
    remarks: str = ""
