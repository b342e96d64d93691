# =====================================================================
# DECLARATIVE BASE
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for the console's own tables."""
    pass
