# =====================================================================
# PERSISTED CONSOLE SESSION
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Text, Integer, String, DateTime, func
from datetime import datetime
from typing import Optional

from .base import Base


class StoredSession(Base):
    """
    Identity and bearer token of one console session, so that a reload of
    the page finds the user still logged in.
    """
    __tablename__ = "console_session"

    # ---------- Identification ----------
    key: Mapped[str] = mapped_column(String(64), primary_key=True)

    # ---------- Identity ----------
    user_id: Mapped[Optional[int]] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(Text, default="")
    email: Mapped[str] = mapped_column(Text, default="")
    role: Mapped[Optional[str]] = mapped_column(String(32))

    # ---------- Credential ----------
    token: Mapped[str] = mapped_column(Text, nullable=False)

    # ---------- Audit ----------
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<StoredSession(key={self.key[:8]}..., role={self.role})>"
