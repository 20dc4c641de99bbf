"""
Study notes: full text stored directly, plus an optional serialized embedding.
"""

from datetime import datetime

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from .base import UserOwnedBase, utcnow


class Note(UserOwnedBase):
    __tablename__ = "notes"

    title: Mapped[str] = mapped_column(String, nullable=False)
    subject: Mapped[str] = mapped_column(String, nullable=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    embedding: Mapped[str] = mapped_column(Text, nullable=True)  # JSON list of floats
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
