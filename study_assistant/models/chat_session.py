"""
Chat sessions. Messages are an ordered JSON list of {role, content};
the list is replaced (never mutated in place) so the change is flushed.
"""

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from .base import UserOwnedBase


class ChatSession(UserOwnedBase):
    __tablename__ = "chat_sessions"

    title: Mapped[str] = mapped_column(String, nullable=True)
    messages: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
