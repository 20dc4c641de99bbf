"""
Placement interview questions, filterable by company / year / difficulty / topic.
"""

from sqlalchemy import String, Text, Integer
from sqlalchemy.orm import Mapped, mapped_column

from .base import UserOwnedBase


class PlacementQuestion(UserOwnedBase):
    __tablename__ = "placement_questions"

    company: Mapped[str] = mapped_column(String, nullable=False, default="")
    topic: Mapped[str] = mapped_column(String, nullable=False, default="")
    question: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty: Mapped[str] = mapped_column(String, nullable=True)  # easy, medium, hard
    year: Mapped[int] = mapped_column(Integer, nullable=True)
    embedding: Mapped[str] = mapped_column(Text, nullable=True)  # JSON list of floats
