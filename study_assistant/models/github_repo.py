"""
Imported GitHub repositories. Analysis is filled in later and may be absent.
"""

from datetime import datetime

from sqlalchemy import String, Text, Integer, JSON, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from .base import UserOwnedBase


class GithubRepo(UserOwnedBase):
    __tablename__ = "github_repos"

    repo_name: Mapped[str] = mapped_column(String, nullable=False)  # owner/name
    description: Mapped[str] = mapped_column(Text, nullable=True, default="")
    language: Mapped[str] = mapped_column(String, nullable=True, default="Unknown")
    stars: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    analysis: Mapped[dict] = mapped_column(JSON, nullable=True)
    # {"summary": str, "technologies": [...], "architecture": str,
    #  "keyFiles": [{"name", "content", "purpose"}]}
    last_analyzed: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
