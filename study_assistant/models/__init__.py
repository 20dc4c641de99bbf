"""
All database models. Imported here so Base.metadata sees them for create_all().
"""

from .base import RecordBase, UserOwnedBase
from .user import User
from .note import Note
from .placement_question import PlacementQuestion
from .github_repo import GithubRepo
from .chat_session import ChatSession

__all__ = [
    "RecordBase", "UserOwnedBase",
    "User",
    "Note",
    "PlacementQuestion",
    "GithubRepo",
    "ChatSession",
]
