"""
Chat sessions: a running conversation grounded in the user's materials.

Each turn: retrieve sources for the new message, append it to the history,
ask the composer for a reply with the context block, append the reply,
persist the whole list.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import RecordNotFoundError
from ..models import ChatSession
from .composer import AnswerComposer
from .retrieval import RAGService, Source, format_context
from . import storage

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 60


@dataclass
class ChatTurn:
    session_id: str
    reply: str
    sources: list[Source] = field(default_factory=list)


class ChatService:
    def __init__(self, rag: RAGService, composer: AnswerComposer):
        self.rag = rag
        self.composer = composer

    async def start_session(self, db: AsyncSession, user_id: str, title: Optional[str] = None) -> ChatSession:
        return await storage.create_chat_session(db, user_id=user_id, title=title)

    async def list_sessions(self, db: AsyncSession, user_id: str) -> list[ChatSession]:
        return await storage.get_chat_sessions_by_user(db, user_id)

    async def clear_history(self, db: AsyncSession, user_id: str) -> None:
        await storage.delete_chat_sessions_by_user(db, user_id)

    async def send_message(self, db: AsyncSession, user_id: str, session_id: str, content: str) -> ChatTurn:
        session = await storage.get_chat_session(db, user_id, session_id)
        if not session:
            raise RecordNotFoundError("Chat session", session_id)

        # Retrieval failures degrade to an ungrounded reply
        try:
            sources = await self.rag.retrieve(db, user_id, content)
        except Exception as e:
            logger.warning("Chat retrieval failed, replying without context: %s", e)
            sources = []

        history = list(session.messages or [])
        history.append({"role": "user", "content": content})

        reply = await self.composer.chat(history, format_context(sources))
        history.append({"role": "assistant", "content": reply})

        if not session.title:
            session.title = content[:TITLE_MAX_CHARS]
        await storage.update_chat_session(db, session.id, history)

        logger.info("Chat turn in session %s (%d messages, %d sources)", session.id, len(history), len(sources))
        return ChatTurn(session_id=session.id, reply=reply, sources=sources)
