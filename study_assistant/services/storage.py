"""
Persistence layer: keyed CRUD and filtered list queries per entity.

Every function takes the caller's AsyncSession, runs one statement and
flushes after writes. Committing is the caller's job (see session_scope).
Errors propagate unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, delete as sql_delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import User, Note, PlacementQuestion, GithubRepo, ChatSession
from ..models.base import utcnow

logger = logging.getLogger(__name__)


# ── Users ────────────────────────────────────────────────────────────

async def create_user(db: AsyncSession, email: str, name: Optional[str] = None) -> User:
    user = User(email=email, name=name)
    db.add(user)
    await db.flush()
    return user


async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def update_user(db: AsyncSession, user_id: str, **updates) -> Optional[User]:
    user = await db.get(User, user_id)
    if not user:
        return None
    for key, value in updates.items():
        setattr(user, key, value)
    await db.flush()
    return user


# ── Notes ────────────────────────────────────────────────────────────

async def create_note(
    db: AsyncSession,
    user_id: str,
    title: str,
    content: str,
    subject: Optional[str] = None,
) -> Note:
    note = Note(user_id=user_id, title=title, subject=subject, content=content)
    db.add(note)
    await db.flush()
    return note


async def get_notes_by_user(db: AsyncSession, user_id: str) -> list[Note]:
    """All notes of a user, most recently uploaded first."""
    result = await db.execute(
        select(Note)
        .where(Note.user_id == user_id)
        .order_by(Note.uploaded_at.desc())
    )
    return list(result.scalars().all())


async def get_notes_by_subject(db: AsyncSession, user_id: str, subject: str) -> list[Note]:
    result = await db.execute(
        select(Note)
        .where(Note.user_id == user_id, Note.subject == subject)
        .order_by(Note.uploaded_at.desc())
    )
    return list(result.scalars().all())


async def search_notes(db: AsyncSession, user_id: str, query: str) -> list[Note]:
    """Notes whose title or content contains the query (case-insensitive)."""
    result = await db.execute(
        select(Note)
        .where(
            Note.user_id == user_id,
            or_(Note.title.icontains(query), Note.content.icontains(query)),
        )
        .order_by(Note.uploaded_at.desc())
    )
    return list(result.scalars().all())


async def get_note_by_id(db: AsyncSession, note_id: str) -> Optional[Note]:
    return await db.get(Note, note_id)


async def update_note_embedding(db: AsyncSession, note_id: str, embedding: Optional[str]) -> None:
    note = await db.get(Note, note_id)
    if note:
        note.embedding = embedding
        await db.flush()


async def delete_note(db: AsyncSession, note_id: str) -> None:
    await db.execute(sql_delete(Note).where(Note.id == note_id))
    await db.flush()


# ── GitHub repositories ──────────────────────────────────────────────

async def create_github_repo(
    db: AsyncSession,
    user_id: str,
    repo_name: str,
    description: str = "",
    language: str = "Unknown",
    stars: int = 0,
) -> GithubRepo:
    repo = GithubRepo(
        user_id=user_id,
        repo_name=repo_name,
        description=description,
        language=language,
        stars=stars,
    )
    db.add(repo)
    await db.flush()
    return repo


async def get_github_repos_by_user(db: AsyncSession, user_id: str) -> list[GithubRepo]:
    """All repositories of a user, most recently imported first."""
    result = await db.execute(
        select(GithubRepo)
        .where(GithubRepo.user_id == user_id)
        .order_by(GithubRepo.created_at.desc())
    )
    return list(result.scalars().all())


async def get_github_repo(db: AsyncSession, user_id: str, repo_id: str) -> Optional[GithubRepo]:
    result = await db.execute(
        select(GithubRepo).where(GithubRepo.id == repo_id, GithubRepo.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def update_github_repo_analysis(db: AsyncSession, repo_id: str, analysis: dict) -> None:
    """Latest analysis wins. Stamps last_analyzed."""
    repo = await db.get(GithubRepo, repo_id)
    if repo:
        repo.analysis = analysis
        repo.last_analyzed = utcnow()
        await db.flush()


# ── Placement questions ──────────────────────────────────────────────

@dataclass
class QuestionFilters:
    company: Optional[str] = None
    year: Optional[int] = None
    difficulty: Optional[str] = None
    topic: Optional[str] = None


async def create_placement_question(
    db: AsyncSession,
    user_id: str,
    company: str,
    topic: str,
    question: str,
    difficulty: Optional[str] = None,
    year: Optional[int] = None,
) -> PlacementQuestion:
    record = PlacementQuestion(
        user_id=user_id,
        company=company,
        topic=topic,
        question=question,
        difficulty=difficulty,
        year=year,
    )
    db.add(record)
    await db.flush()
    return record


async def get_placement_questions_by_user(db: AsyncSession, user_id: str) -> list[PlacementQuestion]:
    result = await db.execute(
        select(PlacementQuestion)
        .where(PlacementQuestion.user_id == user_id)
        .order_by(PlacementQuestion.created_at.desc())
    )
    return list(result.scalars().all())


async def search_placement_questions(
    db: AsyncSession,
    user_id: str,
    filters: QuestionFilters,
) -> list[PlacementQuestion]:
    """Exact match on company / year / difficulty, substring match on topic."""
    conditions = [PlacementQuestion.user_id == user_id]

    if filters.company:
        conditions.append(PlacementQuestion.company == filters.company)
    if filters.year:
        conditions.append(PlacementQuestion.year == filters.year)
    if filters.difficulty:
        conditions.append(PlacementQuestion.difficulty == filters.difficulty)
    if filters.topic:
        conditions.append(PlacementQuestion.topic.contains(filters.topic))

    result = await db.execute(
        select(PlacementQuestion)
        .where(*conditions)
        .order_by(PlacementQuestion.created_at.desc())
    )
    return list(result.scalars().all())


async def update_question_embedding(db: AsyncSession, question_id: str, embedding: Optional[str]) -> None:
    record = await db.get(PlacementQuestion, question_id)
    if record:
        record.embedding = embedding
        await db.flush()


# ── Chat sessions ────────────────────────────────────────────────────

async def create_chat_session(
    db: AsyncSession,
    user_id: str,
    title: Optional[str] = None,
    messages: Optional[list[dict]] = None,
) -> ChatSession:
    session = ChatSession(user_id=user_id, title=title, messages=list(messages or []))
    db.add(session)
    await db.flush()
    return session


async def get_chat_session(db: AsyncSession, user_id: str, session_id: str) -> Optional[ChatSession]:
    result = await db.execute(
        select(ChatSession).where(ChatSession.id == session_id, ChatSession.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_chat_sessions_by_user(db: AsyncSession, user_id: str) -> list[ChatSession]:
    result = await db.execute(
        select(ChatSession)
        .where(ChatSession.user_id == user_id)
        .order_by(ChatSession.updated_at.desc())
    )
    return list(result.scalars().all())


async def update_chat_session(db: AsyncSession, session_id: str, messages: list[dict]) -> Optional[ChatSession]:
    session = await db.get(ChatSession, session_id)
    if not session:
        return None
    session.messages = list(messages)
    session.updated_at = utcnow()
    await db.flush()
    return session


async def delete_chat_sessions_by_user(db: AsyncSession, user_id: str) -> None:
    await db.execute(sql_delete(ChatSession).where(ChatSession.user_id == user_id))
    await db.flush()
    logger.info("Deleted chat sessions for user %s", user_id)
