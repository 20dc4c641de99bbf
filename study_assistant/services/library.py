"""
Study library: ingest notes and placement questions, attaching embeddings.

The embedding is derived from the record's primary text (note content,
question text). An embedding failure leaves the column null; the record
itself is kept.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Note, PlacementQuestion
from .embeddings import EmbeddingProvider, serialize_embedding
from . import storage

logger = logging.getLogger(__name__)


async def _embed_or_none(embedder: EmbeddingProvider, text: str) -> Optional[str]:
    try:
        return serialize_embedding(await embedder.embed(text))
    except Exception as e:
        logger.warning("Embedding failed, storing record without one: %s", e)
        return None


async def upload_note(
    db: AsyncSession,
    embedder: EmbeddingProvider,
    user_id: str,
    title: str,
    content: str,
    subject: Optional[str] = None,
) -> Note:
    note = await storage.create_note(db, user_id=user_id, title=title, content=content, subject=subject)

    embedding = await _embed_or_none(embedder, content)
    if embedding:
        await storage.update_note_embedding(db, note.id, embedding)

    logger.info("Note uploaded: %s (%d chars, embedded=%s)", title, len(content), embedding is not None)
    return note


async def add_placement_question(
    db: AsyncSession,
    embedder: EmbeddingProvider,
    user_id: str,
    company: str,
    topic: str,
    question: str,
    difficulty: Optional[str] = None,
    year: Optional[int] = None,
) -> PlacementQuestion:
    record = await storage.create_placement_question(
        db,
        user_id=user_id,
        company=company,
        topic=topic,
        question=question,
        difficulty=difficulty,
        year=year,
    )

    embedding = await _embed_or_none(embedder, question)
    if embedding:
        await storage.update_question_embedding(db, record.id, embedding)

    logger.info("Question added: %s / %s (embedded=%s)", company, topic, embedding is not None)
    return record


async def reindex_embeddings(db: AsyncSession, embedder: EmbeddingProvider, user_id: str) -> int:
    """Fill in missing embeddings for a user's notes and questions. Returns how many were added."""
    added = 0

    for note in await storage.get_notes_by_user(db, user_id):
        if note.embedding:
            continue
        embedding = await _embed_or_none(embedder, note.content)
        if embedding:
            await storage.update_note_embedding(db, note.id, embedding)
            added += 1

    for q in await storage.get_placement_questions_by_user(db, user_id):
        if q.embedding:
            continue
        embedding = await _embed_or_none(embedder, q.question)
        if embedding:
            await storage.update_question_embedding(db, q.id, embedding)
            added += 1

    logger.info("Reindexed %d embeddings for user %s", added, user_id)
    return added
