"""
Retrieval-augmented answers over a user's notes, placement questions and
GitHub repositories.

Relevance is two independent signals joined by OR: substring containment
of the query, and embedding similarity above a threshold. Scoring is
plain word overlap. Each collection is capped, then everything is merged,
sorted by score (stable) and cut to the top few sources.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import SearchFailedError
from ..models import Note, PlacementQuestion, GithubRepo
from .composer import AnswerComposer
from .embeddings import EmbeddingProvider, deserialize_embedding
from . import storage

logger = logging.getLogger(__name__)

PROJECT_KEYWORDS = (
    "file", "structure", "project", "repo", "code", "folder",
    "directory", "architecture", "technology", "stack", "github",
)


@dataclass(frozen=True)
class RetrievalConfig:
    note_limit: int = 3
    question_limit: int = 2
    repo_limit: int = 3
    max_sources: int = 5
    similarity_threshold: float = 0.3
    note_preview_chars: int = 500
    min_partial_word: int = 3
    max_repo_key_files: int = 3
    project_keywords: tuple[str, ...] = PROJECT_KEYWORDS


@dataclass
class Source:
    type: str  # note, question, github
    title: str
    content: str
    score: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SearchResult:
    answer: str
    sources: list[Source] = field(default_factory=list)


# ── Scoring ──────────────────────────────────────────────────────────

def query_words(query: str) -> list[str]:
    return query.lower().split()


def calculate_relevance(text: str, query: str) -> float:
    """Fraction of query words found as substrings of text. Always in [0, 1]."""
    words = query_words(query)
    if not words:
        return 0.0
    text_lower = text.lower()
    matches = sum(1 for word in words if word in text_lower)
    return matches / len(words)


def is_project_query(query: str, keywords: Sequence[str] = PROJECT_KEYWORDS) -> bool:
    query_lower = query.lower()
    return any(keyword in query_lower for keyword in keywords)


def _matches_text(fields: Sequence[Optional[str]], query: str) -> bool:
    query_lower = query.lower()
    return any(query_lower in (value or "").lower() for value in fields)


def _similar(
    embedder: EmbeddingProvider,
    stored: Optional[str],
    query_embedding: Optional[Sequence[float]],
    threshold: float,
) -> bool:
    vector = deserialize_embedding(stored)
    if not vector or not query_embedding:
        return False
    return embedder.similarity(vector, query_embedding) > threshold


# ── Candidate filters ────────────────────────────────────────────────

def find_relevant_notes(
    notes: list[Note],
    query: str,
    query_embedding: Optional[Sequence[float]],
    embedder: EmbeddingProvider,
    config: RetrievalConfig = RetrievalConfig(),
) -> list[Note]:
    relevant = [
        note for note in notes
        if _matches_text((note.content, note.title), query)
        or _similar(embedder, note.embedding, query_embedding, config.similarity_threshold)
    ]
    return relevant[: config.note_limit]


def find_relevant_questions(
    questions: list[PlacementQuestion],
    query: str,
    query_embedding: Optional[Sequence[float]],
    embedder: EmbeddingProvider,
    config: RetrievalConfig = RetrievalConfig(),
) -> list[PlacementQuestion]:
    relevant = [
        q for q in questions
        if _matches_text((q.question, q.topic), query)
        or _similar(embedder, q.embedding, query_embedding, config.similarity_threshold)
    ]
    return relevant[: config.question_limit]


def _analysis_text(repo: GithubRepo) -> str:
    return json.dumps(repo.analysis).lower() if repo.analysis else ""


def find_relevant_repos(
    repos: list[GithubRepo],
    query: str,
    config: RetrievalConfig = RetrievalConfig(),
) -> list[GithubRepo]:
    query_lower = query.lower()
    words = query_words(query)
    project_query = is_project_query(query, config.project_keywords)

    relevant = []
    for repo in repos:
        name = repo.repo_name.lower()
        description = (repo.description or "").lower()

        exact = query_lower in name or query_lower in description or query_lower in _analysis_text(repo)
        # "movies" matches "movies_website"
        partial = any(
            len(word) >= config.min_partial_word and (word in name or word in description)
            for word in words
        )
        if exact or partial or (project_query and repo.analysis):
            relevant.append(repo)

    if not relevant and project_query:
        return [repo for repo in repos if repo.analysis][: config.repo_limit]

    return relevant[: config.repo_limit]


# ── Formatting ───────────────────────────────────────────────────────

def format_repo_content(repo: GithubRepo, max_key_files: int = 3) -> str:
    lines = [f"Repository: {repo.repo_name}"]
    if repo.description:
        lines.append(f"Description: {repo.description}")
    if repo.language:
        lines.append(f"Primary Language: {repo.language}")
    if repo.stars:
        lines.append(f"Stars: {repo.stars}")

    analysis = repo.analysis or {}
    if analysis.get("summary"):
        lines.append("")
        lines.append(f"Summary: {analysis['summary']}")
    if isinstance(analysis.get("technologies"), list):
        lines.append(f"Technologies: {', '.join(analysis['technologies'])}")
    if analysis.get("architecture"):
        lines.append(f"Architecture: {analysis['architecture']}")
    if isinstance(analysis.get("keyFiles"), list):
        lines.append("")
        lines.append("Key Files:")
        for f in analysis["keyFiles"][:max_key_files]:
            lines.append(f"- {f.get('name')}: {f.get('purpose') or 'No description'}")

    return "\n".join(lines) + "\n"


def _preview(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def build_sources(
    notes: list[Note],
    questions: list[PlacementQuestion],
    repos: list[GithubRepo],
    query: str,
    config: RetrievalConfig = RetrievalConfig(),
) -> list[Source]:
    """Score every candidate, merge, sort by score (stable), keep the top ones."""
    candidates = [
        Source(
            type="note",
            title=note.title,
            content=_preview(note.content, config.note_preview_chars),
            score=calculate_relevance(note.content, query),
        )
        for note in notes
    ]
    candidates += [
        Source(
            type="question",
            title=f"{q.company} - {q.topic}",
            content=q.question,
            score=calculate_relevance(q.question, query),
        )
        for q in questions
    ]
    candidates += [
        Source(
            type="github",
            title=repo.repo_name,
            content=format_repo_content(repo, config.max_repo_key_files),
            score=calculate_relevance(
                f"{repo.repo_name} {repo.description or ''} {json.dumps(repo.analysis)}", query
            ),
        )
        for repo in repos
    ]

    candidates.sort(key=lambda s: s.score, reverse=True)
    return candidates[: config.max_sources]


def format_context(sources: list[Source]) -> str:
    return "\n\n".join(f"[{s.type.upper()}] {s.title}:\n{s.content}" for s in sources)


# ── Service ──────────────────────────────────────────────────────────

class RAGService:
    def __init__(
        self,
        embedder: EmbeddingProvider,
        composer: AnswerComposer,
        config: RetrievalConfig = RetrievalConfig(),
    ):
        self.embedder = embedder
        self.composer = composer
        self.config = config

    async def retrieve(self, db: AsyncSession, user_id: str, query: str) -> list[Source]:
        """Scan notes, questions and repos; return the top sources. Errors propagate."""
        query_embedding = await self.embedder.embed(query)

        notes = await storage.get_notes_by_user(db, user_id)
        relevant_notes = find_relevant_notes(notes, query, query_embedding, self.embedder, self.config)

        questions = await storage.get_placement_questions_by_user(db, user_id)
        relevant_questions = find_relevant_questions(
            questions, query, query_embedding, self.embedder, self.config
        )

        repos = await storage.get_github_repos_by_user(db, user_id)
        relevant_repos = find_relevant_repos(repos, query, self.config)

        return build_sources(relevant_notes, relevant_questions, relevant_repos, query, self.config)

    async def search(self, db: AsyncSession, user_id: str, query: str) -> SearchResult:
        """Answer a query from the user's materials. Raises SearchFailedError on any failure."""
        try:
            sources = await self.retrieve(db, user_id, query)
            context = format_context(sources)
            answer = await self.composer.answer(query, context)
        except Exception as e:
            logger.error("Search failed for user %s: %s", user_id, e)
            raise SearchFailedError(detail=str(e)) from e

        logger.info("Answered query for user %s with %d sources", user_id, len(sources))
        return SearchResult(answer=answer, sources=sources)
