"""
Pytest configuration for the study assistant test suite.

Configures:
- pytest-asyncio for async test support
- a fresh in-memory SQLite schema per test
- fake LLM / embedding / GitHub collaborators
"""

import base64
from typing import Any, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from study_assistant.core.database import Base
from study_assistant.core.exceptions import ProviderError, RemoteNotFoundError
from study_assistant import models  # noqa: F401
from study_assistant.services import storage
from study_assistant.services.embeddings import cosine_similarity


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def user(db):
    return await storage.create_user(db, email="student@example.com", name="Student")


class FakeLLM:
    """Records every call; returns a canned reply or raises."""

    def __init__(self, reply: str = "canned answer", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    async def complete_chat(self, model, messages, max_tokens, temperature):
        self.calls.append({
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error:
            raise self.error
        return self.reply


class FailingEmbedder:
    async def embed(self, text: str) -> list[float]:
        raise ProviderError("embedding service down")

    def similarity(self, a, b) -> float:
        return 0.0


def encode_file(text: str) -> dict:
    return {"type": "file", "content": base64.b64encode(text.encode("utf-8")).decode("ascii")}


class FakeGitHub:
    """In-memory stand-in for GitHubClient keyed by (owner, repo)."""

    def __init__(
        self,
        listing: Optional[list[dict]] = None,
        files: Optional[dict[str, str]] = None,
        readme: Optional[str] = None,
        repos: Optional[list[dict]] = None,
        fail_on: Optional[str] = None,
    ):
        self.listing = listing or []
        self.files = files or {}
        self.readme = readme
        self.repos = repos or []
        self.fail_on = fail_on
        self.requests: list[tuple[str, str]] = []

    async def list_repositories(self, visibility="all", sort="updated", per_page=30):
        self.requests.append(("list", f"{visibility}/{sort}/{per_page}"))
        if self.fail_on == "list":
            raise ProviderError("rate limited")
        return self.repos

    async def get_content(self, owner: str, repo: str, path: str = "") -> Any:
        self.requests.append(("content", path))
        if self.fail_on == path:
            raise ProviderError(f"cannot read {path}")
        if path == "":
            return self.listing
        if path not in self.files:
            raise RemoteNotFoundError(path)
        return encode_file(self.files[path])

    async def get_readme(self, owner: str, repo: str) -> dict:
        self.requests.append(("readme", ""))
        if self.fail_on == "readme":
            raise ProviderError("readme service error")
        if self.readme is None:
            raise RemoteNotFoundError("README")
        return encode_file(self.readme)


@pytest.fixture
def fake_llm():
    return FakeLLM()


class KeywordEmbedder:
    """One dimension per vocabulary word. Empty vocabulary → similarity is always 0."""

    def __init__(self, vocabulary: tuple[str, ...] = ()):
        self.vocabulary = vocabulary
        self.texts: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.texts.append(text)
        lowered = text.lower()
        return [1.0 if word in lowered else 0.0 for word in self.vocabulary]

    def similarity(self, a, b) -> float:
        return cosine_similarity(a, b)
