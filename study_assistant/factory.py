"""
Service factory: builds every provider client once and owns their lifecycle.

    async with open_services() as services:
        async with session_scope() as db:
            result = await services.rag.search(db, user_id, "dijkstra")
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from .core.config import Settings, get_settings
from .core.database import init_db, close_db
from .core.flags import FeatureFlags, get_flags, provider_endpoint
from .services.chat import ChatService
from .services.composer import AnswerComposer
from .services.embeddings import EmbeddingProvider, HashingEmbedder, RemoteEmbedder
from .services.github import GitHubClient
from .services.llm import LLMClient
from .services.repo_analyzer import RepositoryAnalyzer
from .services.retrieval import RAGService

logger = logging.getLogger(__name__)


@dataclass
class AssistantServices:
    settings: Settings
    llm: LLMClient
    embedder: EmbeddingProvider
    composer: AnswerComposer
    rag: RAGService
    chat: ChatService
    github: GitHubClient
    analyzer: RepositoryAnalyzer

    def github_for(self, token: str) -> GitHubClient:
        """A client for a user-supplied token. The caller closes it."""
        return GitHubClient(
            token=token,
            base_url=self.settings.github_api_url,
            timeout=self.settings.http_timeout,
        )

    async def aclose(self) -> None:
        await self.llm.aclose()
        await self.github.aclose()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_services(
    settings: Optional[Settings] = None,
    flags: Optional[FeatureFlags] = None,
) -> AssistantServices:
    settings = settings or get_settings()
    flags = flags or get_flags()

    base_url, api_key = provider_endpoint(settings, flags.llm_provider)
    llm = LLMClient(base_url=base_url, api_key=api_key, timeout=settings.http_timeout)

    if flags.use_remote_embeddings:
        embedder = RemoteEmbedder(llm, settings.embedding_model, settings.embedding_dimensions)
    else:
        embedder = HashingEmbedder(settings.embedding_dimensions)

    composer = AnswerComposer(llm, model=settings.llm_model)
    rag = RAGService(embedder, composer)
    github = GitHubClient(
        token=settings.github_token,
        base_url=settings.github_api_url,
        timeout=settings.http_timeout,
    )

    return AssistantServices(
        settings=settings,
        llm=llm,
        embedder=embedder,
        composer=composer,
        rag=rag,
        chat=ChatService(rag, composer),
        github=github,
        analyzer=RepositoryAnalyzer(github),
    )


@asynccontextmanager
async def open_services(
    settings: Optional[Settings] = None,
    flags: Optional[FeatureFlags] = None,
) -> AsyncIterator[AssistantServices]:
    settings = settings or get_settings()
    flags = flags or get_flags()
    configure_logging(settings)
    logger.info("Starting study assistant (env=%s)", settings.env)

    services: Optional[AssistantServices] = None
    try:
        await init_db()
        services = create_services(settings, flags)
        logger.info(
            "Flags: llm=%s remote_embeddings=%s github=%s",
            flags.llm_provider, flags.use_remote_embeddings, bool(settings.github_token),
        )
        yield services
    finally:
        if services is not None:
            await services.aclose()
        await close_db()
        logger.info("Study assistant shut down")
