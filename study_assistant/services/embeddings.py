"""
Embedding providers: text to fixed-length vectors, plus cosine similarity.

Embeddings are a secondary relevance signal only. Two backends:
  - HashingEmbedder: local hashed bag-of-words. No key, deterministic.
  - RemoteEmbedder: OpenAI-compatible /embeddings endpoint via LLMClient.
"""

import hashlib
import json
import logging
import math
import re
from typing import Optional, Protocol, Sequence

from .llm import LLMClient

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> list[float]:
        ...

    def similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]. 0 for empty, zero or mismatched vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def serialize_embedding(vector: Sequence[float]) -> str:
    return json.dumps([round(float(x), 6) for x in vector])


def deserialize_embedding(raw: Optional[str]) -> Optional[list[float]]:
    """Parse a stored embedding. Missing or malformed → None."""
    if not raw:
        return None
    try:
        values = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed stored embedding (%d chars)", len(raw))
        return None
    if not isinstance(values, list):
        return None
    try:
        return [float(x) for x in values]
    except (TypeError, ValueError):
        return None


class HashingEmbedder:
    """Feature-hashed word counts, L2-normalized."""

    def __init__(self, dimensions: int = 256):
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions

    def _bucket(self, token: str) -> int:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        return int.from_bytes(digest, "big") % self.dimensions

    async def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for token in _TOKEN_RE.findall(text.lower()):
            vector[self._bucket(token)] += 1.0
        norm = math.sqrt(sum(x * x for x in vector))
        if norm == 0:
            return vector
        return [x / norm for x in vector]

    def similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)


class RemoteEmbedder:
    """Remote embeddings, truncated to the configured dimensionality."""

    def __init__(self, client: LLMClient, model: str, dimensions: int):
        self.client = client
        self.model = model
        self.dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        vector = await self.client.create_embedding(self.model, text)
        return vector[: self.dimensions]

    def similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)
