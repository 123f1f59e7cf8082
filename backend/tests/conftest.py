"""
Shared pytest fixtures for RAPTOR tests.

Provides:
- Fake embedding provider / text generator (fast, no LLM server)
- Helpers to build embedded units and clusters
- Runtime config isolation
"""

import zlib
from typing import List

import numpy as np
import pytest

from config import get_config
from tools.raptor.models import Cluster, EmbeddedUnit


# Topic keywords -> axis of the fake embedding space
TOPIC_AXES = {
    "soil": 0,
    "steel": 1,
    "water": 2,
    "concrete": 3,
}


class FakeEmbedder:
    """Deterministic embeddings: one axis per topic keyword plus small noise."""

    def __init__(self, dim: int = 8, noise: float = 0.01):
        self.dim = dim
        self.noise = noise
        self.calls: List[List[str]] = []

    def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        vectors = []
        for text in texts:
            rng = np.random.default_rng(zlib.crc32(text.encode()))
            vector = rng.normal(0, self.noise, self.dim)
            lowered = text.lower()
            for word, axis in TOPIC_AXES.items():
                if word in lowered:
                    vector[axis] += 1.0
            vectors.append(vector.tolist())
        return vectors


class ConstantEmbedder:
    """Every text maps to the same vector."""

    def __init__(self, dim: int = 8, value: float = 0.5):
        self.vector = [value] * dim
        self.calls = 0

    def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls += 1
        return [list(self.vector) for _ in texts]


class FailingEmbedder:
    def __init__(self, error: Exception):
        self.error = error

    def embed(self, texts: List[str]) -> List[List[float]]:
        raise self.error


class FakeGenerator:
    """Records prompts and answers with a short numbered summary."""

    def __init__(self, fail_on: str = None):
        self.prompts: List[str] = []
        self.fail_on = fail_on

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail_on and self.fail_on in prompt:
            raise RuntimeError("generator unavailable")
        return f"Summary {len(self.prompts)}"


def _make_units(vectors, texts=None) -> List[EmbeddedUnit]:
    vectors = [list(map(float, v)) for v in vectors]
    texts = texts or [f"text {i}" for i in range(len(vectors))]
    return [EmbeddedUnit(id=i, text=t, vector=v) for i, (t, v) in enumerate(zip(texts, vectors))]


def _make_cluster(cluster_id: int, size: int, start: int = 0) -> Cluster:
    ids = list(range(start, start + size))
    return Cluster(id=cluster_id, texts=[f"text {i}" for i in ids], member_ids=ids)


@pytest.fixture
def make_units():
    return _make_units


@pytest.fixture
def make_cluster():
    return _make_cluster


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def constant_embedder():
    return ConstantEmbedder()


@pytest.fixture
def failing_embedder():
    """Factory: embedder that raises the given error on every call."""
    return FailingEmbedder


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def failing_generator():
    """Generator that raises for prompts containing the given marker."""
    return lambda marker: FakeGenerator(fail_on=marker)


@pytest.fixture
def blob_vectors():
    """Two well-separated 4-d blobs of 12 points each."""
    rng = np.random.default_rng(7)
    first = rng.normal(0.0, 0.05, size=(12, 4)) + np.array([1.0, 0.0, 0.0, 0.0])
    second = rng.normal(0.0, 0.05, size=(12, 4)) + np.array([0.0, 0.0, 1.0, 0.0])
    return np.vstack([first, second])


@pytest.fixture
def runtime_config():
    """Singleton config, restored to environment defaults after the test."""
    config = get_config()
    yield config
    config.reset_to_defaults()
