"""
Shared fixtures for the retrieval engine tests.
"""
import pytest

from tests.fakes import FakeChunkStore, FakeCompletion, FakeEmbedder


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def completion():
    return FakeCompletion(answer="A" * 60)


@pytest.fixture
def make_store():
    return FakeChunkStore
