# tests/conftest.py - Shared fakes for the external collaborators
import os
import sys

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rag.models import ChatTurn, RetrievalMatch


class FakeEmbedder:
    def __init__(self, fail=False):
        self.fail = fail
        self.texts = []

    async def embed(self, text):
        self.texts.append(text)
        if self.fail:
            raise RuntimeError("embedding backend unavailable")
        return [0.1, 0.2, 0.3]


class FakeRetriever:
    def __init__(self, matches=None, fail=False):
        self.matches = matches or []
        self.fail = fail
        self.calls = []

    async def search(self, embedding, count, threshold):
        self.calls.append((embedding, count, threshold))
        if self.fail:
            raise RuntimeError("vector store unavailable")
        return list(self.matches)


class FakeGenerator:
    def __init__(self, tokens=("Hello", " there", "!"), fail_after=None):
        self.tokens = list(tokens)
        self.fail_after = fail_after
        self.prompts = []
        self.closed = False

    async def stream(self, prompt):
        self.prompts.append(prompt)
        try:
            for i, token in enumerate(self.tokens):
                if self.fail_after is not None and i == self.fail_after:
                    raise RuntimeError("stream interrupted")
                yield token
        finally:
            self.closed = True


def make_match(content, url="https://example.no/page", similarity=0.8, title="Page", section=""):
    return RetrievalMatch(content=content, source_url=url, title=title, section=section, similarity=similarity)


@pytest.fixture
def matches():
    return [
        make_match("Vollen has a small harbour with boat rentals.", "https://example.no/boats", 0.82, "Boats"),
        make_match("The museum is open every day from 10 to 16.", "https://example.no/museum", 0.74, "Museum"),
    ]


@pytest.fixture
def history():
    return [
        ChatTurn("user", "What can I do in Vollen?"),
        ChatTurn("assistant", "today or the weekend?"),
    ]
