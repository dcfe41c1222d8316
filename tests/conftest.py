"""Shared fixtures: in-memory fetchers and collaborators, fast settings."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from core.ai import Summary, Summarizer
from core.db import Storage
from core.exceptions import ArticleNotFoundError, FetchError, SummarizationError
from core.fetchers import FetchStrategy
from core.models import StoredArticle
from core.settings import Settings


class FakeFetcher(FetchStrategy):
    """Serves canned HTML per URL; an Exception value is raised instead."""

    def __init__(self, pages: Dict[str, Union[str, Exception]]):
        self.pages = pages
        self.calls: List[dict] = []
        self.closed = False

    async def fetch(self, url, headers=None, timeout=None, wait_for_selector=None):
        self.calls.append(
            {"url": url, "headers": headers, "timeout": timeout, "wait_for_selector": wait_for_selector}
        )
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        if page is None:
            raise FetchError("HTTP error 404", url, status_code=404)
        return page

    @property
    def urls(self) -> List[str]:
        return [c["url"] for c in self.calls]

    async def close(self):
        self.closed = True


class FakeSummarizer(Summarizer):
    def __init__(self, fail_on: Optional[set] = None, delay: float = 0.0):
        self.fail_on = fail_on or set()
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.calls: List[str] = []

    async def summarize(self, text: str) -> Summary:
        self.calls.append(text)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if any(marker in text for marker in self.fail_on):
                raise SummarizationError("model unavailable")
            return Summary(script=f"Script: {text[:30]}")
        finally:
            self.active -= 1


class MemoryStore(Storage):
    def __init__(self, fail: bool = False):
        self.records: Dict[str, StoredArticle] = {}
        self.fail = fail

    async def put(self, article_id, record):
        if self.fail:
            raise RuntimeError("bucket unavailable")
        self.records[article_id] = record

    async def get(self, article_id):
        if article_id not in self.records:
            raise ArticleNotFoundError(article_id)
        return self.records[article_id]

    async def list(self):
        return list(self.records.values())

    async def delete(self, article_id):
        self.records.pop(article_id, None)


@pytest.fixture
def settings() -> Settings:
    return Settings(candidate_delay=0.0, listing_timeout=5.0, article_timeout=3.0)


@pytest.fixture
def make_fetcher():
    return FakeFetcher


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def make_summarizer():
    return FakeSummarizer


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_store():
    return MemoryStore
