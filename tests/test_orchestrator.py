"""Tests for batch orchestration across sources with fake collaborators."""

from __future__ import annotations

import dataclasses

from core.exceptions import FetchError
from core.models import BatchResult, ScrapeConfig, SelectorSpec
from core.orchestrator import BatchOrchestrator
from core.text import decode_article_id
from sources import registry as source_registry

GOOD_URL = "https://good.example.com/news"
DOWN_URL = "https://down.example.com/news"
TEASER = "A teaser paragraph long enough to keep."


def _config(name: str, url: str, **overrides) -> ScrapeConfig:
    values = dict(
        source_name=name,
        url=url,
        article=SelectorSpec(["article"]),
        title=SelectorSpec(["h2"], min_length=10, required=True),
        link=SelectorSpec(["a"], required=True),
        summary=SelectorSpec(["p"], min_length=20),
        image=SelectorSpec(["img"]),
        full_content=SelectorSpec(["div.story-body"]),
    )
    values.update(overrides)
    return ScrapeConfig(**values)


def _listing(count: int, prefix: str = "/a/") -> str:
    cards = "".join(
        f'<article><a href="{prefix}{i}"><h2>Headline number {i}</h2></a><p>{TEASER} ({i})</p></article>'
        for i in range(count)
    )
    return f"<html><body>{cards}</body></html>"


REGISTRY = {
    "Good": _config("Good", GOOD_URL),
    "Down": _config("Down", DOWN_URL),
}


def _orchestrator(make_fetcher, settings, summarizer, store, pages, registry=REGISTRY):
    direct = make_fetcher(pages)
    rendered = make_fetcher({})
    return BatchOrchestrator(summarizer, store, settings=settings, direct=direct, rendered=rendered, registry=registry)


class TestRunBatch:
    async def test_unreachable_source_does_not_stop_batch(self, make_fetcher, settings, summarizer, store) -> None:
        pages = {
            GOOD_URL: _listing(5),
            DOWN_URL: FetchError("Request error: connection refused", DOWN_URL),
        }
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, pages)
        result = await orchestrator.run_batch(["Good", "Down"], per_source_limit=5, concurrency=5)

        assert isinstance(result, BatchResult)
        assert result.sources_attempted == 2
        assert result.articles_scraped == 5
        assert result.processed_count == 5
        assert result.success is False
        assert any(e.source == "Down" for e in result.errors)
        assert result.success_rate == 1.0

    async def test_all_good(self, make_fetcher, settings, summarizer, store) -> None:
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, {GOOD_URL: _listing(3)})
        result = await orchestrator.run_batch(["Good"], per_source_limit=10)

        assert result.success is True
        assert result.errors == ()
        assert result.processed_count == 3
        assert result.duration_ms >= 0
        stored_urls = sorted(decode_article_id(i) for i in store.records)
        assert stored_urls == [f"https://good.example.com/a/{i}" for i in range(3)]
        record = next(iter(store.records.values()))
        assert record.generated_script.startswith("Script: ")
        assert record.summary.startswith(TEASER)

    async def test_summarizer_failure_is_per_article(self, make_fetcher, make_summarizer, settings, store) -> None:
        summarizer = make_summarizer(fail_on={"(2)"})
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, {GOOD_URL: _listing(5)})
        result = await orchestrator.run_batch(["Good"], per_source_limit=5)

        assert result.articles_scraped == 5
        assert result.processed_count == 4
        assert result.success_rate == 0.8
        assert result.success is False
        assert [e.url for e in result.errors] == ["https://good.example.com/a/2"]
        assert "model unavailable" in result.errors[0].message

    async def test_store_failure_is_recorded(self, make_fetcher, make_store, settings, summarizer) -> None:
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, make_store(fail=True), {GOOD_URL: _listing(2)})
        result = await orchestrator.run_batch(["Good"], per_source_limit=5)
        assert result.processed_count == 0
        assert len(result.errors) == 2
        assert result.success_rate == 0.0

    async def test_full_article_timeout_surfaces_with_url(self, make_fetcher, settings, summarizer, store) -> None:
        registry = {"Good": _config("Good", GOOD_URL, fetch_full_article=True)}
        pages = {
            GOOD_URL: _listing(1),
            "https://good.example.com/a/0": FetchError("Timeout after 3.0s", "https://good.example.com/a/0"),
        }
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, pages, registry=registry)
        result = await orchestrator.run_batch(["Good"], per_source_limit=5)

        assert result.processed_count == 1
        assert result.success is False
        assert result.errors[0].url == "https://good.example.com/a/0"
        assert "(URL: https://good.example.com/a/0)" in result.error_messages()[0]

    async def test_unknown_source_skipped_with_error(self, make_fetcher, settings, summarizer, store) -> None:
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, {})
        result = await orchestrator.run_batch(["No Such Source"], per_source_limit=5)
        assert result.sources_attempted == 1
        assert result.articles_scraped == 0
        assert result.success is False
        assert result.success_rate == 0.0
        assert result.errors[0].source == "No Such Source"

    async def test_bare_url_uses_generic_config(
        self, make_fetcher, settings, summarizer, store, monkeypatch
    ) -> None:
        # The generic config paces article fetches; keep the test fast
        monkeypatch.setattr(
            source_registry, "GENERIC_CONFIG", dataclasses.replace(source_registry.GENERIC_CONFIG, rate_limit_ms=0)
        )
        url = "https://generic.example.com/latest"
        listing = (
            "<html><body><article><a href='/story/1'><h2>Generic headline here</h2></a>"
            f"<p>{TEASER}</p></article></body></html>"
        )
        page = f"<html><body><article><p>{TEASER} Plus the rest of the full story text.</p></article></body></html>"
        pages = {url: listing, "https://generic.example.com/story/1": page}
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, pages)
        result = await orchestrator.run_batch([url], per_source_limit=1)

        assert result.articles_scraped == 1
        assert result.processed_count == 1
        stored = next(iter(store.records.values()))
        assert stored.source == url
        assert stored.content.endswith("full story text.")

    async def test_no_sources(self, make_fetcher, settings, summarizer, store) -> None:
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, {})
        result = await orchestrator.run_batch([], per_source_limit=5)
        assert result.success is True
        assert result.sources_attempted == 0
        assert result.success_rate == 1.0

    async def test_nothing_harvested_without_errors_is_success(self, make_fetcher, settings, summarizer, store) -> None:
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, {GOOD_URL: "<html><body></body></html>"})
        result = await orchestrator.run_batch(["Good"], per_source_limit=5)
        assert result.success is True
        assert result.articles_scraped == 0
        assert result.success_rate == 0.0

    async def test_dedup_is_per_source(self, make_fetcher, settings, summarizer, store) -> None:
        registry = {
            "Good": _config("Good", GOOD_URL),
            "Mirror": _config("Mirror", "https://good.example.com/mirror"),
        }
        pages = {GOOD_URL: _listing(2), "https://good.example.com/mirror": _listing(2)}
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, pages, registry=registry)
        result = await orchestrator.run_batch(["Good", "Mirror"], per_source_limit=5)
        assert result.articles_scraped == 4
        assert result.processed_count == 4


    async def test_dynamic_source_gets_render_timeout(self, make_fetcher, settings, summarizer, store) -> None:
        registry = {"Dynamic": _config("Dynamic", GOOD_URL, use_dynamic_content=True)}
        direct, rendered = make_fetcher({}), make_fetcher({GOOD_URL: _listing(1)})
        orchestrator = BatchOrchestrator(
            summarizer, store, settings=settings, direct=direct, rendered=rendered, registry=registry
        )
        result = await orchestrator.run_batch(["Dynamic"], per_source_limit=5)
        assert result.processed_count == 1
        assert direct.calls == []
        assert rendered.calls[0]["timeout"] == settings.render_timeout == 45.0


class TestConcurrency:
    async def test_article_concurrency_bounded(self, make_fetcher, make_summarizer, settings, store) -> None:
        summarizer = make_summarizer(delay=0.01)
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, {GOOD_URL: _listing(8)})
        result = await orchestrator.run_batch(["Good"], per_source_limit=8, concurrency=4, article_concurrency=2)
        assert result.processed_count == 8
        assert summarizer.max_active <= 2

    async def test_single_slot_pools_do_not_deadlock(self, make_fetcher, settings, summarizer, store) -> None:
        registry = {
            "Good": _config("Good", GOOD_URL),
            "Other": _config("Other", "https://other.example.com/"),
        }
        pages = {GOOD_URL: _listing(3), "https://other.example.com/": _listing(3)}
        orchestrator = _orchestrator(make_fetcher, settings, summarizer, store, pages, registry=registry)
        result = await orchestrator.run_batch(["Good", "Other"], per_source_limit=3, concurrency=1, article_concurrency=1)
        assert result.processed_count == 6
        assert result.success is True

    async def test_close_closes_fetchers(self, make_fetcher, settings, summarizer, store) -> None:
        direct, rendered = make_fetcher({}), make_fetcher({})
        async with BatchOrchestrator(summarizer, store, settings=settings, direct=direct, rendered=rendered):
            pass
        assert direct.closed and rendered.closed
