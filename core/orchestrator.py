import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence

from core.ai import Summarizer
from core.browser import BrowserClient
from core.db import Storage
from core.fetchers import FetchStrategy
from core.harvester import ArticleHarvester
from core.http_client import HTTPClient
from core.log import BatchLogger
from core.models import BatchError, BatchResult, FinishedArticle, ScrapeConfig, StoredArticle
from core.settings import Settings
from core.text import encode_article_id
from sources.registry import get_config

logger = logging.getLogger(__name__)


@dataclass
class SourceOutcome:
    source: str
    harvested: int = 0
    stored: int = 0
    errors: List[BatchError] = field(default_factory=list)


class BatchOrchestrator:
    """
    Runs one batch: harvest every requested source, then summarize and store
    every harvested article. Sources and articles are bounded by two
    independent semaphores. Never raises for partial failures.
    """

    def __init__(
        self,
        summarizer: Summarizer,
        store: Storage,
        settings: Optional[Settings] = None,
        direct: Optional[FetchStrategy] = None,
        rendered: Optional[FetchStrategy] = None,
        registry: Optional[Mapping[str, ScrapeConfig]] = None,
    ):
        self.summarizer = summarizer
        self.store = store
        self.settings = settings or Settings()
        self.direct = direct or HTTPClient(
            timeout=self.settings.listing_timeout, max_attempts=self.settings.fetch_retries
        )
        self.rendered = rendered or BrowserClient(
            timeout=self.settings.render_timeout, wait_timeout=self.settings.render_wait_timeout
        )
        self.registry = registry

    async def run_batch(
        self,
        sources: Sequence[str],
        per_source_limit: int,
        concurrency: Optional[int] = None,
        article_concurrency: Optional[int] = None,
    ) -> BatchResult:
        start = time.monotonic()
        log = BatchLogger(logger)
        source_concurrency = concurrency or self.settings.source_concurrency
        article_concurrency = article_concurrency or concurrency or self.settings.article_concurrency
        log.info(
            f"Starting batch. Sources: [{', '.join(sources)}], limit per source: {per_source_limit}, "
            f"source concurrency: {source_concurrency}, article concurrency: {article_concurrency}"
        )

        source_slots = asyncio.Semaphore(max(1, source_concurrency))
        article_slots = asyncio.Semaphore(max(1, article_concurrency))
        harvester = ArticleHarvester(self.direct, self.rendered, self.settings, log=log)

        outcomes = await asyncio.gather(
            *(self._run_source(s, per_source_limit, harvester, source_slots, article_slots, log) for s in sources),
            return_exceptions=True,
        )

        harvested = stored = 0
        errors: List[BatchError] = []
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, BaseException):
                log.error(f"Unexpected failure for source {source}: {outcome}")
                errors.append(BatchError(source, f"Unexpected failure: {outcome}"))
                continue
            harvested += outcome.harvested
            stored += outcome.stored
            errors.extend(outcome.errors)

        duration_ms = (time.monotonic() - start) * 1000
        if harvested:
            success_rate = stored / harvested
        else:
            success_rate = 0.0 if sources else 1.0

        log.info(
            f"Finished batch. Duration: {duration_ms:.0f}ms, processed: {stored}, "
            f"scraped: {harvested}, errors: {len(errors)}"
        )
        for error in errors:
            log.warning(f"Batch error: {error}")

        return BatchResult(
            success=not errors,
            sources_attempted=len(sources),
            articles_scraped=harvested,
            processed_count=stored,
            errors=tuple(errors),
            duration_ms=duration_ms,
            success_rate=min(1.0, success_rate),
        )

    async def _run_source(
        self,
        source: str,
        limit: int,
        harvester: ArticleHarvester,
        source_slots: asyncio.Semaphore,
        article_slots: asyncio.Semaphore,
        log: logging.LoggerAdapter,
    ) -> SourceOutcome:
        outcome = SourceOutcome(source=source)
        config = get_config(source, self.registry)
        if config is None:
            outcome.errors.append(BatchError(source, "Unknown source and not a valid http(s) URL"))
            return outcome

        # The source slot is released before articles are dispatched to the article pool
        async with source_slots:
            started = time.monotonic()
            result = await harvester.harvest(config, limit)
        outcome.harvested = len(result.articles)
        outcome.errors.extend(result.errors)
        log.info(
            f"Source {source}: scraped {len(result.articles)} articles in "
            f"{(time.monotonic() - started) * 1000:.0f}ms"
        )

        processed = await asyncio.gather(
            *(self._process_article(article, article_slots, log) for article in result.articles)
        )
        for error in processed:
            if error is None:
                outcome.stored += 1
            else:
                outcome.errors.append(error)
        log.info(f"Source {source}: stored {outcome.stored}/{outcome.harvested} articles")
        return outcome

    async def _process_article(
        self,
        article: FinishedArticle,
        article_slots: asyncio.Semaphore,
        log: logging.LoggerAdapter,
    ) -> Optional[BatchError]:
        """Summarize then store one article. Returns the error, or None on success."""
        async with article_slots:
            started = time.monotonic()
            try:
                log.debug(f"Summarizing article: {article.url} (content length: {len(article.content)})")
                summary = await self.summarizer.summarize(article.content)
                article_id = encode_article_id(article.url)
                await self.store.put(article_id, StoredArticle.from_article(article, summary.script))
            except Exception as e:
                message = f'Error processing article "{article.title}": {e}'
                log.error(f"{message} ({article.url})")
                return BatchError(article.source, message, article.url)
            log.info(f"Processed and stored article: {article.url} in {(time.monotonic() - started) * 1000:.0f}ms")
            return None

    async def close(self):
        await self.direct.close()
        await self.rendered.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()
