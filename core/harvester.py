import asyncio
import logging
from typing import Optional, Set

from bs4 import BeautifulSoup
from bs4.element import Tag
from readability import Document

from core import extractor
from core.fetchers import FetchStrategy
from core.models import BatchError, FinishedArticle, HarvestResult, RawArticle, ScrapeConfig
from core.settings import Settings
from core.text import clean_content, resolve_url

logger = logging.getLogger(__name__)

# Removed from article pages before the body text is selected
ARTICLE_CLUTTER = ", ".join([
    "script", "style", "nav", "footer", "aside", "header", "noscript", "iframe", "form", "figure",
    "[role='banner']", "[role='navigation']", "[role='complementary']",
    ".ad", ".advert", ".related-links", ".comments", ".social-links", ".print-button",
    ".cookie-banner", ".subscription-prompt", ".share-buttons", "#sidebar", ".author-bio",
    ".video-player",
])


class ArticleHarvester:
    """
    Harvests one source: listing page -> article containers -> finished articles.
    Failures are contained per candidate; a source never raises.
    """

    def __init__(
        self,
        direct: FetchStrategy,
        rendered: FetchStrategy,
        settings: Optional[Settings] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.direct = direct
        self.rendered = rendered
        self.settings = settings or Settings()
        self.log = log or logger

    def fetcher_for(self, config: ScrapeConfig) -> FetchStrategy:
        return self.rendered if config.use_dynamic_content else self.direct

    def timeout_for(self, config: ScrapeConfig, timeout: float) -> float:
        """Rendered pages load scripts too, so they get at least the render timeout."""
        if config.use_dynamic_content:
            return max(timeout, self.settings.render_timeout)
        return timeout

    def parse(self, html: str, config: ScrapeConfig) -> BeautifulSoup:
        soup = BeautifulSoup(html, "lxml")
        if config.preprocess:
            try:
                soup = config.preprocess(html, soup)
                self.log.debug(f"Preprocessing applied for {config.source_name}")
            except Exception as e:
                self.log.error(f"Error during preprocessing for {config.source_name}: {e}")
                soup = BeautifulSoup(html, "lxml")
        return soup

    async def harvest(self, config: ScrapeConfig, limit: int) -> HarvestResult:
        result = HarvestResult(source=config.source_name)
        self.log.info(f"Starting scrape for {config.source_name} at {config.url}...")

        try:
            html = await self.fetcher_for(config).fetch(
                config.url,
                headers=config.headers,
                timeout=self.timeout_for(config, self.settings.listing_timeout),
                wait_for_selector=config.article.selectors[0] if config.article.selectors else None,
            )
            document = self.parse(html, config)
            containers = extractor.select_containers(document, config.article)
        except Exception as e:
            self.log.error(f"Error scraping {config.source_name} ({config.url}): {e}")
            result.errors.append(BatchError(config.source_name, f"Listing page failed: {e}", config.url))
            return result

        self.log.info(
            f"Found {len(containers)} potential article elements for {config.source_name}. "
            f"Targeting limit: {limit}."
        )

        seen: Set[str] = set()
        for element in containers:
            if len(result.articles) >= limit:
                break
            try:
                article = await self.process_candidate(config, element, seen, result)
            except Exception as e:
                snippet = str(element)[:100]
                self.log.error(f"Error processing an article element from {config.source_name}: {e} ({snippet})")
                continue

            # A postprocess hook may have rewritten the URL
            if article is not None and article.url in seen:
                self.log.debug(f"Skipping article: Duplicate URL after postprocessing ({article.url})")
            elif article is not None:
                seen.add(article.url)
                result.articles.append(article)
                self.log.info(f"Scraped article: \"{article.title[:50]}\" from {article.source}")

            if self.settings.candidate_delay:
                await asyncio.sleep(self.settings.candidate_delay)

        self.log.info(f"Finished scraping {config.source_name}. Found {len(result.articles)} valid articles.")
        return result

    async def process_candidate(
        self,
        config: ScrapeConfig,
        element: Tag,
        seen: Set[str],
        result: HarvestResult,
    ) -> Optional[FinishedArticle]:
        """Extract, enrich and validate one container. None means the candidate was dropped."""
        raw = RawArticle(source=config.source_name)

        relative_link = extractor.select_best(element, config.link, extractor.LINK, log=self.log)
        raw.url = resolve_url(config.url, relative_link)
        if not raw.url or raw.url in seen:
            if relative_link and not raw.url:
                self.log.debug(f"Skipping article: Invalid URL ('{relative_link}')")
            return None

        raw.title = extractor.select_best(element, config.title, extractor.TITLE, log=self.log)
        if not raw.title:
            self.log.debug(f"Skipping article: Missing title. URL: {raw.url}")
            return None

        raw.summary = extractor.select_best(element, config.summary, extractor.SUMMARY, log=self.log)
        raw.content = raw.summary

        raw_image = extractor.select_best(element, config.image, extractor.IMAGE, log=self.log)
        if raw_image.startswith("data:"):
            self.log.debug(f"Skipping base64 image for {raw.url}")
        else:
            raw.image_url = resolve_url(config.url, raw_image) or None

        if config.published_date:
            raw.published_date = extractor.select_best(
                element, config.published_date, extractor.PUBLISHED_DATE, log=self.log
            ) or None

        if config.fetch_full_article and config.full_content.selectors:
            await self.enrich_article(config, raw, result)
        else:
            raw.content = self.cap(raw.summary)

        if not self.is_valid(raw):
            self.log.debug(
                f"Skipping article: Content too short or missing. Length: {len(raw.content)}. URL: {raw.url}"
            )
            return None

        return self.postprocess(config, FinishedArticle.from_raw(raw))

    def cap(self, text: str) -> str:
        return clean_content(text)[: self.settings.max_content_length]

    def is_valid(self, raw: RawArticle) -> bool:
        return bool(raw.title) and len(raw.content) >= self.settings.min_content_length

    async def enrich_article(self, config: ScrapeConfig, raw: RawArticle, result: HarvestResult):
        """
        Fetches the article's own page and replaces the working content when the
        page yields longer text. Never raises: on any failure the existing
        content is kept, cleaned and capped.
        """
        try:
            if config.rate_limit_ms:
                await asyncio.sleep(config.rate_limit_ms / 1000)

            self.log.info(f"Fetching full content for: {raw.url}")
            html = await self.fetcher_for(config).fetch(
                raw.url,
                headers=config.headers,
                timeout=self.timeout_for(config, self.settings.article_timeout),
                wait_for_selector=config.full_content.selectors[0],
            )
            full_text = self.extract_main_content(html, config)
        except Exception as e:
            self.log.warning(f"Failed to fetch or process full content for {raw.url}: {e}")
            result.errors.append(BatchError(config.source_name, f"Full article fetch failed: {e}", raw.url))
            raw.content = self.cap(raw.content)
            return

        initial_length = len(raw.content)
        if full_text and len(full_text) > initial_length:
            raw.content = self.cap(full_text)
            self.log.info(
                f"Updated full content for {raw.url}. Initial length: {initial_length}, "
                f"fetched length: {len(full_text)}, final length: {len(raw.content)}"
            )
        else:
            self.log.info(
                f"Full content for {raw.url} (length: {len(full_text)}) was not longer than "
                f"initial content (length: {initial_length}). Keeping initial content."
            )
            raw.content = self.cap(raw.content)

    def extract_main_content(self, html: str, config: ScrapeConfig) -> str:
        document = self.parse(html, config)
        for node in document.select(ARTICLE_CLUTTER):
            node.decompose()

        body = document.body or document
        text = extractor.select_best(body, config.full_content, extractor.FULL_CONTENT, log=self.log)
        if text:
            return text

        self.log.debug(f"Full content selectors found nothing for {config.source_name}, trying readability")
        return clean_content(Document(html).summary())

    def postprocess(self, config: ScrapeConfig, article: FinishedArticle) -> FinishedArticle:
        if not config.postprocess:
            return article
        try:
            processed = config.postprocess(article)
        except Exception as e:
            self.log.error(f"Error during postprocessing for {article.url}: {e}")
            return article
        if not isinstance(processed, FinishedArticle):
            self.log.error(f"Postprocess hook for {config.source_name} returned {type(processed).__name__}, ignoring it")
            return article
        return processed
