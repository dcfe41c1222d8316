import logging
import asyncio
import os
from dotenv import load_dotenv

from core.ai import GeminiSummarizer
from core.db import ArticleStore
from core.log import setup_logging
from core.orchestrator import BatchOrchestrator
from core.settings import Settings
from sources.registry import SOURCES

# Load env
load_dotenv()

# Setup logging
setup_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


async def main():
    logger.info("Starting news harvester...")

    settings = Settings.from_env()
    sources_env = os.getenv("HARVESTER_SOURCES", "")
    sources = [s.strip() for s in sources_env.split(",") if s.strip()] or list(SOURCES)
    limit = int(os.getenv("HARVESTER_LIMIT", "5"))

    store = ArticleStore(settings.db_path)
    summarizer = GeminiSummarizer()

    try:
        async with BatchOrchestrator(summarizer, store, settings=settings) as orchestrator:
            result = await orchestrator.run_batch(
                sources,
                per_source_limit=limit,
                concurrency=settings.source_concurrency,
                article_concurrency=settings.article_concurrency,
            )
    finally:
        store.close()

    status = "succeeded" if result.success else "finished with errors"
    logger.info(f"Batch {status} in {result.duration_ms / 1000:.1f}s")
    logger.info(f"   Sources attempted: {result.sources_attempted}")
    logger.info(f"   Articles scraped: {result.articles_scraped}")
    logger.info(f"   Articles stored: {result.processed_count} ({result.success_rate:.0%})")
    for message in result.error_messages():
        logger.warning(f"   {message}")


if __name__ == "__main__":
    asyncio.run(main())
