"""Per-source scraping configuration.

Selectors are volatile and need maintenance whenever a site redesigns.
Prefer stable ids and data attributes, and order selectors from most to least
specific; every selector is scored, so a loose trailing selector only wins
when nothing better matches.
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional
from urllib.parse import urlparse

from core.models import ScrapeConfig, SelectorSpec as S

logger = logging.getLogger(__name__)

CHROME_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
CHROME_LINUX_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 16_6 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"
GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


_CONFIGS = [
    ScrapeConfig(
        source_name="BBC",
        url="https://www.bbc.com/news",
        article=S(['div[type="article"]', 'div[data-testid*="card"]', 'article[class*="ArticleWrapper"]', 'li[class*="ListItem"]']),
        link=S(['a[data-linktrack*="news"]', 'a[class*="Link"]', "a"], required=True),
        title=S(['h3[data-testid="card-headline"]', "h2", "h3", 'span[class*="Title"]'], min_length=10, required=True),
        summary=S(['p[data-testid="card-description"]', 'p[class*="Summary"]', "p"], min_length=20),
        image=S(['div[data-testid="card-image"] img', "img"]),
        published_date=S(["time[datetime]", 'span[class*="Timestamp"]']),
        full_content=S(["main#main-content article", "article", 'div[data-component="text-block"]', "p"]),
        fetch_full_article=True,
        rate_limit_ms=1200,
        headers={"User-Agent": CHROME_UA, "Accept-Language": "en-US,en;q=0.9"},
    ),
    ScrapeConfig(
        source_name="Reuters",
        url="https://www.reuters.com/world/",
        article=S(['li[class*="story-collection"]', 'div[data-testid="MediaStoryCard"]', "article"]),
        link=S(['a[data-testid="Heading"]', 'a[href*="/world/"]', "a"], required=True),
        title=S(['a[data-testid="Heading"] span', "h3", "h2"], min_length=10, required=True),
        summary=S(["p"], min_length=20),
        image=S(['img[data-testid*="image"]', "img"]),
        published_date=S(["time[datetime]", 'span[class*="date"]']),
        full_content=S(['article[data-testid="article"]', "#main-content", 'div[class*="article-body"]', "p"]),
        fetch_full_article=True,
        rate_limit_ms=1500,
        headers={"User-Agent": GOOGLEBOT_UA},
    ),
    ScrapeConfig(
        source_name="CNN",
        url="https://www.cnn.com/",
        article=S(['article[class*="container"]', 'div[class*="card"]', "section[data-zone-label] li"]),
        link=S(['a[data-link_type="article"]', 'a[href^="/"]'], required=True),
        title=S(['span[data-editable="headline"]', ".container__headline-text", "h2", "h3"], min_length=10, required=True),
        summary=S(['div[data-editable="description"]', "p"], min_length=15),
        image=S(['img[class*="image__dam"]', "picture img"]),
        published_date=S(['div[class*="timestamp"]', "time"]),
        full_content=S(['div[class*="article__content"]', ".article__content", "div.paragraph", "p"]),
        use_dynamic_content=True,
        fetch_full_article=True,
        rate_limit_ms=2000,
        headers={"User-Agent": CHROME_UA},
    ),
    ScrapeConfig(
        source_name="Fox News",
        url="https://www.foxnews.com/",
        article=S(["article.article", "div.info"]),
        link=S(['a[href^="https://www.foxnews.com/"]', "h2 > a", "h3 > a", "a"], required=True),
        title=S(["h2.title", "h3.title", "h1"], min_length=10, required=True),
        summary=S(["p.dek", "p"], min_length=15),
        image=S(["img.image-m"]),
        published_date=S(["span.time", "time"]),
        full_content=S(["div.article-body", "p"]),
        fetch_full_article=True,
        rate_limit_ms=1300,
        headers={"User-Agent": IPHONE_UA},
    ),
    ScrapeConfig(
        source_name="NPR",
        url="https://www.npr.org/sections/news/",
        article=S(["article.item", "div.story-wrap"]),
        link=S(['a[href*=".npr.org/"]', "h2 > a", "h3 > a", "a"], required=True),
        title=S(["h2.title", "h3.title"], min_length=10, required=True),
        summary=S(["p.teaser", "p"], min_length=20),
        image=S(["img.img"]),
        published_date=S(["time[datetime]"]),
        full_content=S(["div#storytext", "p"]),
        fetch_full_article=True,
        rate_limit_ms=1000,
    ),
    ScrapeConfig(
        source_name="The Guardian",
        url="https://www.theguardian.com/us",
        article=S(["div.fc-item", 'section[data-component="container"] li']),
        link=S(['a[data-link-name="article"]', 'a[href*="theguardian.com/"]', "a"], required=True),
        title=S(["span.show-underline", "h3"], min_length=10, required=True),
        summary=S(["div.fc-item__standfirst", "p"], min_length=20),
        image=S(["img"]),
        published_date=S(["time[datetime]"]),
        full_content=S(["div#maincontent", 'article[class*="content__article"]', "p"]),
        fetch_full_article=True,
        rate_limit_ms=1100,
    ),
    ScrapeConfig(
        source_name="New York Times",
        url="https://www.nytimes.com/",
        article=S(['section[data-testid="block-G"] li', "article", 'div[class*="StoryCard"]']),
        link=S(['a[href^="/"]', "h3 > a", "a"], required=True),
        title=S(['p[id^="title_"]', "h3", "h2"], min_length=10, required=True),
        summary=S(['p[class*="summary"]', "p"], min_length=20),
        image=S(["img"]),
        published_date=S(["time", 'span[data-testid="todays-date"]']),
        full_content=S(['section[name="articleBody"]', "div.StoryBodyCompanionColumn", "p"]),
        use_dynamic_content=True,
        fetch_full_article=True,  # Often paywalled; falls back to the teaser
        rate_limit_ms=2500,
        headers={"User-Agent": CHROME_UA},
    ),
    ScrapeConfig(
        source_name="Al Jazeera",
        url="https://www.aljazeera.com/",
        article=S(["article.gc", "div.card-news"]),
        link=S(["a.gc__link", 'a[href^="/news/"]', 'a[href^="/features/"]', "a"], required=True),
        title=S(["a.gc__link span", "h3", "h2"], min_length=10, required=True),
        summary=S(["div.gc__excerpt p", "p"], min_length=20),
        image=S(["img.gc__image"]),
        published_date=S(["div.date-simple", "time"]),
        full_content=S(["main#main-content div.wysiwyg", "p"]),
        fetch_full_article=True,
        rate_limit_ms=1400,
        headers={"User-Agent": CHROME_LINUX_UA},
    ),
]

SOURCES: Mapping[str, ScrapeConfig] = MappingProxyType({c.source_name: c for c in _CONFIGS})

# Template for arbitrary listing URLs; url and source_name are filled in per request
GENERIC_CONFIG = ScrapeConfig(
    source_name="",
    url="",
    article=S(["article", 'div[class*="item"]', 'div[class*="card"]', "li"]),
    title=S(["h1", "h2", "h3", '[class*="title"]', '[class*="headline"]'], min_length=10, required=True),
    summary=S(["p", 'div[class*="summary"]', 'div[class*="excerpt"]', '[class*="teaser"]'], min_length=20),
    image=S(["img", "picture img", '[class*="image"] img']),
    link=S(["a[href]"], required=True),
    published_date=S(["time", 'span[class*="date"]', 'div[class*="date"]']),
    full_content=S(["article", "main", 'div[class*="body"]', 'div[class*="content"]', 'section[class*="content"]', "p"]),
    fetch_full_article=True,
    rate_limit_ms=1500,
)


def is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def get_config(source: str, registry: Optional[Mapping[str, ScrapeConfig]] = None) -> Optional[ScrapeConfig]:
    """
    Config for a registry key, or the generic config for a bare http(s) URL.
    Returns None for anything else.
    """
    registry = SOURCES if registry is None else registry
    if source in registry:
        logger.info(f"Using specific config for source: {source}")
        return registry[source]
    if is_http_url(source):
        logger.info(f"Using generic config for URL: {source}")
        return GENERIC_CONFIG.for_url(source)
    logger.error(f"Invalid source or URL provided: {source}")
    return None
