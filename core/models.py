from dataclasses import asdict, dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from bs4 import BeautifulSoup


@dataclass(frozen=True)
class SelectorSpec:
    """
    Ordered CSS selectors for one field.
    Every selector is scanned and the best-scoring match across all of them wins.
    """
    selectors: Sequence[str]
    min_length: Optional[int] = None
    required: bool = False
    priority: Optional[int] = None  # advisory only

    def __post_init__(self):
        object.__setattr__(self, "selectors", tuple(self.selectors))


PreprocessHook = Callable[[str, BeautifulSoup], BeautifulSoup]
PostprocessHook = Callable[["FinishedArticle"], "FinishedArticle"]


@dataclass(frozen=True)
class ScrapeConfig:
    source_name: str
    url: str  # Listing page
    article: SelectorSpec
    title: SelectorSpec
    link: SelectorSpec
    summary: SelectorSpec
    image: SelectorSpec
    full_content: SelectorSpec
    published_date: Optional[SelectorSpec] = None
    use_dynamic_content: bool = False  # Rendered fetch instead of plain HTTP
    fetch_full_article: bool = False
    rate_limit_ms: int = 0
    headers: Mapping[str, str] = field(default_factory=dict)
    preprocess: Optional[PreprocessHook] = None
    postprocess: Optional[PostprocessHook] = None

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def for_url(self, url: str) -> "ScrapeConfig":
        """Copy of this config pointed at an arbitrary listing URL."""
        return replace(self, url=url, source_name=url)


@dataclass
class RawArticle:
    """In-progress record while a listing page is being harvested."""
    source: str
    url: str = ""
    title: str = ""
    summary: str = ""
    content: str = ""  # Starts as the summary, may be replaced by the full article text
    image_url: Optional[str] = None
    published_date: Optional[str] = None


@dataclass(frozen=True)
class FinishedArticle:
    title: str
    url: str
    source: str
    content: str
    summary: str = ""
    image_url: Optional[str] = None
    published_date: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: RawArticle) -> "FinishedArticle":
        return cls(
            title=raw.title,
            url=raw.url,
            source=raw.source,
            content=raw.content,
            summary=raw.summary,
            image_url=raw.image_url or None,
            published_date=raw.published_date or None,
        )


@dataclass
class StoredArticle:
    """Record persisted by the article store: a finished article plus its script."""
    title: str
    url: str
    source: str
    content: str
    summary: str = ""
    image_url: Optional[str] = None
    published_date: Optional[str] = None
    generated_script: Optional[str] = None

    @classmethod
    def from_article(cls, article: FinishedArticle, script: Optional[str]) -> "StoredArticle":
        return cls(generated_script=script, **asdict(article))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredArticle":
        known = {k: data.get(k) for k in cls.__dataclass_fields__ if k in data}
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BatchError:
    source: str
    message: str
    url: Optional[str] = None

    def __str__(self):
        suffix = f" (URL: {self.url})" if self.url else ""
        return f"[{self.source}] {self.message}{suffix}"


@dataclass
class HarvestResult:
    """Outcome of harvesting one source."""
    source: str
    articles: List[FinishedArticle] = field(default_factory=list)
    errors: List[BatchError] = field(default_factory=list)


@dataclass(frozen=True)
class BatchResult:
    success: bool
    sources_attempted: int
    articles_scraped: int  # Harvested, before summarize/store
    processed_count: int  # Summarized and stored
    errors: Tuple[BatchError, ...]
    duration_ms: float
    success_rate: float

    def error_messages(self) -> List[str]:
        return [str(e) for e in self.errors]
