"""Exception hierarchy for the harvester.

Hierarchy::

    HarvesterError
    ├── FetchError            (url, status_code)
    ├── SummarizationError
    └── StorageError
        └── ArticleNotFoundError  (article_id)
"""

from typing import Optional


class HarvesterError(Exception):
    """Base class for every harvester exception."""


class FetchError(HarvesterError):
    """Raised by a fetch strategy when a page could not be retrieved.

    Covers transport errors, timeouts, HTTP status >= 400 and empty renders.
    """

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class SummarizationError(HarvesterError):
    """Raised when the summarizer cannot produce a script."""


class StorageError(HarvesterError):
    """Raised when the article store fails to read or write a record."""


class ArticleNotFoundError(StorageError):
    def __init__(self, article_id: str):
        super().__init__(f"Article {article_id} not found")
        self.article_id = article_id
