from abc import ABC, abstractmethod
from typing import Mapping, Optional

# Merged under each source's own headers
DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Connection": "keep-alive",
    "DNT": "1",
}


class FetchStrategy(ABC):
    """
    One way of turning a URL into HTML.
    Implementations raise FetchError on any failure and never return an empty page.
    """

    @abstractmethod
    async def fetch(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        wait_for_selector: Optional[str] = None,
    ) -> str:
        pass

    async def close(self):
        pass
