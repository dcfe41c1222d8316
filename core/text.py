import base64
import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
# Only "<" directly followed by a tag-name character starts a tag; comparison signs in prose stay
_TAG_RE = re.compile(r"<[A-Za-z/!?][^>]*>")
_UNCLOSED_TAG_RE = re.compile(r"<(?=[A-Za-z/!?])")
_WHITESPACE_RE = re.compile(r"\s+")
_BOILERPLATE_RE = re.compile(r"Advertisement|Share this story", re.IGNORECASE)


def _clean_once(text: str) -> str:
    text = _SCRIPT_RE.sub("", text)
    text = _STYLE_RE.sub("", text)
    text = _COMMENT_RE.sub("", text)
    # Tags become a space so adjacent words don't run together
    text = _TAG_RE.sub(" ", text)
    text = _UNCLOSED_TAG_RE.sub(" ", text)
    text = _BOILERPLATE_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_content(text: Optional[str]) -> str:
    """
    Strip markup, scripts, styles, comments and boilerplate phrases from text
    and collapse whitespace. Never fails; falsy input gives an empty string.
    """
    if not text:
        return ""
    # Removing one fragment can expose another (e.g. nested tags), so run to a fixed point
    cleaned = _clean_once(text)
    while True:
        again = _clean_once(cleaned)
        if again == cleaned:
            return cleaned
        cleaned = again


def resolve_url(base_url: str, candidate: Optional[str]) -> str:
    """
    Resolve a possibly-relative URL against an absolute base.
    Returns "" when the candidate is empty, malformed, or not http(s).
    """
    if not candidate or not candidate.strip():
        return ""
    try:
        resolved = urljoin(base_url, candidate.strip())
        parsed = urlparse(resolved)
    except ValueError as e:
        logger.debug(f"Error resolving URL '{candidate}' against '{base_url}': {e}")
        return ""
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        return ""
    return resolved


def encode_article_id(url: str) -> str:
    """URL-safe base64 of the article URL, padding removed."""
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


def decode_article_id(article_id: str) -> str:
    padded = article_id + "=" * (-len(article_id) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
