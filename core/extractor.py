import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from bs4.element import Tag

from core.models import SelectorSpec
from core.scoring import score_element
from core.text import clean_content

logger = logging.getLogger(__name__)

LINK = "link"
IMAGE = "image"
PUBLISHED_DATE = "published_date"
TITLE = "title"
SUMMARY = "summary"
FULL_CONTENT = "full_content"

_HIDDEN_RE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)


@dataclass(frozen=True)
class Candidate:
    value: str
    score: int
    selector: str
    node: Tag = field(compare=False, repr=False)


def is_hidden(node: Tag) -> bool:
    return bool(_HIDDEN_RE.search(node.get("style") or ""))


def _image_source(node: Tag) -> str:
    src = node.get("src") or node.get("data-src")
    if src:
        return src
    srcset = (node.get("srcset") or "").strip()
    if srcset:
        # Skip empty entries left by stray commas
        return next((entry.split()[0] for entry in srcset.split(",") if entry.strip()), "")
    return ""


def candidate_value(node: Tag, selector: str, field_name: str):
    """Return (value, score) for one matched node."""
    if field_name == LINK:
        href = (node.get("href") or "").strip()
        return href, 1 if href.startswith(("http", "/")) else 0
    if field_name == IMAGE:
        src = _image_source(node).strip()
        return src, 1 if src else 0
    if field_name == PUBLISHED_DATE:
        value = (node.get("datetime") or "").strip() or clean_content(node.get_text())
        return value, 1 if value else 0
    return clean_content(node.get_text()), score_element(node, selector, field_name)


def select_best_candidate(
    context: Tag,
    spec: SelectorSpec,
    field_name: str,
    log: Optional[logging.Logger] = None,
) -> Optional[Candidate]:
    """
    Scan every selector of the spec inside `context` and return the
    highest-scoring visible candidate that meets the minimum length.
    Ties keep the first candidate found, in selector order then document order.
    """
    log = log or logger
    best: Optional[Candidate] = None

    for selector in spec.selectors:
        try:
            nodes: List[Tag] = context.select(selector)
        except Exception as e:
            log.debug(f"Selector '{selector}' failed for field '{field_name}': {e}")
            continue

        for node in nodes:
            if is_hidden(node):
                continue
            value, score = candidate_value(node, selector, field_name)
            if not value:
                continue
            if spec.min_length and len(value) < spec.min_length:
                continue
            if best is None or score > best.score:
                best = Candidate(value=value, score=score, selector=selector, node=node)

    if best is not None and field_name == FULL_CONTENT:
        # Inner markup keeps word boundaries that get_text() can lose
        markup_text = clean_content(best.node.decode_contents())
        if len(markup_text) > len(best.value):
            log.debug(f"Using cleaned inner markup for '{field_name}', length: {len(markup_text)}")
            best = Candidate(value=markup_text, score=best.score, selector=best.selector, node=best.node)

    if best is None and spec.required:
        log.warning(
            f"Required field '{field_name}' not found using selectors: {', '.join(spec.selectors)}"
        )
    return best


def select_best(
    context: Tag,
    spec: SelectorSpec,
    field_name: str,
    log: Optional[logging.Logger] = None,
) -> str:
    best = select_best_candidate(context, spec, field_name, log=log)
    return best.value if best else ""


def select_containers(document: Tag, spec: SelectorSpec) -> List[Tag]:
    """All nodes matching any container selector, in document order."""
    return document.select(", ".join(spec.selectors))
