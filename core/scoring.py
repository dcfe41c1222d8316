import logging
from typing import Optional

from bs4.element import Tag

from core.text import clean_content

logger = logging.getLogger(__name__)

HEADING_MAJOR = {"h1", "h2", "h3"}
HEADING_MINOR = {"h4", "h5", "h6"}

# Regions whose text is almost never the article itself
PENALIZED_TAGS = {"nav", "footer", "aside"}
PENALIZED_ROLES = {"navigation", "complementary"}
PENALIZED_CLASSES = {"sidebar", "related-posts", "comments-section"}

REGION_PENALTY = 50
LINK_PENALTY = 10


def _in_penalized_region(node: Tag) -> bool:
    for parent in node.parents:
        if not isinstance(parent, Tag):
            continue
        if parent.name in PENALIZED_TAGS:
            return True
        if parent.get("role") in PENALIZED_ROLES:
            return True
        classes = parent.get("class") or []
        if PENALIZED_CLASSES.intersection(classes):
            return True
    return False


def score_element(node, selector: str, field: Optional[str] = None) -> int:
    """
    Relevance score of a candidate node for a field.

    Longer cleaned text scores higher, headings and paragraphs get a bonus,
    selectors naming titles or bodies get a bonus, and nodes inside
    navigation/footer/sidebar regions are pushed down. Never negative.
    """
    if not isinstance(node, Tag):
        return 0
    try:
        score = len(clean_content(node.get_text()))

        tag_name = node.name.lower()
        if tag_name in HEADING_MAJOR:
            score += 30
        elif tag_name in HEADING_MINOR:
            score += 15
        elif tag_name == "p":
            score += 5

        hint = selector.lower()
        if "title" in hint or "headline" in hint:
            score += 20
        if "content" in hint or "body" in hint or "article" in hint:
            score += 10

        if _in_penalized_region(node):
            score -= REGION_PENALTY

        if tag_name == "a" and field not in ("link", "title"):
            score -= LINK_PENALTY

        return max(0, score)
    except Exception as e:
        logger.error(f"Error scoring element for selector '{selector}': {e}")
        return 0
