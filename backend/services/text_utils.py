"""Text normalization and phrase detection shared by the generators."""

import re
from typing import Dict, Iterable, List, Optional, Tuple

from models import AnswerCategory
import config


def normalize(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    if not text:
        return ""

    text = text.lower()
    text = re.sub(r'[^\w\s]', ' ', text)
    return re.sub(r'\s+', ' ', text).strip()


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """True if any phrase appears in text as whole words."""
    return bool(matched_phrases(text, phrases))


def matched_phrases(text: str, phrases: Iterable[str]) -> List[str]:
    """Return the phrases found in text, matched on word boundaries."""
    normalized = normalize(text)
    found = []
    for phrase in phrases:
        pattern = r'\b' + re.escape(normalize(phrase)) + r'\b'
        if re.search(pattern, normalized):
            found.append(phrase)
    return found


def detect_topic(text: str, topics: Optional[Dict[str, List[str]]] = None) -> Optional[str]:
    """Return the first topic whose keywords appear in text."""
    for topic, keywords in (topics or config.GENERATIVE_TOPICS).items():
        if contains_any(text, keywords):
            return topic
    return None


def detect_answer_category(
    text: str,
    rules: Optional[List[Tuple[str, List[str]]]] = None
) -> AnswerCategory:
    """Classify question text into a library category, first rule wins."""
    for category, keywords in rules or config.CATEGORY_KEYWORDS:
        if contains_any(text, keywords):
            return AnswerCategory(category)
    return AnswerCategory.GENERAL_SECURITY


def parse_category(value) -> Optional[AnswerCategory]:
    """Parse a category name leniently: case, spaces and hyphens are ignored."""
    if isinstance(value, AnswerCategory):
        return value
    if value is None:
        return None

    key = re.sub(r'[\s\-]+', '_', str(value).strip()).upper()
    try:
        return AnswerCategory(key)
    except ValueError:
        return None


def split_list(value: str, separator: str = ";") -> List[str]:
    """Split a delimited cell into trimmed non-empty items."""
    if not value:
        return []
    return [item.strip() for item in str(value).split(separator) if item.strip()]
