"""
Label extraction.

Exports carry a free-text tag line such as "Labels: Inbox, Starred".
The text between the first and second colon is split on commas into labels.
"""

from typing import Optional, Tuple

from bs4 import BeautifulSoup

TAGS_SELECTOR = ".tags"


def extract_labels(text: Optional[str]) -> Tuple[str, ...]:
    """
    Split a tag string into trimmed, non-empty, unique labels.

    Args:
        text: Raw tag text, e.g. "Labels: Inbox, Starred".

    Returns:
        Labels in first-seen order. Empty if there is no colon.
    """
    if not text:
        return ()

    _, sep, rest = text.partition(":")
    if not sep:
        return ()

    # Only the segment between the first and second colon holds labels
    rest = rest.split(":", 1)[0]
    labels = (part.strip() for part in rest.split(","))
    return tuple(dict.fromkeys(label for label in labels if label))


def extract_document_labels(soup: BeautifulSoup) -> Tuple[str, ...]:
    """Extract labels from the first tags element of a markup document."""
    element = soup.select_one(TAGS_SELECTOR)
    if element is None:
        return ()
    return extract_labels(element.get_text())
