"""Alert keyword matching."""

from typing import Iterable


def contains_alert_word(text: str, alert_words: Iterable[str]) -> bool:
    """True if any non-empty alert word is a case-insensitive substring of text."""
    low = text.lower()
    return any(word and word.lower() in low for word in alert_words)
