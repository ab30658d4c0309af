"""Keyword-based chat sentiment."""

from ..core.models import Sentiment

POSITIVE_KEYWORDS = ("pog", "pogchamp", "love", "hype", "lul", "kek", "ez", "nice", "huge", "king", "goat")
NEGATIVE_KEYWORDS = ("bad", "trash", "l", "toxic", "dogshit", "garbage", "f", "rip", "throw", "cringe")


def _matches(keyword: str, low: str, tokens: set[str]) -> bool:
    # Single letters ("L", "F") only count as a whole word
    if len(keyword) == 1:
        return keyword in tokens
    return keyword in low


def detect_sentiment(text: str) -> Sentiment:
    """Classify text as positive, negative or neutral. Positive wins ties."""
    low = text.lower()
    tokens = set(low.split())
    if any(_matches(w, low, tokens) for w in POSITIVE_KEYWORDS):
        return Sentiment.POSITIVE
    if any(_matches(w, low, tokens) for w in NEGATIVE_KEYWORDS):
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL
