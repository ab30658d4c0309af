"""Tests for the keyword sentiment classifier."""

from nexchat.chat.sentiment import detect_sentiment
from nexchat.core.models import Sentiment


def test_positive():
    assert detect_sentiment("this is POG") == Sentiment.POSITIVE


def test_negative():
    assert detect_sentiment("total trash") == Sentiment.NEGATIVE


def test_neutral():
    assert detect_sentiment("hello there") == Sentiment.NEUTRAL


def test_empty_is_neutral():
    assert detect_sentiment("") == Sentiment.NEUTRAL


def test_positive_takes_priority():
    assert detect_sentiment("hype but trash") == Sentiment.POSITIVE


def test_substring_match_accepts_false_positives():
    # "ez" inside "freeze"
    assert detect_sentiment("freeze frame") == Sentiment.POSITIVE


def test_single_letter_slang_as_whole_word():
    assert detect_sentiment("F") == Sentiment.NEGATIVE
    assert detect_sentiment("huge L for them") == Sentiment.POSITIVE
    assert detect_sentiment("that's an L") == Sentiment.NEGATIVE


def test_deterministic():
    results = {detect_sentiment("GOAT behaviour") for _ in range(10)}
    assert results == {Sentiment.POSITIVE}


def test_value_strings():
    assert detect_sentiment("rip").value == "negative"
