"""Emote renderer - turns message text into annotated, escaped HTML.

Rendering is three ordered passes over immutable strings:

1. HTML-escape the message text.
2. Replace Twitch emote ranges, last range first, so every replacement
   leaves the offsets of the ranges still to come untouched. Offsets are
   UTF-16 code units, as sent by Twitch, and are applied to the escaped
   string (an approximation that is exact unless an escaped character sits
   before or inside an emote).
3. Walk whitespace-separated tokens and swap catalog emotes in / highlight
   alert words. Markup inserted by pass 2 is carried through as part of its
   token and never split or matched against.
"""

import re
from typing import Iterable, Iterator, Mapping, Union

from ..alerts import contains_alert_word
from ..models import ChatEmote, ChatMessage
from .catalog import EMPTY_CATALOG, EmoteCatalog

TWITCH_EMOTE_URL = "https://static-cdn.jtvnw.net/emoticons/v2/{id}/default/dark/1.0"

EMOTE_IMG_CLASS = "inline-block h-7 align-middle"
ALERT_SPAN_CLASS = "bg-yellow-500 text-black px-1 rounded font-bold"

_HTML_ESCAPES = str.maketrans(
    {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"}
)
_RANGE_RE = re.compile(r"^(\d+)-(\d+)$")
_TAG_RE = re.compile(r"<[^>]*>")

EmoteLookup = Union[EmoteCatalog, Mapping[str, ChatEmote]]


def escape_html(text: str) -> str:
    """Escape the five HTML-special characters."""
    return text.translate(_HTML_ESCAPES)


def parse_emote_ranges(emotes: Mapping[str, str]) -> list[tuple[int, int, str]]:
    """Return valid (start, end, emote_id) ranges sorted by descending start.

    Range strings that are not two non-negative integers are skipped.
    """
    ranges: list[tuple[int, int, str]] = []
    for range_str, emote_id in emotes.items():
        match = _RANGE_RE.match(range_str)
        if match:
            ranges.append((int(match.group(1)), int(match.group(2)), emote_id))
    return sorted(ranges, key=lambda r: r[0], reverse=True)


def twitch_emote_html(emote_id: str) -> str:
    url = TWITCH_EMOTE_URL.format(id=escape_html(emote_id))
    return f'<img class="{EMOTE_IMG_CLASS}" src="{url}" alt="emote">'


def catalog_emote_html(emote: ChatEmote, word: str) -> str:
    return (
        f'<img class="{EMOTE_IMG_CLASS}" src="{escape_html(emote.url)}" '
        f'alt="{word}" title="{word}">'
    )


def alert_html(word: str) -> str:
    return f'<span class="{ALERT_SPAN_CLASS}">{word}</span>'


def substitute_twitch_emotes(html: str, emotes: Mapping[str, str]) -> str:
    """Replace inclusive UTF-16 [start, end] spans with Twitch emote images.

    Out-of-range indices clamp to the string boundaries like slicing does.
    """
    ranges = parse_emote_ranges(emotes)
    if not ranges:
        return html

    # One UTF-16 code unit == two bytes
    buf = html.encode("utf-16-le", "surrogatepass")
    for start, end, emote_id in ranges:
        replacement = twitch_emote_html(emote_id).encode("utf-16-le")
        buf = buf[: 2 * start] + replacement + buf[2 * (end + 1) :]
    # A span that splits a surrogate pair degrades to U+FFFD
    return buf.decode("utf-16-le", "replace")


def iter_tokens(html: str) -> Iterator[str]:
    """Yield whitespace-separated tokens, keeping <...> markup whole."""
    token: list[str] = []
    in_tag = False
    for ch in html:
        if ch == "<":
            in_tag = True
        elif ch == ">":
            in_tag = False
        elif not in_tag and ch.isspace():
            if token:
                yield "".join(token)
                token = []
            continue
        token.append(ch)
    if token:
        yield "".join(token)


def _render_token(token: str, catalog: EmoteLookup, alert_words: list[str]) -> str:
    emote = catalog.get(token)
    if emote is not None:
        return catalog_emote_html(emote, token)
    if contains_alert_word(_TAG_RE.sub("", token), alert_words):
        return alert_html(token)
    return token


def render_message_html(
    text: str,
    emotes: Mapping[str, str] | None = None,
    catalog: EmoteLookup = EMPTY_CATALOG,
    alert_words: Iterable[str] = (),
) -> str:
    """Render message text as HTML with emotes and alert highlights.

    Args:
        text: Plain message text.
        emotes: Twitch emote ranges ("start-end" -> emote id).
        catalog: Third-party emotes matched against whole tokens.
        alert_words: Keywords to highlight (case-insensitive substring).

    Returns:
        Escaped markup. Runs of whitespace collapse to a single space.
    """
    html = escape_html(text)
    html = substitute_twitch_emotes(html, emotes or {})
    words = [w for w in alert_words if w]
    return " ".join(_render_token(token, catalog, words) for token in iter_tokens(html))


def render_message(
    message: ChatMessage,
    catalog: EmoteLookup = EMPTY_CATALOG,
    alert_words: Iterable[str] = (),
) -> str:
    """Render a decoded message's body."""
    return render_message_html(message.text, message.emotes, catalog, alert_words)
