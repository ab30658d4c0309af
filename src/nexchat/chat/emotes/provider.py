"""Third-party emote providers (BTTV, 7TV, FFZ) and catalog refresh."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Iterable

import aiohttp

from ..models import ChatEmote, ProviderResult
from .catalog import EmoteCatalog

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # seconds


class CatalogFetchError(Exception):
    """Raised when a provider endpoint is unreachable or answers non-OK."""


class BaseEmoteProvider(ABC):
    """Base class for emote providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""

    @abstractmethod
    async def get_global_emotes(self) -> list[ChatEmote]:
        """Fetch global emotes for this provider."""

    @abstractmethod
    async def get_channel_emotes(self, room_id: str) -> list[ChatEmote]:
        """Fetch channel-specific emotes.

        Args:
            room_id: The numeric Twitch room (broadcaster) id.
        """

    async def _get_json(self, url: str) -> Any:
        """GET a JSON document, raising CatalogFetchError on a non-OK answer."""
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url, timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
            ) as resp:
                if resp.status != 200:
                    raise CatalogFetchError(f"{self.name}: {url} returned {resp.status}")
                return await resp.json()

    @staticmethod
    def _parse_all(parse, items: Iterable[dict]) -> list[ChatEmote]:
        emotes: list[ChatEmote] = []
        for item in items:
            emote = parse(item)
            if emote:
                emotes.append(emote)
        return emotes


class BTTVProvider(BaseEmoteProvider):
    """BetterTTV emote provider."""

    BASE_URL = "https://api.betterttv.net/3"

    @property
    def name(self) -> str:
        return "bttv"

    async def get_global_emotes(self) -> list[ChatEmote]:
        """Fetch BTTV global emotes."""
        data = await self._get_json(f"{self.BASE_URL}/cached/emotes/global")
        return self._parse_all(self._parse_emote, data or [])

    async def get_channel_emotes(self, room_id: str) -> list[ChatEmote]:
        """Fetch BTTV channel and shared emotes."""
        data = await self._get_json(f"{self.BASE_URL}/cached/users/twitch/{room_id}")
        items = (data.get("channelEmotes") or []) + (data.get("sharedEmotes") or [])
        return self._parse_all(self._parse_emote, items)

    def _parse_emote(self, data: dict) -> ChatEmote | None:
        """Parse a BTTV emote from API data."""
        emote_id = data.get("id", "")
        code = data.get("code", "")

        if not emote_id or not code:
            return None

        return ChatEmote(
            id=emote_id,
            name=code,
            url=f"https://cdn.betterttv.net/emote/{emote_id}/1x",
            provider="bttv",
        )


class SevenTVProvider(BaseEmoteProvider):
    """7TV emote provider."""

    BASE_URL = "https://7tv.io/v3"

    @property
    def name(self) -> str:
        return "7tv"

    async def get_global_emotes(self) -> list[ChatEmote]:
        """Fetch 7TV global emotes."""
        data = await self._get_json(f"{self.BASE_URL}/emote-sets/global")
        return self._parse_all(self._parse_emote, data.get("emotes") or [])

    async def get_channel_emotes(self, room_id: str) -> list[ChatEmote]:
        """Fetch 7TV channel emotes."""
        data = await self._get_json(f"{self.BASE_URL}/users/twitch/{room_id}")
        emote_set = data.get("emote_set") or {}
        return self._parse_all(self._parse_emote, emote_set.get("emotes") or [])

    def _parse_emote(self, data: dict) -> ChatEmote | None:
        """Parse a 7TV emote from API data."""
        emote_data = data.get("data") or data
        emote_id = emote_data.get("id", data.get("id", ""))
        name = data.get("name", emote_data.get("name", ""))

        if not emote_id or not name:
            return None

        host = emote_data.get("host") or {}
        base_url = host.get("url") or f"//cdn.7tv.app/emote/{emote_id}"
        if base_url.startswith("//"):
            base_url = "https:" + base_url

        return ChatEmote(
            id=emote_id,
            name=name,
            url=f"{base_url}/1x.webp",
            provider="7tv",
        )


class FFZProvider(BaseEmoteProvider):
    """FrankerFaceZ emote provider."""

    BASE_URL = "https://api.frankerfacez.com/v1"

    @property
    def name(self) -> str:
        return "ffz"

    async def get_global_emotes(self) -> list[ChatEmote]:
        """Fetch FFZ global emotes."""
        data = await self._get_json(f"{self.BASE_URL}/set/global")
        sets = data.get("sets") or {}
        emotes: list[ChatEmote] = []
        for set_id in data.get("default_sets") or []:
            emote_set = sets.get(str(set_id)) or {}
            emotes.extend(self._parse_all(self._parse_emote, emote_set.get("emoticons") or []))
        return emotes

    async def get_channel_emotes(self, room_id: str) -> list[ChatEmote]:
        """Fetch FFZ channel emotes."""
        data = await self._get_json(f"{self.BASE_URL}/room/id/{room_id}")
        emotes: list[ChatEmote] = []
        for set_data in (data.get("sets") or {}).values():
            emotes.extend(self._parse_all(self._parse_emote, set_data.get("emoticons") or []))
        return emotes

    def _parse_emote(self, data: dict) -> ChatEmote | None:
        """Parse an FFZ emote from API data."""
        emote_id = str(data.get("id", ""))
        name = data.get("name", "")

        if not emote_id or not name:
            return None

        urls = data.get("urls") or {}
        url = urls.get("1") or urls.get("2") or ""
        if url.startswith("//"):
            url = "https:" + url

        if not url:
            return None

        return ChatEmote(id=emote_id, name=name, url=url, provider="ffz")


PROVIDER_CLASSES: dict[str, type[BaseEmoteProvider]] = {
    "bttv": BTTVProvider,
    "7tv": SevenTVProvider,
    "ffz": FFZProvider,
}


def create_providers(names: Iterable[str]) -> list[BaseEmoteProvider]:
    """Instantiate providers by name, in the given order, skipping unknown names."""
    providers: list[BaseEmoteProvider] = []
    for name in names:
        provider_cls = PROVIDER_CLASSES.get(name.lower())
        if provider_cls is None:
            logger.warning(f"Unknown emote provider: {name}")
            continue
        providers.append(provider_cls())
    return providers


async def _isolated(source: str, fetch: Awaitable[list[ChatEmote]]) -> ProviderResult:
    """Run one fetch; a failure becomes an empty result instead of an exception."""
    try:
        emotes = await fetch
    except Exception as e:
        logger.warning(f"Emote provider failed: {source}: {e}")
        return ProviderResult(source=source, error=str(e) or e.__class__.__name__)
    logger.debug(f"Fetched {len(emotes)} emotes from {source}")
    return ProviderResult(source=source, emotes=emotes)


async def fetch_provider_results(
    room_id: str, providers: Iterable[BaseEmoteProvider]
) -> list[ProviderResult]:
    """Fetch global and channel emotes from every provider concurrently.

    Results come back in provider order (global before channel) regardless of
    which request finished first.
    """
    fetches = []
    for provider in providers:
        fetches.append(_isolated(f"{provider.name}:global", provider.get_global_emotes()))
        fetches.append(
            _isolated(f"{provider.name}:channel", provider.get_channel_emotes(room_id))
        )
    return list(await asyncio.gather(*fetches))


async def fetch_channel_catalog(
    room_id: str, providers: Iterable[BaseEmoteProvider]
) -> EmoteCatalog:
    """Build the catalog for a room from whichever providers succeed."""
    results = await fetch_provider_results(room_id, providers)
    failed = [r.source for r in results if not r.ok]
    catalog = EmoteCatalog.from_emotes(
        room_id, (emote for result in results for emote in result.emotes)
    )
    logger.info(
        f"Emote catalog for room {room_id}: {len(catalog)} emotes"
        + (f" (failed: {', '.join(failed)})" if failed else "")
    )
    return catalog
