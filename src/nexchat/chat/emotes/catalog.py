"""Channel-scoped third-party emote catalog."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from ..models import ChatEmote


@dataclass(frozen=True)
class EmoteCatalog:
    """Name -> emote mapping belonging to exactly one room.

    A catalog is never mutated; a channel change produces a new catalog, so
    entries from a previous room cannot be resolved once it is replaced.
    """

    room_id: str | None = None
    entries: Mapping[str, ChatEmote] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_emotes(cls, room_id: str | None, emotes: Iterable[ChatEmote]) -> "EmoteCatalog":
        """Build a catalog; later emotes with the same name win."""
        entries: dict[str, ChatEmote] = {}
        for emote in emotes:
            entries[emote.name] = emote
        return cls(room_id=room_id, entries=MappingProxyType(entries))

    def get(self, name: str) -> ChatEmote | None:
        """Resolve an exact token to an emote."""
        return self.entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)


EMPTY_CATALOG = EmoteCatalog()
