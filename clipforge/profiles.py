from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

KEYWORD_CATEGORIES = ("kill", "death", "victory", "clutch")
DEFAULT_PROFILE_KEY = "default"


@dataclass(slots=True, frozen=True)
class GameProfile:
    """Per-game keyword lexicons and clip defaults used to classify transcript text."""

    name: str
    keywords: Mapping[str, frozenset[str]]
    clip_duration_seconds: int = 30
    # (x, y, width, height) as frame fractions; carried for future HUD analysis only
    kill_feed_region: tuple[float, float, float, float] | None = None
    aliases: frozenset[str] = field(default_factory=frozenset)

    def keywords_for(self, category: str) -> frozenset[str]:
        return self.keywords.get(category, frozenset())


def _profile(
    name: str,
    *,
    kill: list[str],
    death: list[str],
    victory: list[str],
    clutch: list[str],
    clip_duration_seconds: int = 30,
    kill_feed_region: tuple[float, float, float, float] | None = None,
    aliases: tuple[str, ...] = (),
) -> GameProfile:
    lexicon = {
        "kill": kill,
        "death": death,
        "victory": victory,
        "clutch": clutch,
    }
    return GameProfile(
        name=name,
        keywords=MappingProxyType(
            {category: frozenset(word.lower() for word in words) for category, words in lexicon.items()}
        ),
        clip_duration_seconds=clip_duration_seconds,
        kill_feed_region=kill_feed_region,
        aliases=frozenset(alias.lower() for alias in aliases),
    )


BUILTIN_PROFILES: dict[str, GameProfile] = {
    "valorant": _profile(
        "VALORANT",
        kill=["ace", "double kill", "triple kill", "quadra", "headshot", "one tap"],
        death=["died", "eliminated", "killed"],
        victory=["round won", "victory", "won the round"],
        clutch=["clutch", "1v", "last alive", "defused"],
        clip_duration_seconds=30,
        kill_feed_region=(0.72, 0.08, 0.26, 0.22),
    ),
    "league of legends": _profile(
        "League of Legends",
        kill=["double kill", "triple kill", "quadra kill", "penta kill", "killing spree", "shut down"],
        death=["executed", "slain", "has been killed"],
        victory=["victory", "nexus destroyed", "won"],
        clutch=["baron", "elder dragon", "ace"],
        clip_duration_seconds=35,
        kill_feed_region=(0.78, 0.18, 0.2, 0.25),
        aliases=("lol", "league"),
    ),
    "csgo": _profile(
        "CS:GO",
        kill=["ace", "quad kill", "triple kill", "double kill", "headshot"],
        death=["eliminated"],
        victory=["terrorists win", "counter-terrorists win"],
        clutch=["clutch", "1v", "defused", "planted"],
        clip_duration_seconds=30,
        kill_feed_region=(0.7, 0.05, 0.28, 0.2),
        aliases=("cs:go", "cs2", "counter-strike"),
    ),
    "fortnite": _profile(
        "Fortnite",
        kill=["eliminated", "knocked", "sniped"],
        death=["eliminated by"],
        victory=["victory royale", "won"],
        clutch=["last player", "final circle"],
        clip_duration_seconds=25,
        kill_feed_region=(0.02, 0.55, 0.3, 0.2),
    ),
    "apex legends": _profile(
        "Apex Legends",
        kill=["knocked", "eliminated", "squad wiped"],
        death=["down", "eliminated"],
        victory=["champion", "victory"],
        clutch=["last squad", "clutch"],
        clip_duration_seconds=30,
        kill_feed_region=(0.7, 0.05, 0.28, 0.18),
        aliases=("apex",),
    ),
    DEFAULT_PROFILE_KEY: _profile(
        "Generic",
        kill=["kill", "eliminated", "got him", "dead", "destroyed"],
        death=["died", "death", "down"],
        victory=["win", "victory", "won", "gg"],
        clutch=["clutch", "insane", "crazy"],
        clip_duration_seconds=30,
    ),
}


class ProfileRegistry:
    """Immutable title -> GameProfile lookup with a guaranteed default."""

    def __init__(self, profiles: Mapping[str, GameProfile] | None = None) -> None:
        source = dict(profiles if profiles is not None else BUILTIN_PROFILES)
        if DEFAULT_PROFILE_KEY not in source:
            raise ValueError(f"Profile table must define a '{DEFAULT_PROFILE_KEY}' entry.")

        index: dict[str, GameProfile] = {}
        for key, profile in source.items():
            index[_normalize_title(key)] = profile
            for alias in profile.aliases:
                index.setdefault(_normalize_title(alias), profile)

        self._profiles = MappingProxyType(index)
        self._default = source[DEFAULT_PROFILE_KEY]

    @property
    def default(self) -> GameProfile:
        return self._default

    def titles(self) -> list[str]:
        return sorted(self._profiles)

    def resolve(self, game_title: str | None) -> GameProfile:
        """Return the profile for a title, or the default profile when unknown or empty."""

        if not game_title:
            return self._default
        return self._profiles.get(_normalize_title(game_title), self._default)


def _normalize_title(title: str) -> str:
    return " ".join(title.lower().split())


DEFAULT_REGISTRY = ProfileRegistry()


def resolve_profile(game_title: str | None, registry: ProfileRegistry | None = None) -> GameProfile:
    return (registry or DEFAULT_REGISTRY).resolve(game_title)
