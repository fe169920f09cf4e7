"""
Role assignment table and the emoji-to-role resolver.

The category table says which embeds exist and which guild emoji each one
carries. It is plain data; config.py supplies the defaults and lets
config.toml override them.
"""

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class RoleCategory:
    """One role assignment embed and the emoji reactions it carries."""
    title: str
    emoji: tuple[str, ...]
    thumbnail: str | None = None


@dataclass(frozen=True)
class IntroMessage:
    title: str
    description: str


BOOK_CATEGORY = RoleCategory(
    title="The Expanse: Book Role Assignment",
    thumbnail="https://i.imgur.com/iGZGW7u.png",
    emoji=(
        "LeviathanWakes",
        "CalibansWar",
        "AbaddonsGate",
        "CibolaBurn",
        "NemesisGames",
        "BabylonsAshes",
        "PersepolisRising",
        "TiamatsWrath",
    ),
)

NOVELLA_CATEGORY = RoleCategory(
    title="The Expanse: Novella Role Assignment",
    thumbnail="https://i.imgur.com/vuiekLb.png",
    emoji=(
        "TheButcherOfAndersonStation",
        "GodsOfRisk",
        "Drive",
        "TheChurn",
        "TheVitalAbyss",
        "StrangeDogs",
        "Auberon",
    ),
)

SHOW_CATEGORY = RoleCategory(
    title="The Expanse: Show Role Assignment",
    thumbnail="https://i.imgur.com/kXIe12S.png",
    emoji=("Season1", "Season2", "Season3", "Season4"),
)

CURRENT_CATEGORY = RoleCategory(
    title="The Expanse: All Current Assignment",
    emoji=("CurrentShow", "CurrentBook", "CurrentAll"),
)

DEFAULT_CATEGORIES: tuple[RoleCategory, ...] = (
    BOOK_CATEGORY,
    NOVELLA_CATEGORY,
    SHOW_CATEGORY,
    CURRENT_CATEGORY,
)

DEFAULT_INTRO = IntroMessage(
    title="The Expanse: Reaction-based Role Assignment",
    description=(
        "This server has a spoiler system in place.  You only see channels for "
        "which you have opted into, by assigning particular roles.\n\n"
        "Opt-in to channels by reacting to the different category messages below.\n\n"
        "In order to remove an unwanted role, just remove your reaction by clicking the emoji once again."
    ),
)


def required_emoji(categories: Iterable[RoleCategory]) -> list[str]:
    """All emoji names used by `categories`, de-duplicated, in table order."""
    seen: dict[str, None] = {}
    for category in categories:
        for name in category.emoji:
            seen.setdefault(name, None)
    return list(seen)


def normalize_name(name: str) -> str:
    """Strip apostrophes and spaces and casefold: "Caliban's War" -> "calibanswar"."""
    return name.replace("'", "").replace(" ", "").casefold()


def find_role_for_emoji(roles: Iterable, emoji_name: str | None):
    """Pick the role a reacted emoji stands for.

    Best-effort substring match: the first role, in the order given, whose
    normalized name contains the normalized emoji name. Returns None when the
    emoji has no name or nothing matches.
    """
    if not emoji_name:
        return None
    needle = normalize_name(emoji_name)
    if not needle:
        return None
    for role in roles:
        if needle in normalize_name(role.name):
            return role
    return None
