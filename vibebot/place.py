"""Locations characters can be summoned to."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["Place"]


@dataclass
class Place:
    """A labelled location; NPCs are listed by character id and resolved at summon time."""

    id: str
    name: str
    description: str = ""
    npcs: list[str] = field(default_factory=list)