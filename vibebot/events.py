"""Events: the append-only unit of world history, and their text payloads."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

__all__ = [
    "ACTOR_WORLD",
    "Event",
    "Filter",
    "Kind",
    "Source",
    "marshal_text",
    "new_ambient_event",
    "new_inject_event",
    "new_nudge_event",
    "new_speech_event",
    "new_summon_event",
    "new_synthesized_event",
    "text_of",
]


class Source(str, Enum):
    """Where an event originated."""

    IRC = "irc"
    TICK = "tick"
    GROUP = "group"
    SYSTEM = "system"

    def __str__(self) -> str:
        return self.value


class Kind(str, Enum):
    """The event discriminator."""

    SPEECH = "speech"
    ACTION = "action"
    PERCEPTION = "perception"
    SCENE_ENTER = "scene_enter"
    INJECT = "inject"
    AMBIENT = "ambient"
    SYNTHESIZED = "synthesized"
    SUMMON = "summon"
    NUDGE = "nudge"

    def __str__(self) -> str:
        return self.value


# Well-known non-character value stored in Event.actor.
ACTOR_WORLD = "world"


@dataclass
class Event:
    """One entry of world history.

    ``payload`` is opaque JSON bytes; use the ``new_*_event`` constructors
    and :func:`text_of` to avoid kind/payload mismatches. ``id`` is 0 and
    ``timestamp`` is None until the event has been persisted.
    """

    id: int = 0
    timestamp: datetime | None = None
    source: Source | str = ""
    scene_id: str = ""
    actor: str = ""
    kind: Kind | str = ""
    payload: bytes = b""


@dataclass
class Filter:
    """Narrows a query. Empty fields mean "no constraint"."""

    since: datetime | None = None
    scene_id: str = ""
    actor: str = ""
    kind: Kind | str = ""
    limit: int = 0


def _encode_text(text: str, target: str = "") -> bytes:
    body = {"text": text}
    if target:
        body["target"] = target
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def marshal_text(text: str) -> bytes:
    """Encode a string as a text payload."""
    return _encode_text(text)


def text_of(event: Event) -> str:
    """Return the text of a text payload, or "" when empty or malformed."""
    if not event.payload:
        return ""
    try:
        data = json.loads(event.payload)
    except (ValueError, UnicodeDecodeError):
        return ""
    if data is None:
        return ""
    if not isinstance(data, dict):
        return ""
    text = data.get("text")
    target = data.get("target")
    if text is not None and not isinstance(text, str):
        return ""
    if target is not None and not isinstance(target, str):
        return ""
    return text or ""


def new_inject_event(scene_id: str, target: str, text: str) -> Event:
    """An inject pushed in from chat, targeted at a scene."""
    return Event(
        source=Source.IRC,
        scene_id=scene_id,
        actor=target,
        kind=Kind.INJECT,
        payload=_encode_text(text),
    )


def new_ambient_event(scene_id: str, text: str) -> Event:
    """An ambient tick event attributed to the world."""
    return Event(
        source=Source.TICK,
        scene_id=scene_id,
        actor=ACTOR_WORLD,
        kind=Kind.AMBIENT,
        payload=_encode_text(text),
    )


def new_synthesized_event(scene_id: str, leader: str, text: str) -> Event:
    """The leader-synthesized group utterance."""
    return Event(
        source=Source.GROUP,
        scene_id=scene_id,
        actor=leader,
        kind=Kind.SYNTHESIZED,
        payload=_encode_text(text),
    )


def new_speech_event(scene_id: str, actor: str, text: str) -> Event:
    """A single character's utterance."""
    return Event(
        source=Source.GROUP,
        scene_id=scene_id,
        actor=actor,
        kind=Kind.SPEECH,
        payload=_encode_text(text),
    )


def new_summon_event(scene_id: str, place_id: str) -> Event:
    """A summon request toward a place."""
    return Event(
        source=Source.IRC,
        scene_id=scene_id,
        actor=place_id,
        kind=Kind.SUMMON,
        payload=_encode_text("", place_id),
    )


def new_nudge_event(scene_id: str, character_id: str) -> Event:
    """A nudge request aimed at one character."""
    return Event(
        source=Source.IRC,
        scene_id=scene_id,
        actor=character_id,
        kind=Kind.NUDGE,
        payload=_encode_text("", character_id),
    )