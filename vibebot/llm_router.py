"""Model-assisted selection of which scene members react to an event."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from vibebot.events import Event, text_of
from vibebot.prefilter import pre_filter
from vibebot.protocols import CompleteRequest, LanguageModel, Message, Role
from vibebot.scene import Character

__all__ = ["LLMRouter", "pick_by_response"]

logger = logging.getLogger(__name__)


def _router_system(leader: Character | None) -> str:
    if leader is None:
        return "You are routing a group turn. Pick which members should react."
    return (
        f"You are {leader.name}, the leader of a group. Pick which members should react "
        "this turn. Reply with ONLY a comma-separated list of member IDs from the "
        "candidate list. No commentary, no quotes."
    )


def _router_prompt(event: Event, candidates: Sequence[Character]) -> str:
    text = text_of(event)
    situation = text if text else f"[{event.source!s}/{event.kind!s} by {event.actor}]"
    lines = [f"Situation: {situation}", "", "Candidates (id — blurb — tags):"]
    lines.extend(
        f"- {c.id} — {c.blurb} — {', '.join(c.capabilities)}" for c in candidates
    )
    return "\n".join(lines) + "\n\nReply with comma-separated IDs only."


def pick_by_response(response: str, valid: Mapping[str, Character]) -> list[Character]:
    """Extract known ids from a model response, in the order listed, without duplicates.

    Accepts comma- or newline-separated values and quoted ids.
    """
    out: list[Character] = []
    seen: set[str] = set()
    for part in response.replace("\n", ",").split(","):
        cid = part.strip().strip("\"'`")
        if not cid or cid in seen:
            continue
        character = valid.get(cid)
        if character is not None:
            seen.add(cid)
            out.append(character)
    return out


@dataclass
class LLMRouter:
    """Pre-filters by tag overlap, then asks a model which members should react.

    Any model failure falls back to the pre-filtered set, so a turn is never
    silently dropped. ``pre_filter_k`` and ``max_consult`` of 0 mean no cap.
    """

    model: LanguageModel | None = None
    pre_filter_k: int = 0
    max_consult: int = 0

    def select(
        self,
        event: Event,
        leader: Character | None,
        candidates: Sequence[Character],
    ) -> list[Character]:
        if not candidates:
            return []
        prefiltered = pre_filter(text_of(event), candidates, self.pre_filter_k)
        if len(prefiltered) <= 1 or self.model is None:
            return self._cap(prefiltered)

        picked: list[Character] = []
        try:
            response = self.model.complete(
                CompleteRequest(
                    system=_router_system(leader),
                    messages=[
                        Message(role=Role.USER, content=_router_prompt(event, prefiltered))
                    ],
                    max_tokens=80,
                    temperature=0.2,
                )
            )
        except Exception as exc:
            logger.debug("router model call failed; using pre-filtered set: %s", exc)
            response = ""
        if response:
            picked = pick_by_response(response, {c.id: c for c in prefiltered})

        if not picked:
            picked = prefiltered
        return self._cap(picked)

    def _cap(self, characters: list[Character]) -> list[Character]:
        if self.max_consult > 0:
            return characters[: self.max_consult]
        return characters