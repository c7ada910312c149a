"""Scenes: the orchestration unit a leader drives with fan-out and synthesis."""

from __future__ import annotations

import logging
import queue
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from vibebot.events import Event, text_of
from vibebot.protocols import CompleteRequest, LanguageModel, MemoryStore, Message, Role

__all__ = [
    "AllRouter",
    "Character",
    "OrchestrationResult",
    "Perception",
    "Router",
    "Scene",
    "SynthesisError",
    "Utterance",
    "render_prompt",
]

logger = logging.getLogger(__name__)

# How many of the leader's past events the synthesis prompt may pull in.
_SYNTH_RECALL_K = 3


@dataclass
class Perception:
    """Something a character witnesses.

    When ``reply`` is set the character is expected to put exactly one
    utterance on it; otherwise the perception is for memory only.
    """

    event: Event
    prompt: str = ""
    reply: queue.Queue | None = None


@dataclass(eq=False)
class Character:
    """A scene member, addressed through its inbox queue of perceptions."""

    id: str
    name: str = ""
    persona: str = ""
    blurb: str = ""
    capabilities: list[str] = field(default_factory=list)
    memory: MemoryStore | None = None
    inbox: queue.Queue = field(default_factory=queue.Queue)


@dataclass
class Utterance:
    """One member's response captured during fan-out."""

    character_id: str
    text: str


@dataclass
class OrchestrationResult:
    """Every member utterance solicited this turn plus the leader's synthesis."""

    utterances: list[Utterance] = field(default_factory=list)
    synthesized: str = ""


class SynthesisError(Exception):
    """The leader's synthesis failed after members had already spoken.

    ``utterances`` holds what was said so the caller can still persist it.
    """

    def __init__(self, cause: BaseException, utterances: list[Utterance]) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.utterances = utterances


@runtime_checkable
class Router(Protocol):
    """Decides which non-leader members speak for a given event."""

    def select(
        self,
        event: Event,
        leader: Character | None,
        candidates: Sequence[Character],
    ) -> list[Character]: ...


class AllRouter:
    """Consults every candidate every turn."""

    def select(
        self,
        event: Event,
        leader: Character | None,
        candidates: Sequence[Character],
    ) -> list[Character]:
        return list(candidates)


def render_prompt(event: Event) -> str:
    """The event's text, or a bracketed description when it has none."""
    text = text_of(event)
    if text:
        return text
    return f"[{event.source!s}/{event.kind!s} by {event.actor}]"


@dataclass(eq=False)
class Scene:
    """A group of characters led by one of them.

    ``router`` may be None, in which case every member is consulted.
    ``timeout`` bounds each wait on an inbox or a reply, in seconds; None
    waits indefinitely and a lapse raises TimeoutError.
    """

    id: str = ""
    place_id: str = ""
    members: list[Character] = field(default_factory=list)
    leader: Character | None = None
    router: Router | None = None
    timeout: float | None = None

    def orchestrate(self, model: LanguageModel, event: Event) -> OrchestrationResult:
        """Run one leader-led turn over an inbound event.

        Every member receives the perception for memory; only the members the
        router selects are asked to reply. Utterances come back in selection
        order. Raises :class:`SynthesisError` when the leader's synthesis fails.
        """
        if not self.members:
            return OrchestrationResult()
        prompt = render_prompt(event)

        candidates = [m for m in self.members if m is not self.leader]
        router = self.router if self.router is not None else AllRouter()
        selected = router.select(event, self.leader, candidates)
        selected_ids = {c.id for c in selected}

        reply_queues: dict[str, queue.Queue] = {}
        for member in self.members:
            reply: queue.Queue | None = None
            if member.id in selected_ids:
                reply = queue.Queue(maxsize=1)
                reply_queues[member.id] = reply
            self._deliver(member, Perception(event=event, prompt=prompt, reply=reply))

        utterances: list[Utterance] = []
        replies: list[str] = []
        for member in selected:
            try:
                text = reply_queues[member.id].get(timeout=self.timeout)
            except queue.Empty:
                raise TimeoutError(f"no reply from {member.id}") from None
            utterances.append(Utterance(character_id=member.id, text=text))
            replies.append(f"{member.name}: {text}")

        try:
            synthesized = self.synthesize(model, event, prompt, replies)
        except Exception as exc:
            raise SynthesisError(exc, utterances) from exc
        return OrchestrationResult(utterances=utterances, synthesized=synthesized)

    def synthesize(
        self,
        model: LanguageModel,
        event: Event,
        prompt: str,
        replies: Sequence[str],
    ) -> str:
        """Fold the members' replies into one statement by the leader.

        Without a leader the replies are simply joined.
        """
        if self.leader is None:
            return " | ".join(replies)
        user = "Situation: " + prompt + "\n\nReactions:\n" + "\n".join(replies)
        recall = self._recall_for_synth(event, prompt)
        if recall:
            user = recall + "\n\n" + user
        request = CompleteRequest(
            system=(
                f"You are {self.leader.name}, leader of this group. {self.leader.persona}\n"
                "Synthesize the group's reactions into one short in-character statement."
            ),
            messages=[Message(role=Role.USER, content=user)],
            max_tokens=120,
            temperature=0.7,
        )
        return model.complete(request)

    def broadcast_for_memory(self, event: Event) -> None:
        """Hand the event to every member as a perception that needs no reply."""
        for member in self.members:
            self._deliver(member, Perception(event=event))

    def _deliver(self, member: Character, perception: Perception) -> None:
        try:
            member.inbox.put(perception, timeout=self.timeout)
        except queue.Full:
            raise TimeoutError(f"inbox of {member.id} is full") from None

    def _recall_for_synth(self, event: Event, prompt: str) -> str:
        if self.leader is None or self.leader.memory is None:
            return ""
        try:
            past_events = self.leader.memory.retrieve(prompt, _SYNTH_RECALL_K)
        except Exception as exc:
            logger.warning(
                "leader memory retrieve failed: leader=%s err=%s", self.leader.id, exc
            )
            return ""
        lines = []
        for past in past_events:
            if past.id == event.id:
                continue
            text = text_of(past)
            if not text:
                continue
            lines.append(f"- {past.actor}/{past.kind!s}: {text}")
        if not lines:
            return ""
        return "Group's recent history:\n" + "\n".join(lines)