"""Interfaces shared between memory, storage and language-model code."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol, runtime_checkable

from vibebot.events import Event

__all__ = [
    "CompleteRequest",
    "EmbeddingRow",
    "EventLookup",
    "LanguageModel",
    "MemoryStore",
    "Message",
    "Role",
    "VectorStore",
]


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    role: Role
    content: str


@dataclass
class CompleteRequest:
    """A chat completion request."""

    system: str = ""
    messages: list[Message] = field(default_factory=list)
    max_tokens: int = 0
    temperature: float = 0.0


@runtime_checkable
class LanguageModel(Protocol):
    """A model that completes chat requests and embeds text."""

    def complete(self, request: CompleteRequest) -> str: ...

    def embed_text(self, text: str) -> list[float]: ...


@runtime_checkable
class MemoryStore(Protocol):
    """Per-character episodic memory.

    ``record`` may raise when an embedding-backed store fails; callers decide
    whether to log and continue.
    """

    def record(self, event: Event) -> None: ...

    def retrieve(self, query: str, k: int) -> list[Event]: ...

    def summary(self) -> str: ...


@dataclass
class EmbeddingRow:
    """One persisted embedding, keyed by owner, event and model."""

    owner: str
    model_id: str
    event_id: int
    embedding: list[float]
    recorded: datetime


@runtime_checkable
class VectorStore(Protocol):
    """Persists per-character embeddings keyed by event id."""

    def save(self, row: EmbeddingRow) -> None: ...

    def load(self, owner: str, model_id: str, limit: int) -> list[EmbeddingRow]: ...


@runtime_checkable
class EventLookup(Protocol):
    """Resolves event ids to events."""

    def lookup_by_ids(self, ids: Sequence[int]) -> list[Event]: ...