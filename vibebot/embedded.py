"""Character memory ranked by embedding similarity plus a recency bonus."""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from vibebot.events import Event, text_of
from vibebot.protocols import EmbeddingRow, EventLookup, LanguageModel, VectorStore

__all__ = [
    "DEFAULT_LAMBDA",
    "DEFAULT_TAU",
    "EmbeddedMemory",
    "RecordError",
    "cosine",
]

logger = logging.getLogger(__name__)

# score = similarity + lambda * exp(-age / tau)
DEFAULT_LAMBDA = 0.3
DEFAULT_TAU = timedelta(hours=1)


class RecordError(Exception):
    """Raised by :meth:`EmbeddedMemory.record` when embedding or persisting failed.

    The event is kept in memory regardless; the failures are available as
    ``embed_error`` and ``save_error``.
    """

    def __init__(
        self,
        embed_error: BaseException | None = None,
        save_error: BaseException | None = None,
    ) -> None:
        parts = []
        if embed_error is not None:
            parts.append(f"embed: {embed_error}")
        if save_error is not None:
            parts.append(f"persist: {save_error}")
        super().__init__("\n".join(parts))
        self.embed_error = embed_error
        self.save_error = save_error


@dataclass
class _MemoryEntry:
    event: Event
    embedding: list[float] | None
    recorded: datetime


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def cosine(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Cosine similarity; 0 for mismatched lengths, empty or zero-magnitude vectors."""
    a = a or []
    b = b or []
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(float(x) * float(y) for x, y in zip(a, b))
    na = sum(float(x) * float(x) for x in a)
    nb = sum(float(y) * float(y) for y in b)
    if na == 0 or nb == 0:
        return 0.0
    return dot / (math.sqrt(na) * math.sqrt(nb))


class EmbeddedMemory:
    """Embeds each recorded event; retrieval ranks by similarity and recency.

    Safe for concurrent use. With a persister, every embedded event that has
    an id is also saved, and :meth:`hydrate` restores saved entries.
    """

    def __init__(
        self,
        model: LanguageModel,
        cap: int = 0,
        *,
        persister: VectorStore | None = None,
        owner: str = "",
        model_id: str = "",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """``cap`` <= 0 disables the size bound."""
        self._model = model
        self._cap = cap
        self._lambda = DEFAULT_LAMBDA
        self._tau = DEFAULT_TAU
        self._clock = clock or _utc_now
        self._lock = threading.RLock()
        self._entries: list[_MemoryEntry] = []
        self._persister = persister
        self._owner = owner
        self._model_id = model_id

    def set_recency_params(self, lambda_: float, tau: timedelta) -> None:
        """Override the recency weight and time constant; call before recording."""
        self._lambda = lambda_
        self._tau = tau

    def _now(self) -> datetime:
        return _as_aware(self._clock())

    def _timestamp(self, event: Event) -> datetime:
        if event.timestamp is not None:
            return _as_aware(event.timestamp)
        return self._now()

    def record(self, event: Event) -> None:
        """Embed and keep the event; persist it when a persister is configured.

        The event is always kept in memory. Raises :class:`RecordError` when
        embedding or saving failed; callers should not retry.
        """
        entry = _MemoryEntry(event=event, embedding=None, recorded=self._timestamp(event))
        text = text_of(event)

        embed_error: BaseException | None = None
        if text.strip():
            try:
                entry.embedding = list(self._model.embed_text(text))
            except Exception as exc:
                embed_error = exc

        with self._lock:
            self._entries.append(entry)
            if self._cap > 0 and len(self._entries) > self._cap:
                del self._entries[: len(self._entries) - self._cap]

        save_error: BaseException | None = None
        if self._persister is not None and entry.embedding:
            if event.id == 0:
                logger.debug(
                    "memory: skipping save for event with zero id: character=%s", self._owner
                )
            else:
                try:
                    self._persister.save(
                        EmbeddingRow(
                            owner=self._owner,
                            model_id=self._model_id,
                            event_id=event.id,
                            embedding=entry.embedding,
                            recorded=entry.recorded,
                        )
                    )
                except Exception as exc:
                    logger.warning(
                        "memory: persister save failed: character=%s event_id=%s err=%s",
                        self._owner,
                        event.id,
                        exc,
                    )
                    save_error = exc

        if embed_error is not None or save_error is not None:
            raise RecordError(embed_error, save_error) from (embed_error or save_error)

    def retrieve(self, query: str, k: int) -> list[Event]:
        """Up to ``k`` events ranked by similarity plus recency.

        With a blank query, no embeddings, or a failing query embedding, the
        result is the most recent ``k`` events, oldest first.
        """
        if k <= 0:
            return []
        snap = self._snapshot()
        if not snap:
            return []
        if not query.strip() or not any(e.embedding for e in snap):
            return _recency_tail(snap, k)

        try:
            qvec = self._model.embed_text(query)
        except Exception as exc:
            logger.warning("memory retrieve embed failed; falling back to recency: %s", exc)
            return _recency_tail(snap, k)

        now = self._now()
        tau_seconds = self._tau.total_seconds()
        scored: list[tuple[float, Event]] = []
        for entry in snap:
            if not entry.embedding:
                continue
            similarity = cosine(qvec, entry.embedding)
            age = (now - entry.recorded).total_seconds()
            recency = math.exp(-age / tau_seconds) if tau_seconds > 0 else 0.0
            scored.append((similarity + self._lambda * recency, entry.event))
        if not scored:
            return _recency_tail(snap, k)
        scored.sort(key=lambda item: item[0], reverse=True)
        return [event for _, event in scored[:k]]

    def summary(self) -> str:
        """Render every recorded event as one line each."""
        return "".join(
            f"- {e.event.actor}/{e.event.kind!s}: {text_of(e.event)}\n"
            for e in self._snapshot()
        )

    def hydrate(self, events: EventLookup) -> None:
        """Replace the in-memory entries with those persisted for this character.

        Entries end up oldest first; rows whose event cannot be found are
        skipped. Does nothing without a persister. Errors from loading or
        looking up events propagate.
        """
        if self._persister is None:
            return
        rows = self._persister.load(self._owner, self._model_id, self._cap)
        if not rows:
            with self._lock:
                self._entries = []
            return
        by_id = {ev.id: ev for ev in events.lookup_by_ids([r.event_id for r in rows])}

        entries: list[_MemoryEntry] = []
        for row in reversed(rows):
            event = by_id.get(row.event_id)
            if event is None:
                logger.warning(
                    "hydrate: vector row references missing event: character=%s event_id=%s",
                    self._owner,
                    row.event_id,
                )
                continue
            entries.append(
                _MemoryEntry(
                    event=event,
                    embedding=list(row.embedding),
                    recorded=_as_aware(row.recorded),
                )
            )
        with self._lock:
            self._entries = entries

    def _snapshot(self) -> list[_MemoryEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _recency_tail(entries: list[_MemoryEntry], k: int) -> list[Event]:
    k = min(k, len(entries))
    return [e.event for e in entries[len(entries) - k :]]