# vibebot

Building blocks for a multi-character roleplay bot: an append-only event
log, per-character episodic memory, and scenes in which a leader gathers
the reactions of the other members and sums them up.

## Installing

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `vibebot.events`: the `Event` record, the `Source` and `Kind` enums, the
  `Filter` used for queries, and the constructors `new_inject_event`,
  `new_ambient_event`, `new_speech_event`, `new_synthesized_event`,
  `new_summon_event` and `new_nudge_event`. `marshal_text` encodes a text
  payload and `text_of` reads it back (an empty string for a missing or
  malformed payload).
- `vibebot.sqlite_store`: `open_sqlite(path)` returns a `SQLiteStore` with
  `append`, `query`, `lookup_by_ids` and `close`; it also works as a
  context manager. `query` filters by time, scene, actor and kind and
  returns events in timestamp order. `SQLiteVectorStore(store)` keeps each
  character's embeddings in the same database, with `save` and `load`
  (newest first). Pass `":memory:"` as the path for a throwaway store.
- `vibebot.vector_codec`: `vec_to_blob` and `blob_to_vec` pack float32
  vectors as little-endian bytes; `blob_to_vec` raises `ValueError` on a
  length mismatch.
- `vibebot.protocols`: the interfaces the rest of the package builds on:
  `LanguageModel` (`complete` and `embed_text`), `MemoryStore`,
  `VectorStore` and `EventLookup`, plus `Role`, `Message`,
  `CompleteRequest` and `EmbeddingRow`.
- `vibebot.inmem`: `InMemMemory`, thread-safe memory that keeps only the
  most recent events and ignores retrieval queries.
- `vibebot.embedded`: `EmbeddedMemory` embeds each recorded event and
  ranks retrieval by `cosine` similarity plus a recency bonus that decays
  exponentially (`set_recency_params` changes its weight and time
  constant). Given a `persister`, it saves embeddings to a `VectorStore`
  and `hydrate` loads them back. `record` raises `RecordError` when
  embedding or saving failed, but keeps the event either way.
- `vibebot.place`: the `Place` record.
- `vibebot.scene`: `Character`, `Perception`, `Scene`, `Utterance`,
  `OrchestrationResult`, the `Router` protocol and `AllRouter`.
  `Scene.orchestrate` puts each event on every member's inbox queue,
  waits for replies from the chosen members, and has the leader sum them
  up; a failed summing-up raises `SynthesisError`, which carries the
  utterances already collected. `broadcast_for_memory` hands an event to
  every member without asking for a reply.
- `vibebot.prefilter`: `pre_filter` ranks candidates by how many words of
  the event text match their name and capability tags; `tokenize` does
  the splitting.
- `vibebot.llm_router`: `LLMRouter` runs the prefilter and then has the
  model pick which members react; when the call fails or no known id can
  be read from the answer, the prefiltered set is used. `pick_by_response`
  reads ids out of such an answer.

## Example

```python
from vibebot.events import Filter, new_inject_event, text_of
from vibebot.sqlite_store import open_sqlite

with open_sqlite(":memory:") as store:
    event = new_inject_event("scene-1", "stinky-sam", "found a suspicious sandwich")
    store.append(event)
    for stored in store.query(Filter()):
        print(stored.id, stored.kind, text_of(stored))
```

## What is not included

The package is a library. It has no command to run, no chat connection,
no world loop that ticks or dispatches commands between scenes, and no
client for any language-model service. `EmbeddedMemory`, `LLMRouter` and
`Scene.synthesize` need an object you provide that satisfies
`vibebot.protocols.LanguageModel`, and the members of a `Scene` need
something that reads their inbox queues and answers on the reply queue.