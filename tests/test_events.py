import json

import pytest

from vibebot.events import (
    ACTOR_WORLD,
    Event,
    Kind,
    Source,
    marshal_text,
    new_ambient_event,
    new_inject_event,
    new_nudge_event,
    new_speech_event,
    new_summon_event,
    new_synthesized_event,
    text_of,
)


def test_marshal_text_wire_format():
    assert marshal_text("hi") == b'{"text":"hi"}'


def test_summon_payload_wire_format():
    ev = new_summon_event("place:cathedral", "cathedral")
    assert ev.payload == b'{"text":"","target":"cathedral"}'


@pytest.mark.parametrize("text", ["hello world", "", "unicode ☕ text", 'quote " and \\ slash'])
def test_text_round_trip(text):
    assert text_of(Event(payload=marshal_text(text))) == text


@pytest.mark.parametrize("payload", [b"", b"{not json", b"[1, 2]", b'{"text": 5}', b"null"])
def test_text_of_malformed_or_empty_is_blank(payload):
    assert text_of(Event(payload=payload)) == ""


def test_text_of_ignores_target():
    ev = Event(payload=b'{"text":"spoken","target":"someone"}')
    assert text_of(ev) == "spoken"


def test_inject_event_fields():
    ev = new_inject_event("s1", "stinky-sam", "hello world")
    assert ev.source is Source.IRC
    assert ev.kind is Kind.INJECT
    assert ev.scene_id == "s1"
    assert ev.actor == "stinky-sam"
    assert ev.id == 0
    assert ev.timestamp is None
    assert text_of(ev) == "hello world"


def test_ambient_event_is_attributed_to_world():
    ev = new_ambient_event("s1", "time passes")
    assert ev.source is Source.TICK
    assert ev.kind is Kind.AMBIENT
    assert ev.actor == ACTOR_WORLD
    assert text_of(ev) == "time passes"


def test_synthesized_and_speech_events_are_group_sourced():
    synth = new_synthesized_event("s1", "leader", "we agree")
    speech = new_speech_event("s1", "m1", "I agree")
    assert synth.source is Source.GROUP and speech.source is Source.GROUP
    assert synth.kind is Kind.SYNTHESIZED
    assert speech.kind is Kind.SPEECH
    assert synth.actor == "leader"
    assert speech.actor == "m1"
    assert text_of(synth) == "we agree"
    assert text_of(speech) == "I agree"


def test_nudge_event_targets_character():
    ev = new_nudge_event("scene-1", "m1")
    assert ev.kind is Kind.NUDGE
    assert ev.actor == "m1"
    assert text_of(ev) == ""
    assert json.loads(ev.payload)["target"] == "m1"


def test_event_kind_and_source_compare_as_strings():
    speech = new_speech_event("s1", "m1", "hi")
    inject = new_inject_event("s1", "x", "y")
    assert speech.kind == "speech"
    assert speech.source == "group"
    assert inject.source == "irc"
    assert str(inject.kind) == "inject"