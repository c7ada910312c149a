from vibebot.prefilter import pre_filter, tokenize
from vibebot.scene import Character


def mk_char(cid, name, *caps):
    return Character(id=cid, name=name, capabilities=list(caps))


def ids(cs):
    return [c.id for c in cs]


def test_pre_filter_ranks_by_overlap():
    cs = [
        mk_char("cook", "Cook", "cooking"),
        mk_char("snacker", "Snacker", "snacks", "persuasion"),
        mk_char("planner", "Planner", "logistics", "timing"),
    ]
    got = pre_filter("found a suspicious sandwich, who wants snacks?", cs, 0)
    assert got
    assert got[0].id == "snacker"


def test_pre_filter_fallback_when_no_overlap():
    cs = [mk_char("a", "Alpha", "x"), mk_char("b", "Beta", "y")]
    got = pre_filter("completely unrelated text", cs, 0)
    assert ids(got) == ["a", "b"]


def test_pre_filter_respects_top_k():
    cs = [
        mk_char("a", "Alpha", "sandwich"),
        mk_char("b", "Beta", "sandwich"),
        mk_char("c", "Gamma", "sandwich"),
    ]
    got = pre_filter("sandwich emergency", cs, 2)
    assert ids(got) == ["a", "b"]


def test_pre_filter_stem_matches_via_substring():
    cs = [mk_char("p", "Panicker", "panicking"), mk_char("c", "Calm", "stoic")]
    got = pre_filter("a sudden panic erupts", cs, 0)
    assert ids(got) == ["p"]


def test_pre_filter_empty_inputs():
    assert pre_filter("anything", [], 0) == []
    cs = [mk_char("a", "A", "x")]
    assert ids(pre_filter("", cs, 0)) == ["a"]


def test_pre_filter_stable_on_ties():
    cs = [
        mk_char("one", "One", "alpha"),
        mk_char("two", "Two", "alpha", "beta"),
        mk_char("three", "Three", "alpha"),
    ]
    got = pre_filter("alpha beta", cs, 0)
    assert ids(got) == ["two", "one", "three"]


def test_tokenize_drops_short_and_splits():
    assert tokenize("Hi, the SANDWICH-bar is 42 ok 123") == ["the", "sandwich", "bar", "123"]


def test_tokenize_empty():
    assert tokenize("a b c !!") == []