from vibebot.events import Event, new_inject_event
from vibebot.llm_router import LLMRouter, pick_by_response
from vibebot.scene import Character


class FixedLLM:
    def __init__(self, resp="", error=None):
        self.resp = resp
        self.error = error
        self.requests = []

    def complete(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.resp

    def embed_text(self, text):
        return []


def mk_char(cid, name, *caps):
    return Character(id=cid, name=name, capabilities=list(caps))


def ids(cs):
    return [c.id for c in cs]


def test_llm_router_picks_from_response():
    cs = [
        mk_char("alpha", "Alpha", "sandwich"),
        mk_char("beta", "Beta", "sandwich"),
        mk_char("gamma", "Gamma", "sandwich"),
    ]
    ev = new_inject_event("s", "x", "sandwich emergency")
    got = LLMRouter(model=FixedLLM(resp="alpha, gamma")).select(ev, None, cs)
    assert ids(got) == ["alpha", "gamma"]


def test_llm_router_falls_back_to_prefilter_on_garbage():
    cs = [mk_char("alpha", "Alpha", "sandwich"), mk_char("beta", "Beta", "sandwich")]
    ev = new_inject_event("s", "x", "sandwich emergency")
    router = LLMRouter(model=FixedLLM(resp="I have no idea who should react."))
    assert ids(router.select(ev, None, cs)) == ["alpha", "beta"]


def test_llm_router_falls_back_on_llm_error():
    cs = [mk_char("a", "A", "x"), mk_char("b", "B", "x")]
    ev = new_inject_event("s", "x", "x event")
    router = LLMRouter(model=FixedLLM(error=RuntimeError("offline")))
    assert ids(router.select(ev, None, cs)) == ["a", "b"]


def test_llm_router_max_consult_cap():
    cs = [mk_char("a", "A", "x"), mk_char("b", "B", "x"), mk_char("c", "C", "x")]
    ev = new_inject_event("s", "x", "x x x")
    router = LLMRouter(model=FixedLLM(resp="a,b,c"), max_consult=2)
    assert len(router.select(ev, None, cs)) == 2


def test_llm_router_single_prefiltered_skips_llm():
    cs = [
        mk_char("only-match", "OnlyMatch", "sandwich"),
        mk_char("unrelated", "Unrelated", "stoic"),
    ]
    ev = new_inject_event("s", "x", "sandwich")
    model = FixedLLM(resp="unrelated")
    got = LLMRouter(model=model).select(ev, None, cs)
    assert ids(got) == ["only-match"]
    assert model.requests == []


def test_llm_router_empty_candidates():
    assert LLMRouter(model=FixedLLM(resp="a")).select(Event(), None, []) == []


def test_llm_router_without_model_returns_prefiltered():
    cs = [mk_char("a", "A", "x"), mk_char("b", "B", "x")]
    assert ids(LLMRouter().select(new_inject_event("s", "", "hello"), None, cs)) == ["a", "b"]


def test_llm_router_prompt_lists_candidates_and_leader():
    a = mk_char("alpha", "Alpha", "sandwich", "snacks")
    a.blurb = "eats things"
    cs = [a, mk_char("beta", "Beta", "sandwich")]
    leader = mk_char("boss", "Boss")
    model = FixedLLM(resp="beta")
    got = LLMRouter(model=model).select(new_inject_event("s", "", "sandwich time"), leader, cs)
    assert ids(got) == ["beta"]
    request = model.requests[0]
    assert request.system.startswith("You are Boss, the leader of a group.")
    assert "- alpha — eats things — sandwich, snacks" in request.messages[0].content
    assert request.messages[0].content.startswith("Situation: sandwich time")
    assert request.max_tokens == 80


def test_pick_by_response_handles_quotes_and_newlines():
    valid = {"alpha": Character(id="alpha"), "beta": Character(id="beta")}
    got = pick_by_response('"alpha"\n\'beta\'', valid)
    assert ids(got) == ["alpha", "beta"]


def test_pick_by_response_dedupes_and_drops_unknown():
    valid = {"alpha": Character(id="alpha"), "beta": Character(id="beta")}
    got = pick_by_response("beta, ghost, `beta`, alpha", valid)
    assert ids(got) == ["beta", "alpha"]