import asyncio
import threading
import time

import pytest

from conftest import CountingProbe
from vistaguide.core.errors import InferenceUnavailableError
from vistaguide.llm.local import LocalModelRunner
from vistaguide.llm.router import HybridInferenceRouter, background_for, is_acknowledgment
from vistaguide.models.domain import AnswerSource
from vistaguide.services.connectivity import ConnectivityProbe


class FakeBridge:
    def __init__(self, reply="", loads=True, fail=False):
        self.reply = reply
        self.loads = loads
        self.fail = fail
        self.loaded = False
        self.prompts = []

    def initialize(self, model_path=None):
        self.loaded = self.loads
        return self.loads

    def is_loaded(self):
        return self.loaded

    def generate(self, prompt, max_tokens):
        self.prompts.append(prompt)
        if self.fail:
            raise InferenceUnavailableError("model crashed")
        return self.reply


class FakeRemoteModel:
    def __init__(self, reply="", fail=False):
        self.reply = reply
        self.fail = fail
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if self.fail:
            raise ConnectionError("gemini unreachable")
        return self.reply


def make_router(online=True, bridge=None, remote=None):
    counting = CountingProbe(online=online)
    probe = ConnectivityProbe(probe=counting)
    router = HybridInferenceRouter(probe, LocalModelRunner(bridge), remote=remote)
    return router, counting


@pytest.mark.parametrize("text", ["ok", "Thanks!", "thank you so much", "got it", "Cool, nice"])
def test_acknowledgments(text):
    assert is_acknowledgment(text)


@pytest.mark.parametrize(
    "text", ["ok, where is the nearest parking lot?", "Is it okay to take photos?", "book a guide"]
)
def test_questions_are_not_acknowledgments(text):
    assert not is_acknowledgment(text)


@pytest.mark.asyncio
async def test_acknowledgment_short_circuits(taj_mahal):
    bridge = FakeBridge(reply="should not be used")
    remote = FakeRemoteModel(reply="should not be used")
    router, counting = make_router(bridge=bridge, remote=remote)

    answer = await router.answer("thanks", taj_mahal)

    assert answer.source is AnswerSource.canned
    assert counting.calls == 0
    assert bridge.prompts == [] and remote.prompts == []


@pytest.mark.asyncio
async def test_online_uses_remote_with_full_context(taj_mahal):
    remote = FakeRemoteModel(reply="  It took about 22 years.\x00 ")
    router, _ = make_router(online=True, bridge=FakeBridge(), remote=remote)

    answer = await router.answer("How long did it take to build?", taj_mahal)

    assert answer.source is AnswerSource.remote
    assert answer.text == "It took about 22 years."
    assert "Taj Mahotsav festival" in remote.prompts[0]
    assert "How long did it take to build?" in remote.prompts[0]


@pytest.mark.asyncio
async def test_remote_failure_falls_back_to_local(taj_mahal):
    bridge = FakeBridge(reply="**Answer:** It was built in 1632.")
    router, _ = make_router(online=True, bridge=bridge, remote=FakeRemoteModel(fail=True))

    answer = await router.answer("When was it built?", taj_mahal)

    assert answer.source is AnswerSource.local
    assert answer.text == "It was built in 1632."
    assert answer.category == "history"


@pytest.mark.asyncio
async def test_offline_festival_question_uses_only_festival_context(taj_mahal):
    bridge = FakeBridge(reply="The Taj Mahotsav runs every February.")
    router, _ = make_router(online=False, bridge=bridge, remote=FakeRemoteModel(reply="x"))

    answer = await router.answer("Is there a festival here?", taj_mahal)

    assert answer.category == "festivals"
    assert "Taj Mahotsav festival" in answer.context
    assert "Parking" not in answer.context
    assert "Parking" not in bridge.prompts[0]
    assert answer.text == "The Taj Mahotsav runs every February."


@pytest.mark.asyncio
async def test_local_failure_returns_extracted_context(taj_mahal):
    router, _ = make_router(online=False, bridge=FakeBridge(fail=True))

    answer = await router.answer("Is there a festival here?", taj_mahal)

    assert answer.source is AnswerSource.context
    assert answer.text == "The Taj Mahotsav festival is celebrated every February near the monument."


@pytest.mark.asyncio
async def test_no_model_and_no_context_gives_fixed_reply(taj_mahal):
    router, _ = make_router(online=False, bridge=FakeBridge(loads=False))

    answer = await router.answer("Is there a swimming pool?", taj_mahal)

    assert answer.source is AnswerSource.fallback
    assert "offline mode" in answer.text
    assert "Taj Mahal" in answer.text


@pytest.mark.asyncio
async def test_not_sure_prompt_when_nothing_relevant(taj_mahal):
    bridge = FakeBridge(reply="I'm not sure about that, sorry.")
    router, _ = make_router(online=False, bridge=bridge)

    answer = await router.answer("Is there a swimming pool?", taj_mahal)

    assert "You don't have specific information" in bridge.prompts[0]
    assert answer.source is AnswerSource.local


def test_background_includes_history_and_facts(taj_mahal):
    background = background_for(taj_mahal)
    assert "built by emperor Shah Jahan in 1632." in background
    assert "Made of white marble." in background


class SlowBridge(FakeBridge):
    """Loaded from the start; the first `slow_calls` generations take `delay` seconds."""

    def __init__(self, reply="Fine.", delay=0.5, slow_calls=1):
        super().__init__(reply=reply)
        self.loaded = True
        self.delay = delay
        self.slow_calls = slow_calls
        self.active = 0
        self.max_active = 0
        self._counter = threading.Lock()

    def generate(self, prompt, max_tokens):
        with self._counter:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            slow = len(self.prompts) < self.slow_calls
        try:
            time.sleep(self.delay if slow else 0.01)
            return super().generate(prompt, max_tokens)
        finally:
            with self._counter:
                self.active -= 1


@pytest.mark.asyncio
async def test_local_timeout_answers_from_context(taj_mahal):
    bridge = SlowBridge(reply="too late", delay=0.3)
    probe = ConnectivityProbe(probe=CountingProbe(online=False))
    router = HybridInferenceRouter(probe, LocalModelRunner(bridge, timeout=0.05))

    answer = await router.answer("Is there a festival here?", taj_mahal)

    assert answer.source is AnswerSource.context
    assert "Taj Mahotsav" in answer.text


@pytest.mark.asyncio
async def test_overlapping_generations_run_one_at_a_time():
    bridge = SlowBridge(delay=0.05, slow_calls=3)
    runner = LocalModelRunner(bridge, timeout=2.0)

    replies = await asyncio.gather(*(runner.generate(f"q{i}") for i in range(3)))

    assert replies == ["Fine.", "Fine.", "Fine."]
    assert bridge.max_active == 1


@pytest.mark.asyncio
async def test_timed_out_call_does_not_disable_local_model():
    bridge = SlowBridge(delay=0.5)
    runner = LocalModelRunner(bridge, timeout=0.1)

    with pytest.raises(InferenceUnavailableError):
        await runner.generate("first")
    # queued behind the slow call, so this one times out as well
    with pytest.raises(InferenceUnavailableError):
        await runner.generate("second")

    await asyncio.sleep(0.7)
    assert runner.available
    assert await runner.generate("third") == "Fine."


@pytest.mark.asyncio
async def test_initialize_error_disables_local_model():
    class BrokenBridge(FakeBridge):
        def initialize(self, model_path=None):
            raise OSError("model file missing")

    bridge = BrokenBridge(reply="unused")
    runner = LocalModelRunner(bridge)

    with pytest.raises(InferenceUnavailableError):
        await runner.generate("hello")
    assert not runner.available
    assert bridge.prompts == []


@pytest.mark.asyncio
async def test_slow_initialize_is_retried():
    class SlowStart(FakeBridge):
        def __init__(self):
            super().__init__(reply="Ready now.")
            self.attempts = 0

        def initialize(self, model_path=None):
            self.attempts += 1
            time.sleep(0.3 if self.attempts == 1 else 0)
            return super().initialize(model_path)

    bridge = SlowStart()
    runner = LocalModelRunner(bridge, timeout=0.1)

    assert await runner.ensure_ready() is False
    assert runner.available

    await asyncio.sleep(0.4)
    assert await runner.generate("hello") == "Ready now."
