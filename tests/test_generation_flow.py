"""Tests for the generation flow: success, retry, fallback and caller errors."""

import asyncio
import sys
from pathlib import Path
from typing import List

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from pydantic import BaseModel, Field

from server.services.generation.fallback import StaticFallback
from server.services.generation.flow import FlowState, GeneratedContent, GenerationFlow, InvalidRequestError
from server.services.generation.provider import GenerationError
from server.services.generation.retry import RetryPolicy
from server.services.generation.validate import Violation, validate


class TipsRequest(BaseModel):
    subject: str = Field(..., min_length=1)
    hours: int = Field(default=2, ge=1, le=16)


class TipsResponse(GeneratedContent):
    study_tips: List[str] = Field(..., min_length=1, max_length=3)
    confidence: float = Field(..., ge=0, le=1)


FALLBACK = StaticFallback(TipsResponse, {
    "study_tips": ["Revise a little every day.", "Practice with past papers."],
    "confidence": 0.0,
})

GOOD = {"study_tips": ["a", "b"], "confidence": 0.9}


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class ScriptedGenerator:
    """Plays back results in order: exceptions are raised, anything else returned."""

    def __init__(self, *script):
        self.script = list(script)
        self.requests = []

    async def __call__(self, request):
        self.requests.append(request)
        entry = self.script[min(len(self.requests), len(self.script)) - 1]
        if isinstance(entry, Exception):
            raise entry
        return entry

    @property
    def calls(self):
        return len(self.requests)


def _flow(gen, sleep=None, **kwargs):
    return GenerationFlow(
        "study_tips",
        TipsRequest,
        TipsResponse,
        gen,
        FALLBACK,
        policy=RetryPolicy(max_attempts=3, initial_delay_s=1.0),
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


def test_resolves_on_first_attempt():
    gen = ScriptedGenerator(GOOD)
    sleep = RecordingSleep()
    result = asyncio.run(_flow(gen, sleep).run_detailed({"subject": "Physics"}))
    assert result.state is FlowState.SUCCEEDED
    assert result.response.fallback is False
    assert result.response.study_tips == ["a", "b"]
    assert gen.calls == 1
    assert sleep.delays == []


def test_n_failures_then_success():
    for n in (1, 2):
        gen = ScriptedGenerator(*([RuntimeError("down")] * n), GOOD)
        out = asyncio.run(_flow(gen).run({"subject": "Physics"}))
        assert out.fallback is False
        assert gen.calls == n + 1


def test_two_raises_then_valid_payload():
    gen = ScriptedGenerator(
        GenerationError(kind="unavailable", message="no"),
        GenerationError(kind="timeout", message="slow"),
        GOOD,
    )
    sleep = RecordingSleep()
    result = asyncio.run(_flow(gen, sleep).run_detailed({"subject": "Physics"}))
    assert result.response.model_dump(exclude={"fallback"}) == GOOD
    assert gen.calls == 3
    assert sleep.delays == [1.0, 2.0]
    assert sum(sleep.delays) >= 3.0


def test_always_raising_generator_falls_back():
    gen = ScriptedGenerator(RuntimeError("down"))
    sleep = RecordingSleep()
    result = asyncio.run(_flow(gen, sleep).run_detailed({"subject": "Physics"}))
    assert result.state is FlowState.FALLEN_BACK
    assert result.fallback
    assert result.response.fallback is True
    assert result.response == FALLBACK.synthesize()
    assert validate(result.response, TipsResponse).ok
    assert gen.calls == 3
    assert sleep.delays == [1.0, 2.0]
    assert [a.outcome for a in result.attempts] == ["error", "error", "error"]


def test_always_invalid_output_falls_back():
    gen = ScriptedGenerator({"study_tips": [], "confidence": 3})
    result = asyncio.run(_flow(gen).run_detailed({"subject": "Physics"}))
    assert result.response.fallback is True
    assert gen.calls == 3
    assert [a.outcome for a in result.attempts] == ["invalid", "invalid", "invalid"]


def test_wrongly_typed_output_is_retried_not_accepted():
    gen = ScriptedGenerator({"study_tips": ["a"], "confidence": "0.9"}, GOOD)
    result = asyncio.run(_flow(gen).run_detailed({"subject": "Physics"}))
    assert result.state is FlowState.SUCCEEDED
    assert result.response.confidence == 0.9
    assert gen.calls == 2
    assert [a.outcome for a in result.attempts] == ["invalid", "ok"]


def test_wrongly_typed_output_every_time_falls_back():
    gen = ScriptedGenerator({"study_tips": ["a"], "confidence": "0.9"})
    out = asyncio.run(_flow(gen).run({"subject": "Physics"}))
    assert out.fallback is True
    assert gen.calls == 3


def test_numeric_string_in_request_fails_fast():
    gen = ScriptedGenerator(GOOD)
    with pytest.raises(InvalidRequestError) as exc:
        asyncio.run(_flow(gen).run({"subject": "Math", "hours": "5"}))
    assert gen.calls == 0
    assert [v.path for v in exc.value.violations] == ["hours"]


def test_empty_output_counts_like_error():
    gen = ScriptedGenerator(None, {}, GOOD)
    result = asyncio.run(_flow(gen).run_detailed({"subject": "Physics"}))
    assert result.state is FlowState.SUCCEEDED
    assert gen.calls == 3


def test_fallback_content_is_stable():
    runs = [asyncio.run(_flow(ScriptedGenerator(RuntimeError("x"))).run({"subject": "Math"})) for _ in range(3)]
    assert runs[0] == runs[1] == runs[2]


def test_malformed_request_fails_fast():
    gen = ScriptedGenerator(GOOD)
    with pytest.raises(InvalidRequestError) as exc:
        asyncio.run(_flow(gen).run({"hours": 3}))
    assert gen.calls == 0
    assert [v.path for v in exc.value.violations] == ["subject"]


def test_out_of_range_request_fails_fast():
    gen = ScriptedGenerator(GOOD)
    with pytest.raises(InvalidRequestError):
        asyncio.run(_flow(gen).run({"subject": "Math", "hours": 40}))
    assert gen.calls == 0


def test_generator_receives_validated_request():
    gen = ScriptedGenerator(GOOD)
    asyncio.run(_flow(gen).run({"subject": "Chemistry"}))
    assert isinstance(gen.requests[0], TipsRequest)
    assert gen.requests[0].hours == 2


def test_generator_cannot_claim_fallback():
    gen = ScriptedGenerator({**GOOD, "fallback": True})
    out = asyncio.run(_flow(gen).run({"subject": "Physics"}))
    assert out.fallback is False


def test_output_rule_is_enforced():
    def one_tip_only(request, response):
        if len(response.study_tips) != 1:
            return [Violation("study_tips", "exactly 1 item", len(response.study_tips))]
        return []

    gen = ScriptedGenerator(GOOD, {"study_tips": ["x"], "confidence": 0.5})
    result = asyncio.run(_flow(gen, output_rule=one_tip_only).run_detailed({"subject": "Physics"}))
    assert result.response.study_tips == ["x"]
    assert [a.outcome for a in result.attempts] == ["invalid", "ok"]


def test_without_request_schema_passes_request_through():
    gen = ScriptedGenerator(GOOD)
    flow = GenerationFlow("raw", None, TipsResponse, gen, FALLBACK, sleep=RecordingSleep())
    asyncio.run(flow.run({"anything": 1}))
    assert gen.requests == [{"anything": 1}]


def test_mismatched_fallback_schema_rejected():
    class Other(GeneratedContent):
        x: int = 1

    with pytest.raises(ValueError):
        GenerationFlow("bad", TipsRequest, Other, ScriptedGenerator(GOOD), FALLBACK)


def test_caller_can_annotate_copy():
    flow = _flow(ScriptedGenerator(GOOD))
    out = asyncio.run(flow.run({"subject": "Physics"}))
    shown = out.model_copy(update={"study_tips": out.study_tips + ["General guidance"]})
    assert out.study_tips == ["a", "b"]
    assert shown.study_tips[-1] == "General guidance"


def test_concurrent_invocations_are_independent():
    async def main():
        ok_flow = _flow(ScriptedGenerator(GOOD))
        bad_flow = _flow(ScriptedGenerator(RuntimeError("x")))
        return await asyncio.gather(
            ok_flow.run({"subject": "A"}),
            bad_flow.run({"subject": "B"}),
            ok_flow.run({"subject": "C"}),
        )

    a, b, c = asyncio.run(main())
    assert (a.fallback, b.fallback, c.fallback) == (False, True, False)


def test_cancellation_skips_fallback():
    async def main():
        started = asyncio.Event()

        async def hang(request):
            started.set()
            await asyncio.sleep(10)

        flow = GenerationFlow("hang", TipsRequest, TipsResponse, hang, FALLBACK)
        task = asyncio.create_task(flow.run({"subject": "Physics"}))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(main())
