"""Tests for core/fallback.py."""

from __future__ import annotations

import pytest

from cadre.core import prompts
from cadre.core.errors import UpstreamError
from cadre.core.fallback import (
    FallbackLatch,
    RoutingFallback,
    TriageRoute,
    classify_triage,
    select_route,
)
from cadre.models.tutor import TutorRunFailure, TutorRunResult


class TestClassifyTriage:
    @pytest.mark.parametrize("text, route", [
        ("What year did World War II end?", TriageRoute.HISTORY),
        ("Solve for x: 2x + 4 = 10", TriageRoute.MATH),
        ("Tell me a joke", TriageRoute.GENERAL),
        ("Which king wrote an equation?", TriageRoute.GENERAL),
        ("CALCULATE the integral", TriageRoute.MATH),
    ])
    def test_routes(self, text, route):
        assert classify_triage(text) == route

    def test_keywords_match_whole_words_only(self):
        assert classify_triage("Whenever I dream") == TriageRoute.GENERAL


class TestSelectRoute:
    def test_direct_types(self):
        assert select_route("history", "anything") == ("History Tutor", prompts.FALLBACK_HISTORY, [])
        assert select_route("math", "anything").agent_name == "Math Tutor"

    def test_triage_records_handoff(self):
        route = select_route("triage", "What year did World War II end?")
        assert route.agent_name == "History Tutor (via Triage)"
        assert route.handoffs == ["History Tutor (via Triage)"]
        assert route.system_prompt == prompts.TRIAGED_HISTORY

    def test_triage_general(self):
        route = select_route("triage", "Tell me a joke")
        assert route.agent_name == "General Assistant (via Triage)"

    def test_unknown_type_is_generic(self):
        route = select_route("custom-3", "hello")
        assert route.agent_name == "Custom Agent"
        assert route.system_prompt == prompts.GENERIC_ASSISTANT
        assert route.handoffs == []


class TestFallbackLatch:
    def test_trip_once(self):
        latch = FallbackLatch()
        assert not latch.is_set
        assert latch.trip("first") is True
        assert latch.trip("second") is False
        assert latch.is_set
        assert latch.reason == "first"

    def test_reset(self):
        latch = FallbackLatch()
        latch.trip("x")
        latch.reset()
        assert not latch.is_set
        assert latch.reason is None


class TestRoutingFallback:
    @pytest.mark.asyncio
    async def test_single_completion(self, make_client):
        client = make_client(["2x = 6, so x = 3."])
        fallback = RoutingFallback(client, {"temperature": 0.5, "max_tokens": 200, "model": "small"})

        outcome = await fallback.run("triage", "Solve for x: 2x + 4 = 10")

        assert isinstance(outcome, TutorRunResult)
        assert outcome.output == "2x = 6, so x = 3."
        assert outcome.final_agent == "Math Tutor (via Triage)"
        assert outcome.handoffs == ["Math Tutor (via Triage)"]
        assert outcome.tools_used == []

        assert len(client.calls) == 1
        messages, options = client.calls[0]
        assert messages[0].content == prompts.TRIAGED_MATH
        assert messages[1].content == "Solve for x: 2x + 4 = 10"
        assert (options.model, options.temperature, options.max_output_tokens) == ("small", 0.5, 200)

    @pytest.mark.asyncio
    async def test_completion_failure(self, make_client):
        fallback = RoutingFallback(make_client(error=UpstreamError("quota exceeded")))
        outcome = await fallback.run("history", "Who was Caesar?")
        assert isinstance(outcome, TutorRunFailure)
        assert outcome.error == "Fallback agent failed: quota exceeded"
