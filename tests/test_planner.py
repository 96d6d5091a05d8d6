"""Tests for agents.planner."""

import pytest

from agents.planner import PlannerAgent
from conftest import COUNTER_PLAN, FakeLLM
from core.errors import ExternalServiceError, PlanParseError


def test_planner_returns_plan():
    llm = FakeLLM(planner=COUNTER_PLAN)
    plan = PlannerAgent(llm).run("add a counter", "File: components/App.js\n...", "No learned patterns yet")
    assert [s.target_artifacts for s in plan.steps] == [["Counter.js"], ["Counter.css"]]
    assert plan.test_criteria.functional[0].steps[1].expected_value == "1"


def test_planner_prompt_carries_grounding():
    llm = FakeLLM(planner=COUNTER_PLAN)
    PlannerAgent(llm).run("add a counter", "File: components/App.js", "- Request: earlier")
    (_, prompt), = llm.calls
    assert "add a counter" in prompt
    assert "File: components/App.js" in prompt
    assert "- Request: earlier" in prompt


def test_planner_defaults_for_empty_grounding():
    llm = FakeLLM(planner=COUNTER_PLAN)
    PlannerAgent(llm).run("add a counter")
    prompt = llm.calls[0][1]
    assert "No relevant context found" in prompt
    assert "No learned patterns yet" in prompt


def test_planner_non_json_raises():
    llm = FakeLLM(planner="Sure, first build a component, then style it.")
    with pytest.raises(PlanParseError):
        PlannerAgent(llm).run("add a counter")
    assert llm.count("planner") == 1


def test_planner_service_error_propagates():
    llm = FakeLLM(planner=ExternalServiceError("anthropic", "overloaded"))
    with pytest.raises(ExternalServiceError):
        PlannerAgent(llm).run("add a counter")
