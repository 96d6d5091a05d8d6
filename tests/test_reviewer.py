"""Tests for agents.reviewer."""

import json

import pytest

from agents.reviewer import ReviewerAgent
from conftest import NO_ISSUES, FakeLLM
from core.errors import ReviewParseError
from core.state import Analysis, ImplementationResult, Plan, Step


def _plan():
    return Plan(analysis=Analysis(feature="Counter"),
                steps=[Step(id=1, description="c", purpose="p", target_artifacts=["Counter.js"])])


def _results():
    return [ImplementationResult(step_id=1, code="const Counter = 1;", explanation="e",
                                 target_artifacts=["Counter.js"])]


def test_no_results_skips_call():
    llm = FakeLLM()
    report = ReviewerAgent(llm).run([], _plan(), "add a counter")
    assert report.issues == []
    assert llm.calls == []


def test_clean_review():
    llm = FakeLLM(reviewer=NO_ISSUES)
    report = ReviewerAgent(llm).run(_results(), _plan(), "add a counter")
    assert report.issues == [] and report.patches == []
    prompt = llm.calls[0][1]
    assert "const Counter = 1;" in prompt
    assert '"targetArtifacts"' in prompt


def test_critical_review_requests_regeneration():
    llm = FakeLLM(reviewer=json.dumps({
        "issues": [{"type": "integration", "severity": "critical", "description": "wrong export"}],
        "patches": [{"targetFiles": ["Counter.js"], "patchedCode": "x"}],
    }))
    report = ReviewerAgent(llm).run(_results(), _plan(), "add a counter")
    assert report.needs_regeneration
    assert report.patches == []


def test_malformed_review_raises():
    llm = FakeLLM(reviewer="Looks good to me!")
    with pytest.raises(ReviewParseError):
        ReviewerAgent(llm).run(_results(), _plan(), "add a counter")
