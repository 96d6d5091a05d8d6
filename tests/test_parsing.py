"""Tests for core.parsing — decoding model output into typed records."""

import json

import pytest

from core.errors import GenerationParseError, ParseError, PlanParseError, ReviewParseError
from core.parsing import (
    decode_fix_report, decode_generation, decode_patterns, decode_plan,
    extract_delimited, extract_json_object, strip_wrapping_fence,
)


def _plan_json(**overrides):
    data = {
        "analysis": {"feature": "Counter", "complexity": "low", "requirements": ["inc"]},
        "steps": [{"id": 1, "description": "d", "purpose": "p", "targetArtifacts": ["Counter.js"]}],
        "testCriteria": {"visual": [], "functional": []},
    }
    data.update(overrides)
    return json.dumps(data)


# --- extract_json_object ---

def test_json_wrapped_in_prose():
    assert extract_json_object('Sure! {"a": 1} Hope that helps.') == {"a": 1}


def test_json_in_fence():
    assert extract_json_object('```json\n{"a": {"b": 2}}\n```') == {"a": {"b": 2}}


@pytest.mark.parametrize("text,message", [
    ("", "Empty response"),
    ("no braces at all", "No JSON object found"),
    ("{not json}", "Invalid JSON"),
])
def test_json_errors(text, message):
    with pytest.raises(ParseError, match=message):
        extract_json_object(text)


def test_json_error_keeps_raw():
    with pytest.raises(PlanParseError) as exc:
        extract_json_object("plain text", PlanParseError)
    assert exc.value.raw == "plain text"


# --- decode_plan ---

def test_decode_plan_basic():
    plan = decode_plan(_plan_json())
    assert plan.analysis.feature == "Counter"
    assert [s.id for s in plan.steps] == [1]
    assert plan.steps[0].target_artifacts == ["Counter.js"]
    assert plan.test_criteria.is_empty()


def test_decode_plan_rejects_non_json():
    with pytest.raises(PlanParseError):
        decode_plan("I think you should build a counter.")


def test_decode_plan_requires_steps():
    with pytest.raises(PlanParseError, match="missing 'steps'"):
        decode_plan('{"analysis": {}}')
    with pytest.raises(PlanParseError, match="no steps"):
        decode_plan(_plan_json(steps=[]))


def test_decode_plan_step_without_targets():
    with pytest.raises(PlanParseError, match="no targetArtifacts"):
        decode_plan(_plan_json(steps=[{"id": 1, "description": "d"}]))


def test_decode_plan_accepts_files_alias_and_dedupes():
    plan = decode_plan(_plan_json(steps=[{"id": 1, "files": ["A.js", "A.js", "A.css"]}]))
    assert plan.steps[0].target_artifacts == ["A.js", "A.css"]


def test_decode_plan_default_ids():
    plan = decode_plan(_plan_json(steps=[{"targetArtifacts": ["A.js"]},
                                         {"targetArtifacts": ["B.js"]}]))
    assert [s.id for s in plan.steps] == [1, 2]


def test_decode_plan_rejects_duplicate_ids():
    steps = [{"id": 1, "targetArtifacts": ["A.js"]}, {"id": 1, "targetArtifacts": ["B.js"]}]
    with pytest.raises(PlanParseError, match="Duplicate"):
        decode_plan(_plan_json(steps=steps))


def test_decode_plan_rejects_out_of_order_ids():
    steps = [{"id": 2, "targetArtifacts": ["A.js"]}, {"id": 1, "targetArtifacts": ["B.js"]}]
    with pytest.raises(PlanParseError, match="increasing"):
        decode_plan(_plan_json(steps=steps))


def test_decode_plan_criteria():
    criteria = {
        "visual": [{"requirement": "shown", "selector": "#count", "artifact": "Counter.js"},
                   {"requirement": "no selector"}],
        "functional": [{"requirement": "inc", "steps": [
            {"action": "CLICK", "selector": "#inc"},
            {"action": "check", "selector": "#count", "expectedValue": "1"},
        ]}],
    }
    plan = decode_plan(_plan_json(testCriteria=criteria))
    assert len(plan.test_criteria.visual) == 1
    assert plan.test_criteria.visual[0].artifact == "Counter.js"
    steps = plan.test_criteria.functional[0].steps
    assert steps[0].action == "click"
    assert steps[1].expected_value == "1"


def test_decode_plan_unknown_action():
    criteria = {"functional": [{"requirement": "x", "steps": [{"action": "hover", "selector": "a"}]}]}
    with pytest.raises(PlanParseError, match="Unknown interaction action"):
        decode_plan(_plan_json(testCriteria=criteria))


# --- generation ---

def test_extract_delimited():
    assert extract_delimited("a [X] body [Y] b", "[X]", "[Y]") == "body"
    assert extract_delimited("nothing", "[X]", "[Y]") is None


def test_decode_generation():
    text = ("[CODE_START]\n```jsx\nconst A = 1;\n```\n[CODE_END]\n"
            "[EXPLANATION_START]Adds A[EXPLANATION_END]")
    code, explanation = decode_generation(text)
    assert code == "const A = 1;"
    assert explanation == "Adds A"


def test_decode_generation_default_explanation():
    code, explanation = decode_generation("[CODE_START]x()[CODE_END]")
    assert code == "x()"
    assert explanation == "No explanation provided"


def test_decode_generation_missing_markers():
    with pytest.raises(GenerationParseError):
        decode_generation("```js\nconst A = 1;\n```")


def test_decode_generation_empty_code():
    with pytest.raises(GenerationParseError, match="empty"):
        decode_generation("[CODE_START]\n```\n```\n[CODE_END]")


def test_named_fence_is_kept():
    code = "```Counter.css\n.a {}\n```"
    assert strip_wrapping_fence(code) == code


# --- fix reports ---

def test_fix_report_no_issues_ignores_patches():
    text = json.dumps({"issues": [], "patches": [{"targetFiles": ["A.js"], "patchedCode": "x"}]})
    report = decode_fix_report(text)
    assert report.issues == []
    assert report.patches == []
    assert report.needs_regeneration is False


def test_fix_report_with_patches():
    text = json.dumps({
        "issues": [{"type": "validation", "severity": "high", "description": "no guard",
                    "location": {"step": "1", "file": "Counter.js"}}],
        "patches": [{"targetFiles": ["Counter.js"], "patchedCode": "fixed", "description": "guard"}],
    })
    report = decode_fix_report(text)
    assert report.issues[0].step == 1
    assert report.issues[0].artifact == "Counter.js"
    assert report.patches[0].patched_code == "fixed"
    assert not report.needs_regeneration


def test_fix_report_critical_drops_patches():
    text = json.dumps({
        "issues": [{"type": "structure", "severity": "critical", "description": "broken"},
                   {"type": "style", "severity": "low"}],
        "patches": [{"targetFiles": ["Counter.js"], "patchedCode": "fixed"}],
    })
    report = decode_fix_report(text)
    assert report.needs_regeneration
    assert report.patches == []
    assert len(report.issues) == 2


@pytest.mark.parametrize("issue", [
    {"type": "performance", "severity": "low"},
    {"type": "naming", "severity": "urgent"},
])
def test_fix_report_strict_enums(issue):
    with pytest.raises(ReviewParseError):
        decode_fix_report(json.dumps({"issues": [issue]}))


def test_fix_report_patch_needs_code():
    text = json.dumps({"issues": [{"type": "naming", "severity": "low"}],
                       "patches": [{"targetFiles": ["A.js"]}]})
    with pytest.raises(ReviewParseError, match="patchedCode"):
        decode_fix_report(text)


# --- patterns ---

def test_decode_patterns():
    patterns = decode_patterns('{"successPatterns": ["a"], "antiPatterns": "b"}')
    assert patterns == {"success_patterns": ["a"], "anti_patterns": ["b"], "recommendations": []}
