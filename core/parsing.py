"""Decoders that turn free-text model output into typed pipeline records.

Every decoder either returns a fully validated record or raises a
ParseError subclass. Nothing here calls the model; agents hand the raw
completion text in and get structured data back.
"""

import json
import re

from core.errors import GenerationParseError, ParseError, PlanParseError, ReviewParseError
from core.state import (
    ACTIONS, ISSUE_TYPES, SEVERITIES,
    Analysis, FixReport, FunctionalCriterion, InteractionStep, Issue, Patch,
    Plan, Step, TestCriteria, VisualCriterion,
)

_FENCE_RE = re.compile(r"^```[\w.+-]*[ \t]*\n(.*?)\n?```$", re.DOTALL)


def extract_json_object(text, error_cls=ParseError):
    """Return the dict spanning the first '{' to the last '}' in text.

    Models like to wrap JSON in prose or markdown fences; the outermost
    brace span is taken as the payload.
    """
    if not text:
        raise error_cls("Empty response", raw=text or "")
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise error_cls("No JSON object found in response", raw=text)
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise error_cls(f"Invalid JSON: {e.msg} (line {e.lineno})", raw=text) from None
    if not isinstance(data, dict):
        raise error_cls("Top-level JSON value is not an object", raw=text)
    return data


def _str_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v) for v in value if str(v).strip()]
    return []


def _decode_step(raw, index, text):
    if not isinstance(raw, dict):
        raise PlanParseError(f"Step {index + 1} is not an object", raw=text)
    # Older prompts used "files"; accept either spelling.
    targets = raw.get("targetArtifacts", raw.get("files"))
    targets = _str_list(targets)
    if not targets:
        raise PlanParseError(f"Step {index + 1} has no targetArtifacts", raw=text)

    step_id = raw.get("id", index + 1)
    try:
        step_id = int(step_id)
    except (TypeError, ValueError):
        raise PlanParseError(f"Step {index + 1} has a non-integer id: {step_id!r}", raw=text) from None

    # Sets of paths, order of first mention kept.
    seen = []
    for t in targets:
        if t not in seen:
            seen.append(t)

    return Step(
        id=step_id,
        description=str(raw.get("description", "")),
        purpose=str(raw.get("purpose", "")),
        target_artifacts=seen,
        test_requirements=_str_list(raw.get("testRequirements")),
    )


def _decode_criteria(raw, text):
    if not isinstance(raw, dict):
        return TestCriteria()

    visual = []
    for item in raw.get("visual") or []:
        if isinstance(item, dict) and item.get("selector"):
            visual.append(VisualCriterion(
                requirement=str(item.get("requirement", item.get("description", ""))),
                selector=str(item["selector"]),
                artifact=str(item.get("artifact", "") or ""),
            ))

    functional = []
    for item in raw.get("functional") or []:
        if not isinstance(item, dict):
            continue
        steps = []
        for s in item.get("steps") or []:
            if not isinstance(s, dict):
                continue
            action = str(s.get("action", "")).lower()
            if action not in ACTIONS:
                raise PlanParseError(f"Unknown interaction action: {action!r}", raw=text)
            steps.append(InteractionStep(
                action=action,
                selector=str(s.get("selector", "")),
                value=str(s.get("value", "") or ""),
                expected_value=str(s.get("expectedValue", "") or ""),
            ))
        if steps:
            functional.append(FunctionalCriterion(
                requirement=str(item.get("requirement", item.get("description", ""))),
                steps=steps,
                artifact=str(item.get("artifact", "") or ""),
            ))

    return TestCriteria(visual=visual, functional=functional)


def decode_plan(text):
    """Decode a planner completion into a Plan. Raises PlanParseError."""
    data = extract_json_object(text, PlanParseError)

    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list):
        raise PlanParseError("Plan is missing 'steps'", raw=text)
    if not raw_steps:
        raise PlanParseError("Plan has no steps", raw=text)

    steps = [_decode_step(raw, i, text) for i, raw in enumerate(raw_steps)]
    ids = [s.id for s in steps]
    if len(set(ids)) != len(ids):
        raise PlanParseError(f"Duplicate step ids: {ids}", raw=text)
    if ids != sorted(ids):
        raise PlanParseError(f"Step ids are not in increasing order: {ids}", raw=text)

    raw_analysis = data.get("analysis") or {}
    if not isinstance(raw_analysis, dict):
        raw_analysis = {}
    analysis = Analysis(
        feature=str(raw_analysis.get("feature", "")),
        complexity=str(raw_analysis.get("complexity", "")),
        requirements=_str_list(raw_analysis.get("requirements")),
    )

    return Plan(
        analysis=analysis,
        steps=steps,
        test_criteria=_decode_criteria(data.get("testCriteria"), text),
    )


def extract_delimited(text, start, end):
    """Return the stripped text between start and end markers, or None."""
    pattern = re.compile(re.escape(start) + r"(.*?)" + re.escape(end), re.DOTALL)
    match = pattern.search(text or "")
    if not match:
        return None
    return match.group(1).strip()


def strip_wrapping_fence(code):
    """Remove a single markdown fence wrapping the whole block, if any.

    A fence tagged with a filename (```Counter.css) is left alone so
    multi-file output can still be split by target.
    """
    match = _FENCE_RE.match(code.strip())
    if not match:
        return code
    tag = code.strip().split("\n", 1)[0][3:].strip()
    if "." in tag:
        return code
    return match.group(1).strip()


def decode_generation(text):
    """Decode a generator completion into (code, explanation)."""
    code = extract_delimited(text, "[CODE_START]", "[CODE_END]")
    if code is None:
        raise GenerationParseError("No [CODE_START]/[CODE_END] region in response", raw=text or "")
    code = strip_wrapping_fence(code)
    if not code.strip():
        raise GenerationParseError("Code region is empty", raw=text)

    explanation = extract_delimited(text, "[EXPLANATION_START]", "[EXPLANATION_END]")
    return code, explanation or "No explanation provided"


def decode_fix_report(text):
    """Decode a reviewer completion into a FixReport. Raises ReviewParseError.

    Critical issues override every patch in the same pass; with no issues
    at all, patches are ignored too.
    """
    data = extract_json_object(text, ReviewParseError)

    raw_issues = data.get("issues", [])
    if not isinstance(raw_issues, list):
        raise ReviewParseError("'issues' is not a list", raw=text)

    issues = []
    for raw in raw_issues:
        if not isinstance(raw, dict):
            raise ReviewParseError("Issue entry is not an object", raw=text)
        issue_type = str(raw.get("type", "")).lower()
        severity = str(raw.get("severity", "")).lower()
        if issue_type not in ISSUE_TYPES:
            raise ReviewParseError(f"Unknown issue type: {issue_type!r}", raw=text)
        if severity not in SEVERITIES:
            raise ReviewParseError(f"Unknown issue severity: {severity!r}", raw=text)
        location = raw.get("location") or {}
        if not isinstance(location, dict):
            location = {}
        step = location.get("step")
        try:
            step = int(step) if step is not None else None
        except (TypeError, ValueError):
            step = None
        issues.append(Issue(
            type=issue_type,
            severity=severity,
            description=str(raw.get("description", "")),
            step=step,
            artifact=location.get("artifact") or location.get("file"),
        ))

    if not issues:
        return FixReport()

    needs_regeneration = any(i.severity == "critical" for i in issues)
    if needs_regeneration:
        return FixReport(issues=issues, patches=[], needs_regeneration=True)

    raw_patches = data.get("patches", data.get("fixes", []))
    if not isinstance(raw_patches, list):
        raise ReviewParseError("'patches' is not a list", raw=text)

    patches = []
    for raw in raw_patches:
        if not isinstance(raw, dict):
            raise ReviewParseError("Patch entry is not an object", raw=text)
        targets = _str_list(raw.get("targetFiles", raw.get("files")))
        code = raw.get("patchedCode", raw.get("code", ""))
        if not targets or not isinstance(code, str) or not code.strip():
            raise ReviewParseError("Patch needs targetFiles and patchedCode", raw=text)
        patches.append(Patch(
            target_files=targets,
            patched_code=code,
            description=str(raw.get("description", "")),
        ))

    return FixReport(issues=issues, patches=patches, needs_regeneration=False)


def decode_patterns(text):
    """Decode a pattern summary. Raises ParseError."""
    data = extract_json_object(text, ParseError)
    return {
        "success_patterns": _str_list(data.get("successPatterns")),
        "anti_patterns": _str_list(data.get("antiPatterns")),
        "recommendations": _str_list(data.get("recommendations")),
    }
