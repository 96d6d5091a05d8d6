"""Pattern learner — distills a finished task into a reusable pattern record."""

import logging

from config.defaults import get_setting
from core.errors import ExternalServiceError, ParseError
from core.parsing import decode_patterns
from core.pattern_store import format_patterns
from core.state import PatternRecord
from utils.template_engine import render_prompt

logger = logging.getLogger(__name__)


def summarize_implementations(implementations):
    if not implementations:
        return "No implementation produced"
    lines = []
    for result in implementations:
        lines.append(
            f"Step {result.step_id} -> {', '.join(result.target_artifacts)}: "
            f"{result.explanation[:300]}"
        )
    return "\n".join(lines)


class PatternLearner:
    """Summarizes an outcome against earlier records and appends a new one.

    Never fails the task: an unparseable summary or an unreachable service
    yields a record with empty pattern lists.
    """

    name = "pattern_learner"

    def __init__(self, llm, pattern_store, history_size=None):
        self.llm = llm
        self.pattern_store = pattern_store
        self.history_size = history_size or get_setting("pattern_k")

    def run(self, task, outcome=None, implementations=(), fixes=None,
            verification=None) -> PatternRecord:
        outcome = outcome or task.status
        summary = summarize_implementations(implementations)
        issues = "None"
        if fixes is not None and fixes.issues:
            issues = "\n".join(f"- [{i.severity}] {i.type}: {i.description}" for i in fixes.issues)
        failures = "None"
        if verification is not None and not verification.success:
            failures = "\n".join(
                f"- {entry.artifact_path}: {f['message']}"
                for entry in verification.per_artifact for f in entry.failures
            )

        prompt = render_prompt("pattern_learner", {
            "request": task.request,
            "outcome": outcome,
            "error": task.error or "None",
            "summary": summary,
            "issues": issues,
            "failures": failures,
            "history": format_patterns(self.pattern_store.recent(self.history_size)),
        })

        try:
            patterns = decode_patterns(self.llm.invoke(prompt))
        except (ParseError, ExternalServiceError) as e:
            logger.warning("Pattern summary unavailable, storing empty record: %s", e)
            patterns = {"success_patterns": [], "anti_patterns": [], "recommendations": []}

        record = PatternRecord(
            request=task.request,
            implementation_summary=summary,
            outcome=outcome,
            extracted_patterns=patterns,
        )
        self.pattern_store.append(record)
        return record
