"""Verifier — visual and functional checks against rendered components. Zero LLM calls."""

import logging

from config.defaults import get_setting
from core.state import ArtifactCheck, TestCriteria, VerificationResult
from utils.browser import PlaywrightEngine
from utils.naming import component_name

logger = logging.getLogger(__name__)


class CheckMismatch(Exception):
    """A check step saw different text than the criterion expects."""


def _applies(criterion, name):
    return not criterion.artifact or component_name(criterion.artifact) == name


class Verifier:
    """Runs plan test criteria through an automation engine.

    Each component artifact gets its own session on its preview page.
    Problems with a single criterion become failures on that artifact;
    an engine that cannot open a session raises ExternalServiceError.
    """

    name = "verifier"

    def __init__(self, engine_factory=PlaywrightEngine, preview_base_url=None):
        self.engine_factory = engine_factory
        self.preview_base_url = (preview_base_url or get_setting("preview_base_url")).rstrip("/")

    def preview_url(self, artifact_path):
        return f"{self.preview_base_url}/preview/{component_name(artifact_path)}"

    def run(self, updates, criteria: TestCriteria) -> VerificationResult:
        criteria = criteria or TestCriteria()
        if criteria.is_empty():
            logger.info("Plan has no test criteria; only write results are checked")
        entries = []
        for update in updates:
            if not update.success:
                entries.append(ArtifactCheck(
                    artifact_path=update.artifact_path,
                    failures=[{
                        "type": "artifact",
                        "requirement": "",
                        "message": f"Artifact was not written: {update.error}",
                    }],
                ))
                continue
            if update.type != "component":
                continue
            entries.append(self.verify_artifact(update.artifact_path, criteria))

        result = VerificationResult(per_artifact=entries)
        logger.info("Verification %s: %d artifact(s), %d failure(s)",
                    "passed" if result.success else "failed",
                    len(entries), result.failure_count)
        return result

    def verify_artifact(self, artifact_path, criteria: TestCriteria) -> ArtifactCheck:
        name = component_name(artifact_path)
        entry = ArtifactCheck(artifact_path=artifact_path)
        visual = [c for c in criteria.visual if _applies(c, name)]
        functional = [c for c in criteria.functional if _applies(c, name)]
        if not visual and not functional:
            return entry

        engine = self.engine_factory()
        engine.open_session(self.preview_url(artifact_path))
        try:
            for criterion in visual:
                self._run_visual(engine, criterion, entry)
            for criterion in functional:
                self._run_functional(engine, criterion, entry)
        finally:
            engine.close_session()
        return entry

    def _run_visual(self, engine, criterion, entry):
        label = criterion.requirement or criterion.selector
        try:
            element = engine.find_element(criterion.selector)
            if element is None:
                message = f"Element not found: {criterion.selector}"
            elif not engine.is_visible(element):
                message = f"Element not visible: {criterion.selector}"
            else:
                entry.passed_checks.append(label)
                return
        except Exception as e:
            message = str(e)
        entry.failures.append({"type": "visual", "requirement": label, "message": message})

    def _run_functional(self, engine, criterion, entry):
        label = criterion.requirement or "functional check"
        try:
            for step in criterion.steps:
                if step.action == "click":
                    engine.click(step.selector)
                elif step.action == "type":
                    engine.type(step.selector, step.value)
                elif step.action == "check":
                    observed = (engine.read_text(step.selector) or "").strip()
                    expected = step.expected_value.strip()
                    if observed != expected:
                        raise CheckMismatch(f"Expected {expected!r}, got {observed!r}")
                else:
                    raise ValueError(f"Unknown action: {step.action}")
        except Exception as e:
            entry.failures.append({"type": "functional", "requirement": label, "message": str(e)})
            return
        entry.passed_checks.append(label)
