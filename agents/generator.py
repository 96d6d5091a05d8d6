"""Generator agent — produces the code for one plan step."""

import json
import logging
import re

from config.conventions import FRAMEWORK_IMPORT_HEADER, FRAMEWORK_IMPORT_MARKER
from core.artifacts import artifact_type
from core.parsing import decode_generation
from core.state import ImplementationResult, Step
from utils.llm import parse_files
from utils.template_engine import render_prompt

logger = logging.getLogger(__name__)

_BLOCK_RE = re.compile(r"(```(\S+?)(?:[ \t]+(\S+?))?\n)(.*?)```", re.DOTALL)


def ensure_framework_import(code):
    """Prepend the framework import header unless the code already has one."""
    if FRAMEWORK_IMPORT_MARKER in code:
        return code
    return f"{FRAMEWORK_IMPORT_HEADER}\n\n{code}"


def _ensure_header_in_blocks(code):
    """Apply ensure_framework_import to each named component block."""

    def fix(match):
        opening, tag, second, body = match.group(1), match.group(2), match.group(3), match.group(4)
        filename = second if second and "." in second else tag
        if "." not in filename or artifact_type(filename) != "component":
            return match.group(0)
        return f"{opening}{ensure_framework_import(body)}```"

    return _BLOCK_RE.sub(fix, code)


class GeneratorAgent:
    """Turns one Step into an ImplementationResult."""

    name = "generator"

    def __init__(self, llm):
        self.llm = llm

    def run(self, step: Step, request, context="", patterns="") -> ImplementationResult:
        prompt = render_prompt("generator", {
            "request": request,
            "step": json.dumps(step.to_dict(), indent=2),
            "targets": ", ".join(step.target_artifacts),
            "context": context or "No relevant context found",
            "patterns": patterns or "No learned patterns yet",
        })
        response = self.llm.invoke(prompt)
        code, explanation = decode_generation(response)
        code = self.post_process(code, step)

        logger.info("Generated step %s (%d chars) for %s",
                    step.id, len(code), ", ".join(step.target_artifacts))
        return ImplementationResult(
            step_id=step.id,
            code=code,
            explanation=explanation,
            target_artifacts=list(step.target_artifacts),
        )

    def post_process(self, code, step: Step):
        """Deterministic normalization: components always import React."""
        if not any(artifact_type(t) == "component" for t in step.target_artifacts):
            return code
        if parse_files(code):
            return _ensure_header_in_blocks(code)
        return ensure_framework_import(code)
