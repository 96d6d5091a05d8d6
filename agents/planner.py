"""Planner agent — breaks a request into a structured Plan."""

import logging

from core.parsing import decode_plan
from core.state import Plan
from utils.template_engine import render_prompt

logger = logging.getLogger(__name__)


class PlannerAgent:
    """Produces a Plan from a request plus grounding context.

    A response without a valid plan raises PlanParseError; there is no
    retry.
    """

    name = "planner"

    def __init__(self, llm):
        self.llm = llm

    def run(self, request, context="", patterns="") -> Plan:
        prompt = render_prompt("planner", {
            "request": request,
            "context": context or "No relevant context found",
            "patterns": patterns or "No learned patterns yet",
        })
        response = self.llm.invoke(prompt)
        plan = decode_plan(response)
        logger.info(
            "Planned %d step(s) for %r (complexity: %s)",
            len(plan.steps), plan.analysis.feature or request,
            plan.analysis.complexity or "unknown",
        )
        return plan
