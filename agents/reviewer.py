"""Reviewer agent — audits all drafts against the plan and proposes patches."""

import json
import logging

from core.parsing import decode_fix_report
from core.quality import summarize_issues
from core.state import FixReport
from utils.template_engine import render_prompt

logger = logging.getLogger(__name__)


class ReviewerAgent:
    """Reviews generated code for consistency, robustness and plan compliance."""

    name = "reviewer"

    def __init__(self, llm):
        self.llm = llm

    def run(self, results, plan, request) -> FixReport:
        if not results:
            return FixReport()

        prompt = render_prompt("reviewer", {
            "request": request,
            "implementations": json.dumps([r.to_dict() for r in results], indent=2),
            "plan": json.dumps(plan.to_dict(), indent=2),
        })
        response = self.llm.invoke(prompt)
        report = decode_fix_report(response)

        if report.needs_regeneration:
            logger.warning("Review flagged critical issues: %s", summarize_issues(report))
        elif report.issues:
            logger.info("Review found %d issue(s), %d patch(es)",
                        len(report.issues), len(report.patches))
        else:
            logger.info("Review found no issues")
        return report
