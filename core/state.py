"""Pipeline state models shared across all stages."""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field

from core.errors import InvalidTransition

ISSUE_TYPES = (
    "naming", "validation", "error_handling", "structure",
    "documentation", "integration", "style",
)
SEVERITIES = ("low", "medium", "high", "critical")
ACTIONS = ("click", "type", "check")

PENDING = "pending"
IN_PROGRESS = "in_progress"
NEEDS_REVISION = "needs_revision"
COMPLETED = "completed"
FAILED = "failed"

TERMINAL_STATUSES = (COMPLETED, NEEDS_REVISION, FAILED)

_ALLOWED_TRANSITIONS = {
    PENDING: (IN_PROGRESS,),
    IN_PROGRESS: TERMINAL_STATUSES,
}


@dataclass
class Step:
    id: int
    description: str
    purpose: str
    target_artifacts: list[str]
    test_requirements: list[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "id": self.id,
            "description": self.description,
            "purpose": self.purpose,
            "targetArtifacts": list(self.target_artifacts),
            "testRequirements": list(self.test_requirements),
        }


@dataclass
class Analysis:
    feature: str = ""
    complexity: str = ""
    requirements: list[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "feature": self.feature,
            "complexity": self.complexity,
            "requirements": list(self.requirements),
        }


@dataclass
class InteractionStep:
    action: str             # "click", "type", "check"
    selector: str
    value: str = ""         # text to type
    expected_value: str = ""  # text a check expects

    def to_dict(self):
        return {
            "action": self.action,
            "selector": self.selector,
            "value": self.value,
            "expectedValue": self.expected_value,
        }


@dataclass
class VisualCriterion:
    requirement: str
    selector: str
    artifact: str = ""      # component it applies to; empty means every component

    def to_dict(self):
        return {
            "requirement": self.requirement,
            "selector": self.selector,
            "artifact": self.artifact,
        }


@dataclass
class FunctionalCriterion:
    requirement: str
    steps: list[InteractionStep]
    artifact: str = ""

    def to_dict(self):
        return {
            "requirement": self.requirement,
            "steps": [s.to_dict() for s in self.steps],
            "artifact": self.artifact,
        }


@dataclass
class TestCriteria:
    visual: list[VisualCriterion] = field(default_factory=list)
    functional: list[FunctionalCriterion] = field(default_factory=list)

    __test__ = False  # not a pytest class

    def is_empty(self):
        return not self.visual and not self.functional

    def to_dict(self):
        return {
            "visual": [c.to_dict() for c in self.visual],
            "functional": [c.to_dict() for c in self.functional],
        }


@dataclass
class Plan:
    analysis: Analysis
    steps: list[Step]
    test_criteria: TestCriteria = field(default_factory=TestCriteria)

    def step(self, step_id):
        for s in self.steps:
            if s.id == step_id:
                return s
        raise KeyError(f"No step with id {step_id}")

    def to_dict(self):
        return {
            "analysis": self.analysis.to_dict(),
            "steps": [s.to_dict() for s in self.steps],
            "testCriteria": self.test_criteria.to_dict(),
        }


@dataclass
class ImplementationResult:
    step_id: int
    code: str
    explanation: str
    target_artifacts: list[str]

    def to_dict(self):
        return {
            "stepId": self.step_id,
            "code": self.code,
            "explanation": self.explanation,
            "targetArtifacts": list(self.target_artifacts),
        }


@dataclass
class Issue:
    type: str               # one of ISSUE_TYPES
    severity: str           # one of SEVERITIES
    description: str = ""
    step: int | None = None
    artifact: str | None = None

    def to_dict(self):
        return {
            "type": self.type,
            "severity": self.severity,
            "description": self.description,
            "location": {"step": self.step, "artifact": self.artifact},
        }


@dataclass
class Patch:
    target_files: list[str]
    patched_code: str
    description: str = ""

    def to_dict(self):
        return {
            "targetFiles": list(self.target_files),
            "patchedCode": self.patched_code,
            "description": self.description,
        }


@dataclass
class FixReport:
    issues: list[Issue] = field(default_factory=list)
    patches: list[Patch] = field(default_factory=list)
    needs_regeneration: bool = False

    def to_dict(self):
        return {
            "issues": [i.to_dict() for i in self.issues],
            "patches": [p.to_dict() for p in self.patches],
            "needsRegeneration": self.needs_regeneration,
        }


@dataclass
class FileUpdate:
    artifact_path: str
    content: str
    type: str               # "component", "style", "test"
    success: bool
    error: str | None = None

    def to_dict(self):
        return {
            "artifactPath": self.artifact_path,
            "content": self.content,
            "type": self.type,
            "success": self.success,
            "error": self.error,
        }


@dataclass
class ArtifactCheck:
    artifact_path: str
    passed_checks: list[str] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)

    def to_dict(self):
        return {
            "artifactPath": self.artifact_path,
            "passedChecks": list(self.passed_checks),
            "failures": [dict(f) for f in self.failures],
        }


@dataclass
class VerificationResult:
    per_artifact: list[ArtifactCheck] = field(default_factory=list)

    @property
    def success(self):
        return all(not entry.failures for entry in self.per_artifact)

    @property
    def failure_count(self):
        return sum(len(entry.failures) for entry in self.per_artifact)

    def to_dict(self):
        return {
            "success": self.success,
            "perArtifact": [e.to_dict() for e in self.per_artifact],
        }


@dataclass
class PatternRecord:
    request: str
    implementation_summary: str
    outcome: str
    extracted_patterns: dict = field(default_factory=lambda: {
        "success_patterns": [], "anti_patterns": [], "recommendations": [],
    })
    created_at: float = field(default_factory=time.time)

    def to_dict(self):
        return {
            "request": self.request,
            "implementationSummary": self.implementation_summary,
            "outcome": self.outcome,
            "extractedPatterns": {
                "successPatterns": list(self.extracted_patterns.get("success_patterns", [])),
                "antiPatterns": list(self.extracted_patterns.get("anti_patterns", [])),
                "recommendations": list(self.extracted_patterns.get("recommendations", [])),
            },
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data):
        patterns = data.get("extractedPatterns", {})
        return cls(
            request=data.get("request", ""),
            implementation_summary=data.get("implementationSummary", ""),
            outcome=data.get("outcome", ""),
            extracted_patterns={
                "success_patterns": list(patterns.get("successPatterns", [])),
                "anti_patterns": list(patterns.get("antiPatterns", [])),
                "recommendations": list(patterns.get("recommendations", [])),
            },
            created_at=data.get("createdAt", time.time()),
        )


@dataclass
class StepRecord:
    phase: str              # pipeline phase name, e.g. "Development"
    status: str             # "ok" or "error"
    detail: str = ""
    step_id: int | None = None

    def to_dict(self):
        return {
            "phase": self.phase,
            "status": self.status,
            "detail": self.detail,
            "stepId": self.step_id,
        }


@dataclass
class Task:
    request: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    plan: Plan | None = None
    status: str = PENDING
    step_records: list[StepRecord] = field(default_factory=list)
    error: str | None = None
    logs: list[str] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def transition(self, new_status):
        """Move to new_status; raises InvalidTransition on any backward move."""
        allowed = _ALLOWED_TRANSITIONS.get(self.status, ())
        if new_status not in allowed:
            raise InvalidTransition(
                f"Task {self.id}: cannot move from {self.status} to {new_status}"
            )
        self.status = new_status
        if self.is_terminal:
            self.finished_at = time.time()

    def attach_plan(self, plan):
        if self.is_terminal:
            raise InvalidTransition(f"Task {self.id} is {self.status}; plan is frozen")
        self.plan = copy.deepcopy(plan)

    def record(self, phase, status, detail="", step_id=None):
        if self.is_terminal:
            raise InvalidTransition(f"Task {self.id} is {self.status}; records are frozen")
        self.step_records.append(
            StepRecord(phase=phase, status=status, detail=detail, step_id=step_id)
        )

    def log(self, message):
        if self.is_terminal:
            raise InvalidTransition(f"Task {self.id} is {self.status}; logs are frozen")
        self.logs.append(message)

    def snapshot(self):
        """Deep copy handed to anyone outside the orchestrator."""
        return copy.deepcopy(self)

    def to_dict(self):
        return {
            "id": self.id,
            "request": self.request,
            "status": self.status,
            "plan": self.plan.to_dict() if self.plan else None,
            "stepRecords": [r.to_dict() for r in self.step_records],
            "error": self.error,
            "logs": list(self.logs),
            "createdAt": self.created_at,
            "finishedAt": self.finished_at,
        }
