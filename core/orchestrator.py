"""Main pipeline orchestrator — single-attempt state machine over the agents."""

import logging
import threading

from agents.generator import GeneratorAgent
from agents.materializer import Materializer
from agents.patch_composer import PatchComposer
from agents.pattern_learner import PatternLearner
from agents.planner import PlannerAgent
from agents.reviewer import ReviewerAgent
from agents.verifier import Verifier
from config.defaults import get_setting
from core.context_store import ContextStore
from core.errors import CriticalReviewIssue
from core.events import EventChannel
from core.pattern_store import PatternStore, format_patterns
from core.quality import needs_regeneration, verification_passed
from core.state import COMPLETED, FAILED, IN_PROGRESS, NEEDS_REVISION, Task
from utils.artifact_store import FileArtifactStore
from utils.browser import PlaywrightEngine
from utils.llm import AnthropicService

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the full pipeline: plan → develop → fix → materialize → verify → learn.

    Every stage runs once. A stage that raises ends the task as failed; a
    critical review or failed verification ends it as needs_revision and
    the caller decides whether to resubmit. Collaborators are passed in so
    tests and concurrent servers never share hidden state.
    """

    def __init__(self, llm=None, context_store=None, pattern_store=None,
                 artifact_store=None, channel=None, engine_factory=None):
        self.llm = llm or AnthropicService()
        self.context_store = context_store if context_store is not None else ContextStore()
        self.pattern_store = (pattern_store if pattern_store is not None
                              else PatternStore(get_setting("pattern_store_path")))
        self.artifact_store = artifact_store or FileArtifactStore(get_setting("artifact_root"))
        self.channel = channel or EventChannel()

        self.planner = PlannerAgent(self.llm)
        self.generator = GeneratorAgent(self.llm)
        self.reviewer = ReviewerAgent(self.llm)
        self.patch_composer = PatchComposer()
        self.materializer = Materializer(self.artifact_store, self.context_store)
        self.verifier = Verifier(engine_factory or PlaywrightEngine)
        self.learner = PatternLearner(self.llm, self.pattern_store)

        self.context_k = get_setting("context_k")
        self.pattern_k = get_setting("pattern_k")
        self._history = []
        self._history_lock = threading.Lock()
        self._run_lock = threading.Lock()

    def initialize(self, root=None):
        """Load the existing artifact tree into the context store."""
        return self.context_store.sync_directory(root or self.artifact_store.root)

    # -- events ---------------------------------------------------------

    def _phase(self, task, phase, message):
        task.log(f"[{phase}] {message}")
        self.channel.emit("phase", {"taskId": task.id, "phase": phase, "message": message})

    def _log(self, task, message):
        task.log(message)
        self.channel.emit("log", {"taskId": task.id, "message": message})

    # -- grounding ------------------------------------------------------

    def _grounding(self, text):
        context = self.context_store.context_for(text, self.context_k)
        patterns = format_patterns(self.pattern_store.recent(self.pattern_k))
        return context, patterns

    # -- public API -----------------------------------------------------

    def plan_only(self, request):
        """Dry run: ground and plan without creating a task."""
        context, patterns = self._grounding(request)
        return self.planner.run(request, context, patterns)

    def regenerate_step(self, plan, step_id, request):
        """Re-run Development for one step, e.g. after a critical review."""
        step = plan.step(step_id)
        context, patterns = self._grounding(
            f"{request} {step.description} {' '.join(step.target_artifacts)}"
        )
        return self.generator.run(step, request, context, patterns)

    def history(self):
        with self._history_lock:
            return [task.snapshot() for task in self._history]

    def get_task(self, task_id):
        with self._history_lock:
            for task in self._history:
                if task.id == task_id:
                    return task.snapshot()
        return None

    def process_feature_request(self, request):
        """Run the whole pipeline for one request and return a result dict.

        Never raises: failures come back as {"success": False, "error": ...}.
        """
        with self._run_lock:
            return self._process(request)

    # -- pipeline -------------------------------------------------------

    def _process(self, request):
        task = Task(request=request)
        progress = {"plan": None, "implementations": [], "fixes": None,
                    "file_updates": [], "verification": None}

        self._phase(task, "Starting", "Beginning feature implementation")
        task.transition(IN_PROGRESS)
        stage = "Starting"

        try:
            stage = "Planning"
            self._phase(task, stage, "Creating implementation plan")
            context, patterns = self._grounding(request)
            plan = self.planner.run(request, context, patterns)
            task.attach_plan(plan)
            progress["plan"] = task.plan
            task.record(stage, "ok", f"{len(plan.steps)} step(s)")
            self._log(task, "Plan created successfully")

            stage = "Development"
            self._phase(task, stage, f"Generating {len(plan.steps)} step(s)")
            for step in task.plan.steps:
                step_context, _ = self._grounding(
                    f"{request} {step.description} {' '.join(step.target_artifacts)}"
                )
                result = self.generator.run(step, request, step_context, patterns)
                progress["implementations"].append(result)
                task.record(stage, "ok", ", ".join(step.target_artifacts), step_id=step.id)
                self.channel.emit("component-update", {
                    "taskId": task.id,
                    "stepId": result.step_id,
                    "component": result.code,
                    "targetArtifacts": list(result.target_artifacts),
                })

            stage = "Fixing"
            self._phase(task, stage, "Reviewing implementation")
            report = self.reviewer.run(progress["implementations"], task.plan, request)
            progress["fixes"] = report
            task.record(stage, "ok", f"{len(report.issues)} issue(s), {len(report.patches)} patch(es)")
            if needs_regeneration(report):
                raise CriticalReviewIssue([i for i in report.issues if i.severity == "critical"])
            fixed = self.patch_composer.run(progress["implementations"], report)
            if report.patches:
                self._log(task, f"Applied {len(report.patches)} patch(es)")

            stage = "Materializing"
            self._phase(task, stage, "Writing artifacts")
            updates = self.materializer.run(fixed)
            progress["file_updates"] = updates
            for update in updates:
                task.record(stage, "ok" if update.success else "error",
                            update.error or update.artifact_path)
            written = sum(1 for u in updates if u.success)
            self._log(task, f"Wrote {written}/{len(updates)} artifact(s)")

            stage = "Verifying"
            self._phase(task, stage, "Checking rendered components")
            verification = self.verifier.run(updates, task.plan.test_criteria)
            progress["verification"] = verification
            task.record(stage, "ok" if verification.success else "error",
                        f"{verification.failure_count} failure(s)")

        except CriticalReviewIssue as e:
            task.record(stage, "error", str(e))
            self._log(task, str(e))
            return self._finish(task, NEEDS_REVISION, progress, error=str(e))
        except Exception as e:
            logger.exception("%s stage failed for task %s", stage, task.id)
            return self._fail(task, stage, e, progress)

        if verification_passed(progress["verification"]):
            return self._finish(task, COMPLETED, progress)
        error = f"Verification failed: {progress['verification'].failure_count} failure(s)"
        self._log(task, error)
        return self._finish(task, NEEDS_REVISION, progress, error=error)

    def _learn(self, task, outcome, progress):
        try:
            self.learner.run(
                task,
                outcome=outcome,
                implementations=progress["implementations"],
                fixes=progress["fixes"],
                verification=progress["verification"],
            )
        except Exception:
            logger.exception("Pattern learning failed for task %s", task.id)
            return False
        return True

    def _finish(self, task, status, progress, error=None):
        task.error = error
        self._phase(task, "Learning", "Recording patterns from this run")
        learned = self._learn(task, status, progress)
        task.record("Learning", "ok" if learned else "error")
        message = ("Feature implemented successfully" if status == COMPLETED
                   else f"Feature needs revision: {error}")
        self._phase(task, "Complete", message)
        task.transition(status)
        self._archive(task)
        return self._result(task, progress)

    def _fail(self, task, stage, exc, progress):
        task.error = f"{stage} failed: {exc}"
        task.record(stage, "error", str(exc))
        self._phase(task, "Failed", task.error)
        self.channel.emit("error", {"taskId": task.id, "message": task.error})
        task.transition(FAILED)
        self._archive(task)
        self._learn(task, FAILED, progress)
        return self._result(task, progress)

    def _archive(self, task):
        with self._history_lock:
            self._history.append(task)

    def _result(self, task, progress):
        result = {
            "success": task.status == COMPLETED,
            "taskId": task.id,
            "status": task.status,
            "plan": progress["plan"].to_dict() if progress["plan"] else None,
            "implementations": [r.to_dict() for r in progress["implementations"]],
            "fixes": progress["fixes"].to_dict() if progress["fixes"] else None,
            "fileUpdates": [u.to_dict() for u in progress["file_updates"]],
            "testResults": (progress["verification"].to_dict()
                            if progress["verification"] else None),
            "logs": list(task.logs),
        }
        if task.error:
            result["error"] = task.error
        return result
