"""Materializer — resolves canonical paths, normalizes and writes artifacts. Zero LLM calls."""

import logging
import posixpath
import re
from concurrent.futures import ThreadPoolExecutor

from config.conventions import TEST_HARNESS_IMPORT, TEST_HARNESS_MARKER
from config.defaults import get_setting
from core.artifacts import artifact_type, resolve_path, split_by_target
from core.errors import PartialArtifactError
from core.state import FileUpdate
from utils.naming import component_name

logger = logging.getLogger(__name__)

_DEFAULT_EXPORT_RE = re.compile(
    r"^\s*export\s+default\b|\bexport\s*\{[^}]*\bas\s+default\b[^}]*\}", re.MULTILINE
)
_BARE_DEFAULT_EXPORT_RE = re.compile(
    r"^(?P<prefix>\s*export\s+default\s+)(?P<ident>[A-Za-z_$][\w$]*)(?P<suffix>\s*;?\s*)$",
    re.MULTILINE,
)
_SCRIPT_TAG_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
# Quoted strings are matched first and kept; "//" after ":" or "(" keeps url(http://...) intact
_LINE_COMMENT_RE = re.compile(
    r"(\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*')|(?<![:(\w/])//[^\n]*"
)
_KEYWORDS = {"function", "class", "async"}


def normalize_component(code, name):
    """Make sure the module default-exports the component named after its file."""
    if not _DEFAULT_EXPORT_RE.search(code):
        return f"{code.rstrip()}\n\nexport default {name};\n"

    match = _BARE_DEFAULT_EXPORT_RE.search(code)
    if match and match.group("ident") not in _KEYWORDS and match.group("ident") != name:
        declared = re.search(rf"\b(?:function|class|const|let|var)\s+{re.escape(name)}\b", code)
        if declared:
            start, end = match.span("ident")
            code = code[:start] + name + code[end:]
    return code


def normalize_style(css):
    """Strip script blocks and JS-style line comments from a stylesheet."""
    css = _SCRIPT_TAG_RE.sub("", css)
    css = _LINE_COMMENT_RE.sub(lambda m: m.group(1) or "", css)
    lines = [line.rstrip() for line in css.split("\n")]
    return "\n".join(lines).strip() + "\n"


def normalize_test(code):
    if TEST_HARNESS_MARKER in code:
        return code
    return f"{TEST_HARNESS_IMPORT}\n{code}"


def normalize(kind, content, name):
    if kind == "component":
        return normalize_component(content, name)
    if kind == "style":
        return normalize_style(content)
    return normalize_test(content)


class Materializer:
    """Writes each target artifact independently.

    A failure on one artifact lands in that artifact's FileUpdate and the
    rest carry on. Writes run on a bounded pool; jobs that resolve to the
    same path run in order on one worker, so the last write wins.
    """

    name = "materializer"

    def __init__(self, artifact_store, context_store, max_workers=None):
        self.artifact_store = artifact_store
        self.context_store = context_store
        self.max_workers = max_workers or get_setting("materializer_workers")

    def plan_jobs(self, results):
        """One (path, kind, name, content) job per target, in plan order."""
        jobs = []
        for result in results:
            contents = split_by_target(result.code, result.target_artifacts)
            for target in result.target_artifacts:
                jobs.append((
                    resolve_path(target),
                    artifact_type(target),
                    component_name(target),
                    contents.get(target),
                ))
        return jobs

    def run(self, results):
        jobs = self.plan_jobs(results)
        if not jobs:
            return []

        groups = {}
        for index, job in enumerate(jobs):
            groups.setdefault(job[0], []).append(index)

        updates = [None] * len(jobs)
        workers = max(1, min(self.max_workers, len(groups)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="materialize") as pool:
            futures = [
                pool.submit(self._write_group, [(i, jobs[i]) for i in indexes])
                for indexes in groups.values()
            ]
            for future in futures:
                for index, update in future.result():
                    updates[index] = update

        ok = sum(1 for u in updates if u.success)
        logger.info("Materialized %d/%d artifact(s)", ok, len(updates))
        return updates

    def _write_group(self, indexed_jobs):
        return [(index, self._write_one(*job)) for index, job in indexed_jobs]

    def _write_one(self, path, kind, name, content):
        normalized = content or ""
        try:
            if content is None:
                raise PartialArtifactError(path, "No content generated for this artifact")
            normalized = normalize(kind, content, name)
            self.artifact_store.ensure_dir(posixpath.dirname(path))
            self.artifact_store.write(path, normalized)
            self.context_store.upsert(path, normalized)
        except Exception as e:
            logger.warning("Failed to write %s: %s", path, e)
            return FileUpdate(artifact_path=path, content=normalized, type=kind,
                              success=False, error=str(e))
        return FileUpdate(artifact_path=path, content=normalized, type=kind, success=True)
