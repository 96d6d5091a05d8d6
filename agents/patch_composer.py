"""Patch composer — merges reviewer patches into implementation results. Zero LLM calls."""

import copy

from core.artifacts import artifact_key, join_blocks, split_by_target
from core.state import FixReport


class PatchComposer:
    """Applies non-critical patches; the last patch per target wins."""

    name = "patch_composer"

    def run(self, results, report: FixReport):
        """Return patched copies of results. The inputs are never mutated.

        A report that requires regeneration applies nothing.
        """
        results = copy.deepcopy(results)
        if report.needs_regeneration or not report.patches:
            return results

        # key -> patched code, later patches overwrite earlier ones
        latest = {}
        for patch in report.patches:
            for target in patch.target_files:
                latest[artifact_key(target)] = patch.patched_code

        for result in results:
            hits = {t: latest[artifact_key(t)]
                    for t in result.target_artifacts if artifact_key(t) in latest}
            if not hits:
                continue
            if len(result.target_artifacts) == 1:
                result.code = next(iter(hits.values()))
                continue
            contents = split_by_target(result.code, result.target_artifacts)
            contents.update(hits)
            result.code = join_blocks(contents)
        return results
