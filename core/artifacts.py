"""Artifact classification, canonical paths and multi-file code splitting."""

import posixpath

from config.conventions import CONVENTIONS
from utils.llm import parse_files
from utils.naming import component_name, split_suffix


def artifact_type(target):
    """Classify a target name as "component", "style" or "test"."""
    normalized = target.replace("\\", "/")
    base = posixpath.basename(normalized)
    if "/__tests__/" in f"/{normalized}" or ".test." in base or ".spec." in base:
        return "test"
    if base.endswith(".css"):
        return "style"
    return "component"


def artifact_key(target):
    """(type, component name): two spellings of one artifact share a key."""
    return artifact_type(target), component_name(target)


def canonical_filename(target):
    """File name under the convention for this target's type.

    Extensions the convention accepts are kept ("Counter.jsx" stays a
    .jsx); anything else gets the convention's default extension.
    """
    kind = artifact_type(target)
    conv = CONVENTIONS[kind]
    _, suffix = split_suffix(posixpath.basename(target.replace("\\", "/")))
    if suffix not in conv["extensions"]:
        suffix = conv["default_extension"]
    return component_name(target) + suffix


def resolve_path(target):
    """Canonical artifact path relative to the artifact root.

    Component "counter" -> "components/Counter.js",
    style "Counter.css" -> "components/Counter.css",
    test "Counter.test.js" -> "components/__tests__/Counter.test.js".
    """
    kind = artifact_type(target)
    return posixpath.join(CONVENTIONS[kind]["directory"], canonical_filename(target))


def split_by_target(code, targets):
    """Map each target to its slice of generated code, or None if absent.

    Code with named fenced blocks is split by artifact key. Code without
    blocks belongs to the component targets; style and test targets only
    receive it when the step has no component at all.
    """
    blocks = parse_files(code)
    if not blocks:
        if len(targets) == 1:
            return {targets[0]: code}
        has_component = any(artifact_type(t) == "component" for t in targets)
        return {
            t: code if artifact_type(t) == "component" or not has_component else None
            for t in targets
        }

    by_key = {}
    for name, content in blocks:
        by_key[artifact_key(name)] = content

    contents = {}
    for t in targets:
        content = by_key.get(artifact_key(t))
        if content is None and len(targets) == 1 and len(blocks) == 1:
            content = blocks[0][1]
        contents[t] = content
    return contents


def join_blocks(contents):
    """Inverse of split_by_target: named fenced blocks, one per target."""
    parts = []
    for target, content in contents.items():
        if content is None:
            continue
        parts.append(f"```{canonical_filename(target)}\n{content}\n```")
    return "\n\n".join(parts)
