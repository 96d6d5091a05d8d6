"""Naming utilities: component names and artifact suffixes."""

import os
import re

from config.conventions import CONVENTIONS

# Longest first so ".test.js" wins over ".js".
_KNOWN_SUFFIXES = sorted(
    {ext for conv in CONVENTIONS.values() for ext in conv["extensions"]},
    key=lambda ext: (-len(ext), ext),
)


def split_suffix(filename):
    """Split a file name into (stem, suffix), keeping compound test suffixes.

    "Counter.test.js" -> ("Counter", ".test.js"); "Counter" -> ("Counter", "").
    """
    for ext in _KNOWN_SUFFIXES:
        if filename.endswith(ext) and len(filename) > len(ext):
            return filename[:-len(ext)], ext
    stem, ext = os.path.splitext(filename)
    return stem, ext


def component_name(target):
    """PascalCase component name for a target artifact.

    "components/counter-button.jsx" -> "CounterButton"; names already in
    PascalCase are kept as they are.
    """
    base = os.path.basename(target.replace("\\", "/").rstrip("/"))
    stem, _ = split_suffix(base)
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", stem) if p]
    if not parts:
        return "Component"
    name = "".join(p[0].upper() + p[1:] for p in parts)
    if name[0].isdigit():
        name = "Component" + name
    return name
