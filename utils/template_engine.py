"""Prompt template rendering using string.Template for safe substitution."""

import os
from string import Template


def get_prompts_dir():
    """Return the absolute path to the prompt templates directory."""
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), "agents", "prompts")


def load_prompt(name):
    """Load a prompt template (agents/prompts/<name>.txt) and return its text."""
    prompts_dir = get_prompts_dir()
    path = os.path.join(prompts_dir, f"{name}.txt")
    resolved = os.path.realpath(path)
    if not resolved.startswith(os.path.realpath(prompts_dir) + os.sep):
        raise ValueError(f"Prompt path escapes prompts directory: {name}")
    with open(resolved, "r", encoding="utf-8") as f:
        return f.read()


def render_prompt(name, variables):
    """Load and render a prompt with the given variables.

    Unknown placeholders are left as-is rather than raising errors, so
    JSON examples and code in the variables are never mangled.
    """
    return Template(load_prompt(name)).safe_substitute(variables)
