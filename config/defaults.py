"""Default pipeline settings."""

import os

DEFAULTS = {
    "model": "claude-sonnet-4-5-20250929",
    "max_tokens": 8192,
    "llm_timeout": 120.0,           # seconds per generative call
    "context_k": 5,                 # grounding documents per query
    "pattern_k": 3,                 # pattern records fed back into prompts
    "materializer_workers": 4,
    "artifact_root": "src",
    "pattern_store_path": "data/patterns.jsonl",
    "preview_base_url": "http://localhost:5001",
    "verify_timeout_ms": 5000,
    "headless": True,
    "event_log_size": 200,
}

_ENV_PREFIX = "FEATURESMITH_"


def _coerce(raw, default):
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def get_setting(key):
    """Return a setting, letting FEATURESMITH_<KEY> override the default.

    The override is coerced to the default's type, so
    FEATURESMITH_MATERIALIZER_WORKERS=8 yields the int 8.
    """
    if key not in DEFAULTS:
        raise KeyError(f"Unknown setting: {key}")
    default = DEFAULTS[key]
    raw = os.environ.get(_ENV_PREFIX + key.upper())
    if raw is None:
        return default
    try:
        return _coerce(raw, default)
    except ValueError:
        raise ValueError(
            f"Invalid value for {_ENV_PREFIX}{key.upper()}: {raw!r}"
        ) from None
