"""Append-only persistence for pattern records (one JSON object per line)."""

import json
import logging
import os
import threading

from core.state import PatternRecord

logger = logging.getLogger(__name__)


class PatternStore:
    """Pattern records kept in memory and, when a path is given, on disk.

    Records are never rewritten; a corrupt line on load is skipped.
    """

    def __init__(self, path=None):
        self.path = path
        self._records = []
        self._lock = threading.Lock()
        if path and os.path.isfile(path):
            self._load()

    def _load(self):
        with open(self.path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    self._records.append(PatternRecord.from_dict(json.loads(line)))
                except (json.JSONDecodeError, AttributeError) as e:
                    logger.warning("Skipping bad pattern record %s:%d: %s", self.path, lineno, e)

    def append(self, record: PatternRecord):
        with self._lock:
            if self.path:
                directory = os.path.dirname(self.path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(record.to_dict()) + "\n")
            self._records.append(record)

    def records(self):
        with self._lock:
            return list(self._records)

    def recent(self, n=3):
        if n <= 0:
            return []
        with self._lock:
            return list(self._records[-n:])

    def __len__(self):
        with self._lock:
            return len(self._records)


def format_patterns(records):
    """Render pattern records as grounding text for a prompt."""
    if not records:
        return "No learned patterns yet"
    lines = []
    for record in records:
        patterns = record.extracted_patterns
        lines.append(f"- Request: {record.request} (outcome: {record.outcome})")
        for label, key in (("Worked", "success_patterns"),
                           ("Avoid", "anti_patterns"),
                           ("Recommend", "recommendations")):
            for item in patterns.get(key, []):
                lines.append(f"    {label}: {item}")
    return "\n".join(lines)
