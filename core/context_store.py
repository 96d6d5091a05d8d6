"""Artifact content store with relevance-ranked retrieval for prompt grounding."""

import logging
import os
import re
import threading
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_TERM_RE = re.compile(r"[a-z0-9_]{2,}")

SOURCE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".html", ".css")


@dataclass
class StoredArtifact:
    path: str
    content: str
    timestamp: float


def _terms(text):
    seen = []
    for term in _TERM_RE.findall(text.lower()):
        if term not in seen:
            seen.append(term)
    return seen


def keyword_score(query, path, content):
    """Baseline relevance: query-term hits, path hits weighted 3x."""
    path_l = path.lower()
    content_l = content.lower()
    score = 0.0
    for term in _terms(query):
        score += 3 * path_l.count(term) + content_l.count(term)
    return score


class ContextStore:
    """Canonical artifact map keyed by path.

    Writes to one path are serialized by a per-path lock; writes to
    different paths proceed independently. The scorer is any callable
    (query, path, content) -> float.
    """

    def __init__(self, scorer=keyword_score):
        self._scorer = scorer
        self._artifacts = {}
        self._path_locks = {}
        self._map_lock = threading.Lock()

    def _lock_for(self, path):
        with self._map_lock:
            lock = self._path_locks.get(path)
            if lock is None:
                lock = self._path_locks[path] = threading.Lock()
            return lock

    def upsert(self, path, content):
        """Store content at path. Last write wins and refreshes the timestamp."""
        if not path:
            raise ValueError("Artifact path must be non-empty")
        with self._lock_for(path):
            artifact = StoredArtifact(path=path, content=content, timestamp=time.time())
            with self._map_lock:
                self._artifacts[path] = artifact
        logger.debug("Upserted %s (%d chars)", path, len(content))

    def get(self, path):
        with self._map_lock:
            artifact = self._artifacts.get(path)
        return artifact.content if artifact else None

    def query(self, text, k=5):
        """Return up to k (path, content) pairs ranked by relevance to text.

        Ties break on path so identical inputs always give identical output.
        Artifacts with a zero score are left out.
        """
        if k <= 0:
            return []
        with self._map_lock:
            snapshot = list(self._artifacts.values())
        scored = []
        for artifact in snapshot:
            score = self._scorer(text, artifact.path, artifact.content)
            if score > 0:
                scored.append((-score, artifact.path, artifact.content))
        scored.sort(key=lambda item: (item[0], item[1]))
        return [(path, content) for _, path, content in scored[:k]]

    def list_all(self):
        """Every stored artifact as (path, timestamp), sorted by path."""
        with self._map_lock:
            return sorted((a.path, a.timestamp) for a in self._artifacts.values())

    def __len__(self):
        with self._map_lock:
            return len(self._artifacts)

    def context_for(self, text, k=5):
        """Prompt-ready grounding text for a query."""
        results = self.query(text, k)
        if not results:
            return "No relevant context found"
        return "\n\n".join(f"File: {path}\n{content}" for path, content in results)

    def sync_directory(self, root, extensions=SOURCE_EXTENSIONS):
        """Load every source file under root, keyed by its path relative to root.

        Hidden directories are skipped. Returns the number of files loaded.
        """
        if not os.path.isdir(root):
            return 0
        loaded = 0
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if not name.endswith(extensions):
                    continue
                full_path = os.path.join(dirpath, name)
                rel_path = os.path.relpath(full_path, root).replace(os.sep, "/")
                try:
                    with open(full_path, encoding="utf-8") as f:
                        content = f.read()
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning("Skipping %s: %s", full_path, e)
                    continue
                self.upsert(rel_path, content)
                loaded += 1
        logger.info("Synced %d file(s) from %s", loaded, root)
        return loaded
