"""Filesystem artifact store rooted at a single output directory."""

import os


class FileArtifactStore:
    """ensure_dir / write / read on paths relative to root.

    Paths that resolve outside root are rejected.
    """

    def __init__(self, root):
        self.root = os.path.realpath(root)

    def _resolve(self, relative_path):
        full_path = os.path.join(self.root, relative_path)
        resolved = os.path.realpath(full_path)
        if not resolved.startswith(self.root + os.sep):
            raise ValueError(f"Path escapes artifact root: {relative_path}")
        return resolved

    def ensure_dir(self, relative_dir):
        """Create relative_dir under root if needed. Idempotent."""
        if not relative_dir:
            os.makedirs(self.root, exist_ok=True)
            return self.root
        resolved = self._resolve(relative_dir)
        os.makedirs(resolved, exist_ok=True)
        return resolved

    def write(self, relative_path, content):
        resolved = self._resolve(relative_path)
        os.makedirs(os.path.dirname(resolved), exist_ok=True)
        with open(resolved, "w", encoding="utf-8") as f:
            f.write(content)
        return relative_path

    def read(self, relative_path):
        with open(self._resolve(relative_path), encoding="utf-8") as f:
            return f.read()

    def exists(self, relative_path):
        try:
            return os.path.isfile(self._resolve(relative_path))
        except ValueError:
            return False
