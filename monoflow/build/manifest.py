"""
Scoped, self-restoring edits of working-tree files.

Every edit made inside a ``with`` block is reverted when the block exits,
whether the package succeeded or failed.
"""
import json
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from ..core.exceptions import ManifestError


def write_atomic(path: Path, content: bytes):
    """Write via a temp file and rename (POSIX guarantees atomicity)"""
    temp_path = path.parent / f".tmp_{uuid.uuid4().hex[:8]}_{path.name}"
    try:
        with open(temp_path, 'wb') as f:
            f.write(content)
        os.replace(str(temp_path), str(path))
    finally:
        if temp_path.exists():
            temp_path.unlink()


class ScopedFile:
    """Snapshots a file on enter and restores it on exit"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._original: Optional[bytes] = None
        self._existed = False
        self._active = False
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.restore()
        return False

    def acquire(self):
        self._existed = self.path.exists()
        self._original = self.path.read_bytes() if self._existed else None
        self._active = True
        self.logger.debug(f"Snapshot taken: {self.path}")

    def restore(self):
        if not self._active:
            return
        self._active = False
        if self._existed:
            write_atomic(self.path, self._original)
        elif self.path.exists():
            self.path.unlink()
        self.logger.debug(f"Restored: {self.path}")


class ManifestEditor(ScopedFile):
    """
    Edits a package.json in place for the duration of a ``with`` block.

    Example::

        with ManifestEditor(path) as manifest:
            manifest.set_version("1.2.3-dev.abc1234")
            publish()
        # original package.json is back on disk here
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__(path)
        self.data: Dict[str, Any] = {}

    def acquire(self):
        if not self.path.is_file():
            raise ManifestError(f"package.json not found at '{self.path}'")
        super().acquire()
        try:
            data = json.loads(self._original.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            self._active = False
            raise ManifestError(f"Failed to parse {self.path}: {e}") from e
        if not isinstance(data, dict):
            self._active = False
            raise ManifestError(f"{self.path} does not contain a JSON object")
        self.data = data

    @property
    def name(self) -> str:
        return self.data.get('name', '')

    @property
    def version(self) -> str:
        return self.data.get('version', '')

    def set_version(self, version: str):
        self.data['version'] = version
        self.save()

    def set_name(self, name: str):
        self.data['name'] = name
        self.save()

    def save(self):
        content = json.dumps(self.data, indent=2, ensure_ascii=False) + "\n"
        write_atomic(self.path, content.encode('utf-8'))
