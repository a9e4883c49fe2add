"""
Git-backed version-control oracle.
"""
import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from ..core.exceptions import VcsError
from .base import VcsOracle


class GitOracle(VcsOracle):
    """Runs git commands synchronously in the repository root"""

    def __init__(self, repo_dir: Path, remote: str = "origin"):
        self.repo_dir = Path(repo_dir)
        self.remote = remote
        self.logger = logging.getLogger(__name__)

    def _git(self, *args: str) -> str:
        command = ["git", *args]
        self.logger.debug(f"Running: {' '.join(command)}")
        try:
            proc = subprocess.run(
                command,
                cwd=str(self.repo_dir),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise VcsError(f"Failed to run git: {e}") from e

        if proc.returncode != 0:
            raise VcsError(
                f"git {' '.join(args)} failed ({proc.returncode}): "
                f"{proc.stderr.strip() or proc.stdout.strip()}"
            )
        return proc.stdout

    def diff(self, base: str, head: str = "HEAD") -> List[str]:
        output = self._git("diff", "--name-only", f"{base}..{head}")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def tags_by_version(self) -> List[str]:
        output = self._git("tag", "--sort=-version:refname")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def fetch(self, ref: Optional[str] = None, depth: Optional[int] = None,
              tags: bool = False, unshallow: bool = False) -> None:
        args = ["fetch"]
        if unshallow:
            args.append("--unshallow")
        if tags:
            args.append("--tags")
        if depth is not None and not unshallow:
            args.append(f"--depth={depth}")
        args.append(self.remote)
        if ref:
            args.append(ref)
        self._git(*args)

    def rev_parse(self, ref: str) -> str:
        return self._git("rev-parse", "--verify", ref).strip()

    def is_shallow(self) -> bool:
        try:
            return self._git("rev-parse", "--is-shallow-repository").strip() == "true"
        except VcsError as e:
            self.logger.debug(f"Could not determine shallow state: {e}")
            return False
