"""
Synchronous subprocess execution for package-manager commands.
"""
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Type
import logging

from ..core.exceptions import PackageError


@dataclass
class CommandResult:
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs external commands; no timeouts, the CI job bounds runtime"""

    def __init__(self, env: Optional[Dict[str, str]] = None):
        self.env = env
        self.logger = logging.getLogger(__name__)

    def which(self, program: str) -> Optional[str]:
        return shutil.which(program)

    def run(self, command: List[str], cwd: Path, capture: bool = False) -> CommandResult:
        """
        Run a command to completion.

        Args:
            command: Program and arguments
            cwd: Working directory
            capture: Capture stdout/stderr instead of streaming to the CI log
        """
        merged_env = os.environ.copy()
        if self.env:
            merged_env.update(self.env)

        self.logger.info(f"$ {' '.join(command)}")
        try:
            proc = subprocess.run(
                command,
                cwd=str(cwd),
                capture_output=capture,
                text=True,
                env=merged_env,
            )
        except OSError as e:
            return CommandResult(command, 127, "", str(e))

        return CommandResult(command, proc.returncode, proc.stdout or "", proc.stderr or "")

    def check(
        self,
        command: List[str],
        cwd: Path,
        error_cls: Type[PackageError],
        capture: bool = False
    ) -> CommandResult:
        """Run a command and raise error_cls if it exits non-zero"""
        result = self.run(command, cwd, capture=capture)
        if not result.ok:
            detail = (result.stderr or result.stdout).strip()
            message = f"{' '.join(command)} failed ({result.returncode})"
            raise error_cls(f"{message}: {detail[-2000:]}" if detail else message)
        return result
