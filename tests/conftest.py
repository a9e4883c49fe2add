"""Pytest configuration and fixtures for monoflow tests."""

import json
import sys
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from monoflow.core.enums import EventType
from monoflow.core.models import BuildFlowContext

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def write_json(path: Path, data: Any):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n")


class WorkspaceBuilder:
    """Creates a throwaway npm workspace on disk"""

    def __init__(self, root: Path):
        self.root = root

    def root_manifest(self, workspaces: Any, **extra) -> Path:
        data = {"name": "monorepo-root", "private": True, "workspaces": workspaces}
        data.update(extra)
        path = self.root / "package.json"
        write_json(path, data)
        return path

    def package(self, directory: str, name: str, version: str = "1.0.0",
                private: bool = False, dependencies: Optional[Dict[str, str]] = None,
                **extra) -> Path:
        data: Dict[str, Any] = {"name": name, "version": version}
        if private:
            data["private"] = True
        if dependencies:
            data["dependencies"] = dependencies
        data.update(extra)
        path = self.root / directory / "package.json"
        write_json(path, data)
        return path


@pytest.fixture
def workspace(tmp_path) -> WorkspaceBuilder:
    """Empty workspace rooted at tmp_path"""
    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def make_context():
    """Factory for BuildFlowContext with main/dev branches"""
    def _make(event_type: EventType = EventType.PUSH, **kwargs) -> BuildFlowContext:
        kwargs.setdefault('commit_sha', 'abc1234def5678')
        kwargs.setdefault('main_branch', 'main')
        kwargs.setdefault('dev_branch', 'dev')
        return BuildFlowContext(event_type=event_type, **kwargs)
    return _make
