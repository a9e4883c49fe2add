"""
Builds a BuildFlowContext from a GitHub Actions context document.
"""
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.enums import EventType
from ..core.exceptions import ConfigurationError
from ..core.models import BuildFlowContext
from .global_config_loader import BranchConfig


def _strip_heads(ref: Optional[str]) -> str:
    ref = ref or ""
    prefix = "refs/heads/"
    return ref[len(prefix):] if ref.startswith(prefix) else ref


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _dig(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def context_from_dict(data: Dict[str, Any], branches: Optional[BranchConfig] = None) -> BuildFlowContext:
    """
    Map a GitHub context object onto BuildFlowContext.

    Args:
        data: Parsed ``${{ toJSON(github) }}`` document
        branches: Main/dev branch names
    """
    branches = branches or BranchConfig()
    event_type = EventType.parse(data.get('event_name') or "")

    base_ref = _dig(data, 'event', 'pull_request', 'base', 'ref') or data.get('base_ref')
    head_ref = _dig(data, 'event', 'pull_request', 'head', 'ref') or data.get('head_ref')
    prerelease = _dig(data, 'event', 'release', 'prerelease')
    repository = data.get('repository') or ""

    return BuildFlowContext(
        event_type=event_type,
        commit_sha=data.get('sha') or "",
        ref_name=_strip_heads(data.get('ref_name') or data.get('ref')),
        base_ref=_strip_heads(base_ref),
        head_ref=head_ref or "",
        release_tag=_dig(data, 'event', 'release', 'tag_name') or None,
        release_prerelease=prerelease in (True, "true"),
        main_branch=branches.main,
        dev_branch=branches.dev,
        pr_base_sha=_dig(data, 'event', 'pull_request', 'base', 'sha') or None,
        run_number=_as_int(data.get('run_number')),
        run_attempt=_as_int(data.get('run_attempt')),
        repository_owner=data.get('repository_owner') or (
            repository.split('/')[0] if '/' in repository else None
        ),
    )


def load_context(
    context_path: Optional[str] = None,
    branches: Optional[BranchConfig] = None
) -> BuildFlowContext:
    """
    Load the event context from a file, or from the GITHUB_CONTEXT variable.

    Raises:
        ConfigurationError: If no context is available or it is not valid JSON
    """
    if context_path:
        try:
            raw = Path(context_path).read_text(encoding='utf-8')
        except OSError as e:
            raise ConfigurationError(f"Cannot read context file {context_path}: {e}") from e
    else:
        raw = os.environ.get('GITHUB_CONTEXT', '')
        if not raw:
            raise ConfigurationError("GITHUB_CONTEXT is not set and no context file given")

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"Event context is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError("Event context must be a JSON object")

    context = context_from_dict(data, branches)
    if not context.repository_owner:
        context.repository_owner = os.environ.get('GITHUB_REPOSITORY_OWNER') or None
    return context
