"""
Release orchestration for workspace packages.
Handles discovery, change detection, dependency ordering, flow resolution
and the sequential build/publish loop.
"""

from .scanner import WorkspaceDiscoverer
from .change_detector import ChangeDetector
from .dependency_graph import DependencyGraph, DependencyGraphResolver
from .flow import VersionFlowResolver, resolve_flow
from .manifest import ManifestEditor, ScopedFile
from .workspace_protocol import WorkspaceProtocolResolver
from .manager import BuildOrchestrator

__all__ = [
    'WorkspaceDiscoverer',
    'ChangeDetector',
    'DependencyGraph',
    'DependencyGraphResolver',
    'VersionFlowResolver',
    'resolve_flow',
    'ManifestEditor',
    'ScopedFile',
    'WorkspaceProtocolResolver',
    'BuildOrchestrator',
]
