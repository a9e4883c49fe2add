"""
Exception hierarchy for monoflow.

Fatal errors abort the run before any package is processed. Per-package errors
are caught by the orchestrator and recorded on that package's BuildResult.
"""
from typing import Dict, List


class MonoflowError(Exception):
    """Base class for all monoflow errors"""


class ConfigurationError(MonoflowError):
    """Invalid orchestrator configuration (registry target, package manager, ...)"""


class WorkspaceDiscoveryError(MonoflowError):
    """Root manifest or workspace patterns cannot produce a publishable set"""


class DependencyCycleError(MonoflowError):
    """Workspace packages depend on each other in a cycle"""

    def __init__(self, cycle_nodes: List[str], edges: Dict[str, List[str]]):
        self.cycle_nodes = list(cycle_nodes)
        self.edges = {name: list(deps) for name, deps in edges.items()}
        details = "; ".join(
            f"{name} -> {', '.join(self.edges.get(name, [])) or 'none'}"
            for name in self.cycle_nodes
        )
        super().__init__(
            f"Circular dependency detected among: {', '.join(self.cycle_nodes)} ({details})"
        )


class VcsError(MonoflowError):
    """A VCS command failed; callers treat this as 'unknown'"""


class PackageError(MonoflowError):
    """Base class for failures isolated to a single package"""


class ManifestError(PackageError):
    """Package manifest is missing, unreadable or not valid JSON"""


class FlowDetectionError(PackageError):
    """Build flow cannot be derived from the event context"""


class RegistryConfigurationError(PackageError):
    """Registry authentication could not be configured"""


class PublishError(PackageError):
    """Install, build or publish step failed"""


class AuditError(PackageError):
    """Security audit found vulnerabilities at or above the threshold"""
