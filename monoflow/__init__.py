"""
monoflow - monorepo build/release orchestrator for CI pipelines

Main modules:
- core: Data models, enums and exceptions
- build: Workspace discovery, change detection, dependency ordering,
  flow resolution and the build orchestrator
- vcs: Version-control oracle
- publish: Registry configuration, build/publish and audit collaborators
- output: Result sink for CI host outputs
- config: Configuration and event context loading
"""

from .core.models import PackageDescriptor, BuildFlowContext, BuildResult, ChangeSet, RunReport
from .build.manager import BuildOrchestrator
from .config.global_config_loader import GlobalConfig, load_global_config

__version__ = "1.0.0"
__all__ = [
    'PackageDescriptor',
    'BuildFlowContext',
    'BuildResult',
    'ChangeSet',
    'RunReport',
    'BuildOrchestrator',
    'GlobalConfig',
    'load_global_config',
]
