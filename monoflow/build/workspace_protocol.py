"""
Rewrites workspace-protocol dependency specifiers to concrete versions.
"""
from dataclasses import dataclass
from typing import Dict, List
import logging

from ..core.exceptions import PublishError
from ..core.models import DEPENDENCY_FIELDS

WORKSPACE_PREFIX = "workspace:"
# Unresolved entries in these fields would publish a broken package
CRITICAL_FIELDS = ("dependencies", "peerDependencies")


@dataclass
class ResolvedDependency:
    name: str
    dep_type: str
    original: str
    resolved: str


def resolve_specifier(specifier: str, actual_version: str) -> str:
    """
    Resolve the part after ``workspace:``.

    ``*`` -> exact version, ``^``/``~`` -> ranged version, explicit ranges are kept.
    """
    if specifier in ('', '*'):
        return actual_version
    if specifier in ('^', '~'):
        return f"{specifier}{actual_version}"
    return specifier


class WorkspaceProtocolResolver:
    """Replaces workspace: specifiers in a manifest dict"""

    def __init__(self, versions: Dict[str, str]):
        """
        Args:
            versions: Workspace package name -> version to publish against
        """
        self.versions = versions
        self.logger = logging.getLogger(__name__)

    def resolve(self, manifest: Dict) -> List[ResolvedDependency]:
        """
        Rewrite workspace: specifiers in place.

        Args:
            manifest: Parsed package.json, modified in place

        Returns:
            The rewritten dependencies

        Raises:
            PublishError: If a dependencies/peerDependencies entry cannot be resolved
        """
        resolved: List[ResolvedDependency] = []
        unresolved: List[str] = []

        for dep_type in DEPENDENCY_FIELDS:
            deps = manifest.get(dep_type)
            if not isinstance(deps, dict):
                continue
            for dep_name, spec in deps.items():
                if not isinstance(spec, str) or not spec.startswith(WORKSPACE_PREFIX):
                    continue

                actual_version = self.versions.get(dep_name)
                if not actual_version:
                    if dep_type in CRITICAL_FIELDS:
                        self.logger.error(
                            f"❌ Workspace dependency '{dep_name}' ({dep_type}) "
                            f"not found in discovered packages: {spec}"
                        )
                        unresolved.append(f"{dep_name} ({dep_type}): {spec}")
                    else:
                        self.logger.warning(
                            f"⚠️  Workspace dependency '{dep_name}' ({dep_type}) "
                            f"not found, keeping {spec}"
                        )
                    continue

                new_spec = resolve_specifier(spec[len(WORKSPACE_PREFIX):], actual_version)
                deps[dep_name] = new_spec
                resolved.append(ResolvedDependency(dep_name, dep_type, spec, new_spec))

        if unresolved:
            raise PublishError(
                f"Unresolved workspace dependencies: {'; '.join(unresolved)}"
            )

        for dep in resolved:
            self.logger.info(f"  {dep.name} ({dep.dep_type}): {dep.original} → {dep.resolved}")
        if not resolved:
            self.logger.debug("No workspace protocol dependencies to resolve")
        return resolved
