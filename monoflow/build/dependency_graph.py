"""
Orders workspace packages so that dependencies build before their dependents.
"""
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional
import logging

from ..core.exceptions import DependencyCycleError
from ..core.models import DependencyEdge, PackageDescriptor, DEPENDENCY_FIELDS
from .scanner import read_manifest


@dataclass
class GraphNode:
    """A package and its workspace adjacency lists"""
    package: PackageDescriptor
    dependencies: List[str] = field(default_factory=list)
    dependents: List[str] = field(default_factory=list)


class DependencyGraph:
    """In-memory graph keyed by package name, insertion ordered"""

    def __init__(self):
        self.nodes: Dict[str, GraphNode] = {}

    def add_package(self, package: PackageDescriptor):
        self.nodes[package.name] = GraphNode(package=package)

    def add_edge(self, edge: DependencyEdge):
        dependent = self.nodes[edge.dependent]
        if edge.dependency in dependent.dependencies:
            return
        dependent.dependencies.append(edge.dependency)
        self.nodes[edge.dependency].dependents.append(edge.dependent)

    def __len__(self) -> int:
        return len(self.nodes)

    def topological_order(self) -> List[PackageDescriptor]:
        """
        Kahn's algorithm with a FIFO queue seeded in insertion order.

        Raises:
            DependencyCycleError: If not every node can be ordered
        """
        in_degree = {name: len(node.dependencies) for name, node in self.nodes.items()}
        queue = deque(name for name, degree in in_degree.items() if degree == 0)
        ordered: List[str] = []

        while queue:
            current = queue.popleft()
            ordered.append(current)
            for dependent in self.nodes[current].dependents:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(ordered) < len(self.nodes):
            cycle_nodes = [name for name, degree in in_degree.items() if degree > 0]
            raise DependencyCycleError(
                cycle_nodes,
                {name: self.nodes[name].dependencies for name in cycle_nodes}
            )

        return [self.nodes[name].package for name in ordered]


class DependencyGraphResolver:
    """Builds the workspace dependency graph from package manifests"""

    def __init__(
        self,
        root_dir: Path,
        manifest_reader: Optional[Callable[[Path], Dict]] = None
    ):
        """
        Initialize resolver.

        Args:
            root_dir: Workspace root that package manifest paths are relative to
            manifest_reader: Override for reading manifests (defaults to JSON file read)
        """
        self.root_dir = Path(root_dir)
        self.manifest_reader = manifest_reader or read_manifest
        self.logger = logging.getLogger(__name__)

    def workspace_dependencies(
        self,
        package: PackageDescriptor,
        known: Dict[str, PackageDescriptor]
    ) -> List[str]:
        """Names of workspace packages this package depends on, in manifest order"""
        manifest_path = self.root_dir / package.manifest_path
        try:
            manifest = self.manifest_reader(manifest_path)
        except (OSError, ValueError) as e:
            self.logger.warning(
                f"⚠️  Failed to read dependencies from {package.manifest_path}: {e}"
            )
            return []

        deps: List[str] = []
        for dep_field in DEPENDENCY_FIELDS:
            section = manifest.get(dep_field) or {}
            if not isinstance(section, dict):
                continue
            for dep_name in section:
                if dep_name in known and dep_name not in deps:
                    deps.append(dep_name)
        return deps

    def build_graph(self, packages: List[PackageDescriptor]) -> DependencyGraph:
        """
        Build the graph for the given packages.

        Args:
            packages: Packages to order; dependencies outside this list are ignored
        """
        graph = DependencyGraph()
        known = {pkg.name: pkg for pkg in packages}
        for pkg in packages:
            graph.add_package(pkg)

        self.logger.info("🔍 Analyzing workspace dependencies...")
        for pkg in packages:
            deps = self.workspace_dependencies(pkg, known)
            for dep_name in deps:
                graph.add_edge(DependencyEdge(dependent=pkg.name, dependency=dep_name))
            if deps:
                self.logger.info(f"  {pkg.name} → depends on: {', '.join(deps)}")
            else:
                self.logger.info(f"  {pkg.name} → no workspace dependencies")

        return graph

    def resolve_order(self, packages: List[PackageDescriptor]) -> List[PackageDescriptor]:
        """
        Topologically order packages.

        Args:
            packages: Packages in discovery order

        Returns:
            Packages with every dependency placed before its dependents

        Raises:
            DependencyCycleError: If the workspace dependencies form a cycle
        """
        if not packages:
            return []

        graph = self.build_graph(packages)
        self.logger.info(f"🔀 Performing topological sort (Kahn's algorithm) on {len(graph)} package(s)...")

        try:
            ordered = graph.topological_order()
        except DependencyCycleError as e:
            self.logger.error(f"❌ {e}")
            for name in e.cycle_nodes:
                self.logger.error(f"  {name} → {', '.join(e.edges[name]) or 'none'}")
            raise

        self.logger.info("📋 Build order:")
        for index, pkg in enumerate(ordered, start=1):
            deps = graph.nodes[pkg.name].dependencies
            dep_info = f"depends on: {', '.join(deps)}" if deps else "no workspace deps"
            self.logger.info(f"  {index}. {pkg.name} ({dep_info})")

        return ordered
