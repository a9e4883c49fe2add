"""
Test cases for dependency ordering (Kahn's algorithm).
"""

import pytest

from monoflow.build.dependency_graph import DependencyGraph, DependencyGraphResolver
from monoflow.core.exceptions import DependencyCycleError
from monoflow.core.models import DependencyEdge, PackageDescriptor


def descriptor(name: str) -> PackageDescriptor:
    return PackageDescriptor(name, "1.0.0", f"{name}/package.json", name)


def resolver_for(manifests):
    """Resolver reading manifests from a dict keyed by package dir"""
    def reader(path):
        return manifests[path.parent.name]
    return DependencyGraphResolver("/workspace", manifest_reader=reader)


class TestTopologicalOrder:
    """Test ordering of workspace packages"""

    def test_dependencies_come_first(self):
        manifests = {
            "app": {"dependencies": {"ui": "workspace:*", "react": "^18.0.0"}},
            "ui": {"peerDependencies": {"core": "workspace:^"}},
            "core": {},
        }
        packages = [descriptor("app"), descriptor("ui"), descriptor("core")]

        ordered = resolver_for(manifests).resolve_order(packages)

        assert [p.name for p in ordered] == ["core", "ui", "app"]

    def test_independent_packages_keep_discovery_order(self):
        manifests = {"c": {}, "a": {}, "b": {}}
        packages = [descriptor("c"), descriptor("a"), descriptor("b")]

        ordered = resolver_for(manifests).resolve_order(packages)

        assert [p.name for p in ordered] == ["c", "a", "b"]

    def test_external_dependencies_are_ignored(self):
        manifests = {
            "a": {"dependencies": {"lodash": "^4.0.0"}, "devDependencies": {"typescript": "5"}},
        }
        ordered = resolver_for(manifests).resolve_order([descriptor("a")])
        assert [p.name for p in ordered] == ["a"]

    def test_dev_dependencies_create_edges(self):
        manifests = {"a": {"devDependencies": {"b": "workspace:*"}}, "b": {}}
        ordered = resolver_for(manifests).resolve_order([descriptor("a"), descriptor("b")])
        assert [p.name for p in ordered] == ["b", "a"]

    def test_dependency_outside_input_set_is_ignored(self):
        # "core" was discovered but did not change, so it is not in the input
        manifests = {"web": {"dependencies": {"core": "workspace:*"}}}
        ordered = resolver_for(manifests).resolve_order([descriptor("web")])
        assert [p.name for p in ordered] == ["web"]

    def test_empty_input(self):
        assert resolver_for({}).resolve_order([]) == []

    def test_unreadable_manifest_has_no_dependencies(self):
        def reader(path):
            raise OSError("gone")

        resolver = DependencyGraphResolver("/workspace", manifest_reader=reader)
        ordered = resolver.resolve_order([descriptor("a"), descriptor("b")])
        assert [p.name for p in ordered] == ["a", "b"]

    def test_cycle_is_reported(self):
        manifests = {
            "a": {"dependencies": {"b": "workspace:*"}},
            "b": {"dependencies": {"a": "workspace:*"}},
            "c": {},
        }
        packages = [descriptor("a"), descriptor("b"), descriptor("c")]

        with pytest.raises(DependencyCycleError) as exc_info:
            resolver_for(manifests).resolve_order(packages)

        assert sorted(exc_info.value.cycle_nodes) == ["a", "b"]
        assert "Circular dependency detected among" in str(exc_info.value)
        assert exc_info.value.edges["a"] == ["b"]


class TestDependencyGraph:
    """Test the graph structure directly"""

    def test_duplicate_edges_are_collapsed(self):
        graph = DependencyGraph()
        graph.add_package(descriptor("a"))
        graph.add_package(descriptor("b"))
        graph.add_edge(DependencyEdge("a", "b"))
        graph.add_edge(DependencyEdge("a", "b"))

        assert graph.nodes["a"].dependencies == ["b"]
        assert graph.nodes["b"].dependents == ["a"]
        assert [p.name for p in graph.topological_order()] == ["b", "a"]

    def test_order_is_complete(self):
        graph = DependencyGraph()
        for name in ("x", "y", "z"):
            graph.add_package(descriptor(name))
        graph.add_edge(DependencyEdge("x", "z"))

        ordered = graph.topological_order()
        assert len(ordered) == len(graph) == 3
        names = [p.name for p in ordered]
        assert names.index("z") < names.index("x")

    def test_self_dependency_is_a_cycle(self):
        manifests = {"a": {"dependencies": {"a": "workspace:*"}}, "b": {}}

        with pytest.raises(DependencyCycleError) as exc_info:
            resolver_for(manifests).resolve_order([descriptor("a"), descriptor("b")])

        assert exc_info.value.cycle_nodes == ["a"]
