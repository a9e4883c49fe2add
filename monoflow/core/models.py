"""
Models for the release orchestration domain.
"""
from dataclasses import dataclass, field, asdict
from typing import List, Dict, Optional, Any, Union

from .enums import EventType, FlowType, BuildOutcome, ChangeSetKind


# Root files whose modification invalidates every package
ROOT_CONFIG_FILES = (
    "package.json",
    "tsconfig.json",
    "tsconfig.base.json",
    ".npmrc",
    "yarn.lock",
    "package-lock.json",
    "pnpm-lock.yaml",
    "bun.lockb",
    "bun.lock",
)

DEPENDENCY_FIELDS = ("dependencies", "peerDependencies", "devDependencies")


@dataclass(frozen=True)
class PackageDescriptor:
    """A publishable workspace package"""
    name: str
    version: str
    manifest_path: str  # relative to workspace root, POSIX separators
    dir: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to the discovered-packages JSON shape"""
        return {
            'name': self.name,
            'version': self.version,
            'path': self.manifest_path,
            'dir': self.dir,
        }

    def to_changed_dict(self) -> Dict[str, str]:
        """Convert to the changed-packages JSON shape"""
        return {'name': self.name, 'path': self.manifest_path}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PackageDescriptor':
        """Create from a discovered-packages entry"""
        manifest_path = data['path']
        directory = data.get('dir')
        if directory is None:
            directory = manifest_path.rsplit('/', 1)[0] if '/' in manifest_path else '.'
        return cls(
            name=data['name'],
            version=data.get('version', '0.0.0'),
            manifest_path=manifest_path,
            dir=directory,
        )


@dataclass(frozen=True)
class DependencyEdge:
    """dependent requires dependency; both are workspace packages"""
    dependent: str
    dependency: str


@dataclass
class ChangeSet:
    """Outcome of change detection for one run"""
    kind: ChangeSetKind
    packages: List[PackageDescriptor] = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def all_changed(cls, reason: str) -> 'ChangeSet':
        return cls(kind=ChangeSetKind.ALL_CHANGED, reason=reason)

    @classmethod
    def none_changed(cls, reason: str) -> 'ChangeSet':
        return cls(kind=ChangeSetKind.NONE_CHANGED, reason=reason)

    @classmethod
    def subset(cls, packages: List[PackageDescriptor]) -> 'ChangeSet':
        return cls(kind=ChangeSetKind.SUBSET, packages=list(packages))

    @property
    def names(self) -> List[str]:
        return [pkg.name for pkg in self.packages]

    def apply(self, packages: List[PackageDescriptor]) -> List[PackageDescriptor]:
        """
        Select the packages that need building.

        Args:
            packages: All discovered packages, in discovery order

        Returns:
            Packages to build, in discovery order
        """
        if self.kind == ChangeSetKind.ALL_CHANGED:
            return list(packages)
        if self.kind == ChangeSetKind.NONE_CHANGED:
            return []
        selected = {pkg.name for pkg in self.packages}
        return [pkg for pkg in packages if pkg.name in selected]


@dataclass
class BuildFlowContext:
    """CI trigger context that drives flow classification"""
    event_type: EventType
    commit_sha: str
    ref_name: str = ""
    base_ref: str = ""
    head_ref: str = ""
    release_tag: Optional[str] = None
    release_prerelease: bool = False
    main_branch: str = "main"
    dev_branch: str = "dev"
    pr_base_sha: Optional[str] = None
    run_number: Optional[int] = None
    run_attempt: Optional[int] = None
    repository_owner: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['event_type'] = self.event_type.value
        return data


@dataclass(frozen=True)
class FlowResolution:
    """Flow classification of one package"""
    flow_type: FlowType
    version: str
    dist_tag: str
    short_sha: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'build-flow-type': self.flow_type.value,
            'version': self.version,
            'npm-tag': self.dist_tag,
            'short-sha': self.short_sha,
        }


@dataclass(frozen=True)
class Success:
    """Successful pipeline step"""
    version: str
    tag: str

    ok = True


@dataclass(frozen=True)
class Failure:
    """Failed pipeline step"""
    reason: str

    ok = False


StepOutcome = Union[Success, Failure]


@dataclass
class BuildResult:
    """Result of processing a single package"""
    name: str
    version: str
    result: BuildOutcome
    error: Optional[str] = None
    # registry -> "true" | "false" | "dry-run", kept out of build-results
    registries: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.result == BuildOutcome.SUCCESS

    def to_dict(self) -> Dict[str, str]:
        """Convert to the build-results JSON shape"""
        data = {
            'name': self.name,
            'version': self.version,
            'result': self.result.value,
        }
        if self.result == BuildOutcome.FAILED:
            data['error'] = self.error or "Unknown error"
        return data


@dataclass
class RunReport:
    """Aggregated results of one orchestrator run"""
    results: List[BuildResult] = field(default_factory=list)
    successful: int = 0
    failed: int = 0
    change_set: Optional[ChangeSet] = None

    def record(self, result: BuildResult):
        """Append a package result and count it"""
        self.results.append(result)
        if result.success:
            self.successful += 1
        else:
            self.failed += 1

    def escalate(self, name: str, error: str):
        """Turn an already recorded success into a failure"""
        for result in self.results:
            if result.name != name:
                continue
            if result.success:
                self.successful -= 1
                self.failed += 1
            result.result = BuildOutcome.FAILED
            result.error = error
            return
        raise KeyError(name)

    @property
    def total(self) -> int:
        return len(self.results)

    def has_failures(self) -> bool:
        return self.failed > 0

    def published_names(self) -> List[str]:
        return [r.name for r in self.results if r.success]

    def failed_names(self) -> List[str]:
        return [r.name for r in self.results if not r.success]

    def publish_status(self) -> Dict[str, Dict[str, str]]:
        """Per-registry publish status of each successful package"""
        return {r.name: dict(r.registries) for r in self.results if r.success}

    def to_list(self) -> List[Dict[str, str]]:
        return [r.to_dict() for r in self.results]

    def print_summary(self):
        """Print human-readable summary"""
        print(f"\n{'='*80}")
        print("MONOREPO BUILD SUMMARY")
        print(f"{'='*80}")
        print(f"Total packages: {self.total}")
        print(f"✅ Successful: {self.successful}")
        print(f"❌ Failed: {self.failed}")

        for result in self.results:
            if result.success:
                published = ", ".join(
                    f"{registry}={status}" for registry, status in result.registries.items()
                    if status != "false"
                )
                print(f"   ✅ {result.name}@{result.version}" + (f" ({published})" if published else ""))
            else:
                print(f"   ❌ {result.name}@{result.version}: {result.error}")

        print(f"{'='*80}\n")
