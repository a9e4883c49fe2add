"""
Main orchestrator that drives discovery, change detection, ordering and the
per-package build/publish pipeline.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..config.global_config_loader import GlobalConfig
from ..core.enums import BuildOutcome
from ..core.exceptions import (
    AuditError,
    FlowDetectionError,
    ManifestError,
    PackageError,
    RegistryConfigurationError,
)
from ..core.models import (
    BuildFlowContext,
    BuildResult,
    ChangeSet,
    Failure,
    PackageDescriptor,
    RunReport,
    StepOutcome,
    Success,
)
from ..output import summary
from ..output.result_sink import MemoryResultSink, ResultSink
from ..publish.audit import AuditRunner
from ..publish.publisher import PackagePublisher, PublishReport
from ..publish.registry import RegistryConfigurator
from ..vcs.base import VcsOracle
from ..vcs.git import GitOracle
from .change_detector import ChangeDetector
from .dependency_graph import DependencyGraphResolver
from .flow import VersionFlowResolver
from .manifest import ManifestEditor, ScopedFile
from .scanner import WorkspaceDiscoverer, read_manifest
from .workspace_protocol import WorkspaceProtocolResolver

RULE = "━" * 70


class BuildOrchestrator:
    """
    Processes packages strictly one at a time.

    Working-tree mutations (registry auth file, package manifest) are scoped to
    a single package and restored before the next one starts.
    """

    def __init__(
        self,
        config: GlobalConfig,
        context: BuildFlowContext,
        root_dir: Path,
        vcs: Optional[VcsOracle] = None,
        registry: Optional[RegistryConfigurator] = None,
        publisher: Optional[PackagePublisher] = None,
        auditor: Optional[AuditRunner] = None,
        sink: Optional[ResultSink] = None
    ):
        """
        Initialize orchestrator.

        Args:
            config: Global configuration
            context: CI event context
            root_dir: Workspace root (directory of the root package.json)
            vcs: Version-control oracle, git by default
            registry: Registry configuration collaborator
            publisher: Build/publish collaborator
            auditor: Audit collaborator
            sink: Result sink for host outputs
        """
        self.config = config
        self.context = context
        self.root_dir = Path(root_dir)
        self.sink = sink or MemoryResultSink()
        self.logger = logging.getLogger(__name__)

        self.vcs = vcs or GitOracle(self.root_dir)
        self.registry = registry or RegistryConfigurator(config, self.root_dir)
        self.publisher = publisher or PackagePublisher(config)
        self.auditor = auditor or AuditRunner(config)

        self.discoverer = WorkspaceDiscoverer(self.root_dir / config.root_manifest)
        self.change_detector = ChangeDetector(self.vcs, config.changes.fetch_depth)
        self.graph_resolver = DependencyGraphResolver(self.root_dir)
        self.flow_resolver = VersionFlowResolver(context, config.build.version_prefix)

    def plan(self) -> Tuple[List[PackageDescriptor], ChangeSet, List[PackageDescriptor]]:
        """
        Discover, filter and order packages.

        Returns:
            (discovered packages, change set, ordered packages to build)

        Raises:
            ConfigurationError, WorkspaceDiscoveryError, DependencyCycleError
        """
        self.config.validate()

        self.logger.info("🔍 Discovering workspace packages...")
        discovered = self.discoverer.discover()
        summary.write_discovery(self.sink, discovered)

        if self.config.changes.detect_changes:
            change_set = self.change_detector.detect_changes(self.context, discovered)
        else:
            change_set = ChangeSet.all_changed("change detection disabled")
        summary.write_changes(self.sink, change_set, discovered)

        to_build = change_set.apply(discovered)
        if not to_build:
            self.logger.info("ℹ️  No packages require building")
            return discovered, change_set, []

        self.logger.info("🔄 Resolving dependency order...")
        ordered = self.graph_resolver.resolve_order(to_build)
        summary.write_order(self.sink, ordered)
        return discovered, change_set, ordered

    def run(self) -> RunReport:
        """
        Main entry point for a CI run.

        Returns:
            RunReport; ``has_failures()`` decides the process exit status
        """
        self.logger.info("🎯 Starting monorepo release run...")
        discovered, change_set, ordered = self.plan()

        versions = {pkg.name: pkg.version for pkg in discovered}
        report = self.build_packages(ordered, versions)
        report.change_set = change_set

        summary.write_results(self.sink, report, len(change_set.apply(discovered)))
        report.print_summary()

        if report.has_failures():
            self.logger.error(f"❌ Monorepo build completed with {report.failed} failure(s)")
        else:
            self.logger.info("✅ All packages processed successfully")
        return report

    def build_packages(
        self,
        packages: List[PackageDescriptor],
        versions: Optional[Dict[str, str]] = None
    ) -> RunReport:
        """
        Run the pipeline for each package in order. A failure never stops
        the remaining packages.

        Args:
            packages: Packages in build order
            versions: Workspace package name -> version used for workspace: rewrites;
                updated with each successfully published version

        Returns:
            RunReport with one result per package
        """
        report = RunReport()
        versions = dict(versions) if versions else {pkg.name: pkg.version for pkg in packages}
        total = len(packages)

        self.logger.info(f"📦 Found {total} package(s) to process")
        for index, pkg in enumerate(packages, start=1):
            self.logger.info(RULE)
            self.logger.info(f"📦 Processing package {index}/{total}: {pkg.manifest_path}")
            self.logger.info(RULE)
            self._process_package(pkg, report, versions)

        return report

    def _process_package(
        self,
        pkg: PackageDescriptor,
        report: RunReport,
        versions: Dict[str, str]
    ):
        manifest_path = self.root_dir / pkg.manifest_path
        package_dir = manifest_path.parent

        try:
            base_version = read_manifest(manifest_path).get('version') or pkg.version
        except (OSError, ValueError) as e:
            self.logger.error(f"❌ package.json not readable at '{pkg.manifest_path}': {e}")
            report.record(self._failed(pkg.name, "unknown", f"package.json not readable: {e}"))
            return

        self.logger.info("🔍 Step 1/4: Detecting build flow...")
        flow = self._resolve_flow(base_version)
        if not flow.ok:
            report.record(self._failed(pkg.name, "unknown", flow.reason))
            return

        outcome, publish_report = self._configure_and_publish(
            pkg, package_dir, manifest_path, flow, versions
        )
        if not outcome.ok:
            self.logger.error("❌ Build and publish failed (but continuing with remaining packages)")
            report.record(self._failed(pkg.name, flow.version, outcome.reason))
            return

        versions[pkg.name] = flow.version
        report.record(BuildResult(
            pkg.name,
            flow.version,
            BuildOutcome.SUCCESS,
            registries=publish_report.to_dict()
        ))
        self.logger.info("✅ Build and publish completed")

        if not self.config.audit.enabled:
            self.logger.info("⏭️  Step 4/4: Security audit disabled")
            return

        self.logger.info("🔒 Step 4/4: Running security audit...")
        audit_failure = self._audit(package_dir)
        if audit_failure is None:
            self.logger.info("✅ Security audit completed")
        elif self.config.audit.fail_on_audit:
            self.logger.error(f"❌ {audit_failure.reason}")
            report.escalate(pkg.name, audit_failure.reason)
        else:
            self.logger.warning(f"⚠️  {audit_failure.reason} (but continuing)")

    def _resolve_flow(self, base_version: str) -> StepOutcome:
        try:
            resolution = self.flow_resolver.resolve(base_version)
        except FlowDetectionError as e:
            self.logger.error(f"❌ Flow detection failed: {e}")
            return Failure(f"Flow detection failed: {e}")
        return Success(version=resolution.version, tag=resolution.dist_tag)

    def _configure_and_publish(
        self,
        pkg: PackageDescriptor,
        package_dir: Path,
        manifest_path: Path,
        flow: Success,
        versions: Dict[str, str]
    ) -> Tuple[StepOutcome, Optional[PublishReport]]:
        try:
            with ScopedFile(self.registry.npmrc_path), ManifestEditor(manifest_path) as manifest:
                self.logger.info("⚙️  Step 2/4: Configuring registries...")
                try:
                    self.registry.configure(manifest.name or pkg.name, self.context.repository_owner)
                except RegistryConfigurationError as e:
                    self.logger.error(f"❌ Registry configuration failed: {e}")
                    return Failure(f"Registry configuration failed: {e}"), None

                self.logger.info("🏗️  Step 3/4: Building and publishing...")
                manifest.set_version(flow.version)
                self.logger.info(f"📝 Version set to {manifest.version}")
                if WorkspaceProtocolResolver(versions).resolve(manifest.data):
                    manifest.save()

                publish_report = self.publisher.publish(
                    package_dir,
                    manifest,
                    flow.version,
                    flow.tag,
                    self.context.repository_owner
                )
        except ManifestError as e:
            self.logger.error(f"❌ {e}")
            return Failure(str(e)), None
        except (PackageError, OSError) as e:
            self.logger.error(f"❌ {e}")
            return Failure(f"Build or publish failed: {e}"), None

        return flow, publish_report

    def _audit(self, package_dir: Path) -> Optional[Failure]:
        try:
            self.auditor.run(package_dir)
        except (AuditError, OSError) as e:
            return Failure(f"Security audit failed: {e}")
        return None

    @staticmethod
    def _failed(name: str, version: str, error: str) -> BuildResult:
        return BuildResult(name, version, BuildOutcome.FAILED, error)
