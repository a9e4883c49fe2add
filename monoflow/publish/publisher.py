"""
Installs, builds, tests and publishes a single package.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional
import logging

from ..build.manifest import ManifestEditor
from ..config.global_config_loader import GlobalConfig
from ..core.enums import PackageManager
from ..core.exceptions import PublishError
from .registry import resolve_scope
from .runner import CommandRunner


@dataclass
class PublishReport:
    """Per-registry publish status: 'true', 'false' or 'dry-run'"""
    npm_published: str = "false"
    github_published: str = "false"

    def to_dict(self) -> Dict[str, str]:
        return {'npm': self.npm_published, 'github': self.github_published}


class PackagePublisher:
    """Drives the package manager for one package directory"""

    def __init__(self, config: GlobalConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner or CommandRunner()
        self.logger = logging.getLogger(__name__)

    def detect_package_manager(self, package_dir: Path) -> str:
        """
        Resolve 'auto' from lockfiles and check the tool is installed.

        Raises:
            PublishError: If bun is selected but not available
        """
        selected = self.config.package_manager
        if selected == PackageManager.AUTO:
            manager = "bun" if (package_dir / "bun.lockb").exists() else "npm"
        else:
            manager = selected.value

        if manager == "bun" and not self.runner.which("bun"):
            raise PublishError("Bun is selected but the 'bun' command is not found")
        return manager

    def install(self, manager: str, package_dir: Path):
        self.logger.info("📥 Installing dependencies...")
        if manager == "bun":
            command = ["bun", "install", "--frozen-lockfile"]
        elif (package_dir / "package-lock.json").exists():
            command = ["npm", "ci"]
        else:
            command = ["npm", "install"]
        self.runner.check(command, package_dir, PublishError)

    def build(self, manager: str, package_dir: Path, manifest: ManifestEditor):
        script = self.config.build.build_script
        if not script:
            return
        scripts = manifest.data.get('scripts') or {}
        if script not in scripts:
            self.logger.warning(f"⚠️  Build script '{script}' not found in package.json, skipping")
            return
        self.logger.info(f"🔨 Running build script: {manager} run {script}")
        self.runner.check([manager, "run", script], package_dir, PublishError)

    def test(self, manager: str, package_dir: Path, manifest: ManifestEditor):
        if not self.config.build.run_tests:
            return
        scripts = manifest.data.get('scripts') or {}
        if 'test' not in scripts:
            return
        self.logger.info("🧪 Running tests...")
        # 'run test' so bun executes the package script, not its own test runner
        result = self.runner.run([manager, "run", "test"], package_dir)
        if not result.ok:
            self.logger.warning("⚠️  Tests failed but continuing...")

    def _publish_command(self, dist_tag: str, registry_url: str) -> List[str]:
        command = ["npm", "publish", "--tag", dist_tag, "--registry", registry_url]
        if self.config.build.dry_run:
            command.insert(2, "--dry-run")
        return command

    def _publish_github(
        self,
        package_dir: Path,
        manifest: ManifestEditor,
        dist_tag: str,
        repository_owner: Optional[str]
    ):
        registry = self.config.registry
        original_name = manifest.name
        needs_restore = False

        if not original_name.startswith('@'):
            scope = resolve_scope(original_name, registry.package_scope, repository_owner)
            scoped_name = f"{scope}/{original_name}"
            manifest.set_name(scoped_name)
            needs_restore = True
            self.logger.info(f"📝 Scoped package name for GitHub: {scoped_name}")

        try:
            self.runner.check(
                self._publish_command(dist_tag, registry.github_registry_url),
                package_dir,
                PublishError
            )
        finally:
            if needs_restore:
                manifest.set_name(original_name)
                self.logger.info("📝 Restored original package name")

    def publish(
        self,
        package_dir: Path,
        manifest: ManifestEditor,
        version: str,
        dist_tag: str,
        repository_owner: Optional[str] = None
    ) -> PublishReport:
        """
        Run install → build → test → publish.

        Args:
            package_dir: Package directory
            manifest: Open manifest scope, already carrying the resolved version
            version: Version being published
            dist_tag: Distribution tag
            repository_owner: Fallback scope for GitHub Packages

        Returns:
            PublishReport

        Raises:
            PublishError: If any required step fails
        """
        report = PublishReport()
        manager = self.detect_package_manager(package_dir)
        self.logger.info(f"📦 Using package manager: {manager}")

        self.install(manager, package_dir)
        self.build(manager, package_dir, manifest)
        self.test(manager, package_dir, manifest)

        if not self.config.build.publish:
            self.logger.info("⏭️  Publishing disabled, skipping publish step")
            return report

        published = "dry-run" if self.config.build.dry_run else "true"
        target = self.config.registry_target

        if target.includes_npm:
            self.logger.info(f"📤 Publishing {manifest.name}@{version} to NPM (tag: {dist_tag})")
            self.runner.check(
                self._publish_command(dist_tag, self.config.registry.npm_registry_url),
                package_dir,
                PublishError
            )
            report.npm_published = published

        if target.includes_github:
            self.logger.info(f"📤 Publishing {manifest.name}@{version} to GitHub Packages (tag: {dist_tag})")
            self._publish_github(package_dir, manifest, dist_tag, repository_owner)
            report.github_published = published

        return report
