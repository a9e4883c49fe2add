"""
Test cases for registry configuration, publishing and the security audit.
External commands go through a mocked CommandRunner.
"""

import json
from unittest.mock import Mock

import pytest

from monoflow.build.manifest import ManifestEditor
from monoflow.config.global_config_loader import GlobalConfig
from monoflow.core.enums import AuditLevel
from monoflow.core.exceptions import AuditError, PublishError, RegistryConfigurationError
from monoflow.publish.audit import AuditRunner, AuditSummary
from monoflow.publish.publisher import PackagePublisher
from monoflow.publish.registry import RegistryConfigurator, registry_host, resolve_scope
from monoflow.publish.runner import CommandResult, CommandRunner


def make_config(**sections) -> GlobalConfig:
    return GlobalConfig.from_dict(sections)


@pytest.fixture
def runner():
    mock_runner = Mock(spec=CommandRunner)
    mock_runner.which.return_value = "/usr/bin/bun"
    mock_runner.run.side_effect = lambda command, cwd, capture=False: CommandResult(command, 0)
    mock_runner.check.side_effect = lambda command, cwd, error_cls, capture=False: CommandResult(command, 0)
    return mock_runner


def commands(mock_runner):
    return [call.args[0] for call in mock_runner.check.call_args_list]


class TestRegistryConfigurator:
    """Test .npmrc rendering"""

    def test_npm_target(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NPM_TOKEN", "npm-secret")
        configurator = RegistryConfigurator(make_config(), tmp_path)

        path = configurator.configure("core")

        assert path.read_text().splitlines() == [
            "//registry.npmjs.org/:_authToken=npm-secret",
            "registry=https://registry.npmjs.org",
        ]

    def test_github_target_uses_owner_scope(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "gh-secret")
        configurator = RegistryConfigurator(make_config(registry={"target": "github"}), tmp_path)

        lines = configurator.render("core", "acme")

        assert lines == [
            "//npm.pkg.github.com/:_authToken=gh-secret",
            "@acme:registry=https://npm.pkg.github.com",
        ]

    def test_both_targets_omit_default_registry(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NPM_TOKEN", "n")
        monkeypatch.setenv("GITHUB_TOKEN", "g")
        configurator = RegistryConfigurator(make_config(registry={"target": "both"}), tmp_path)

        lines = configurator.render("@acme/core", None)

        assert lines == [
            "//registry.npmjs.org/:_authToken=n",
            "//npm.pkg.github.com/:_authToken=g",
        ]

    def test_missing_token(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NPM_TOKEN", raising=False)
        with pytest.raises(RegistryConfigurationError, match="NPM_TOKEN"):
            RegistryConfigurator(make_config(), tmp_path).configure("core")

    def test_scope_resolution_order(self):
        assert resolve_scope("core", "myorg", "owner") == "@myorg"
        assert resolve_scope("@pkg/core", None, "owner") == "@pkg"
        assert resolve_scope("core", None, "owner") == "@owner"
        with pytest.raises(RegistryConfigurationError):
            resolve_scope("core", None, None)

    def test_registry_host(self):
        assert registry_host("https://registry.npmjs.org/") == "registry.npmjs.org"
        assert registry_host("npm.pkg.github.com") == "npm.pkg.github.com"


class TestPackagePublisher:
    """Test install → build → test → publish"""

    def test_npm_publish_sequence(self, workspace, runner):
        manifest_path = workspace.package("core", "core", scripts={"build": "tsc", "test": "jest"})
        (workspace.root / "core" / "package-lock.json").write_text("{}")
        publisher = PackagePublisher(make_config(build={"package_manager": "npm"}), runner)

        with ManifestEditor(manifest_path) as manifest:
            report = publisher.publish(manifest_path.parent, manifest, "1.0.0-dev.abc", "dev")

        assert commands(runner) == [
            ["npm", "ci"],
            ["npm", "run", "build"],
            ["npm", "publish", "--tag", "dev", "--registry", "https://registry.npmjs.org"],
        ]
        runner.run.assert_called_once_with(["npm", "run", "test"], manifest_path.parent)
        assert report.npm_published == "true"
        assert report.github_published == "false"

    def test_auto_detects_bun(self, workspace, runner):
        workspace.package("core", "core")
        (workspace.root / "core" / "bun.lockb").write_bytes(b"")
        publisher = PackagePublisher(make_config(), runner)

        assert publisher.detect_package_manager(workspace.root / "core") == "bun"

    def test_missing_bun_fails(self, workspace, runner):
        runner.which.return_value = None
        publisher = PackagePublisher(make_config(build={"package_manager": "bun"}), runner)

        with pytest.raises(PublishError, match="bun"):
            publisher.detect_package_manager(workspace.root)

    def test_dry_run_flag(self, workspace, runner):
        manifest_path = workspace.package("core", "core")
        publisher = PackagePublisher(
            make_config(build={"package_manager": "npm", "dry_run": True}), runner
        )

        with ManifestEditor(manifest_path) as manifest:
            report = publisher.publish(manifest_path.parent, manifest, "1.0.0", "latest")

        assert commands(runner)[-1][:3] == ["npm", "publish", "--dry-run"]
        assert report.npm_published == "dry-run"

    def test_github_publish_scopes_and_restores_name(self, workspace, runner):
        manifest_path = workspace.package("core", "core")
        config = make_config(registry={"target": "github"}, build={"package_manager": "npm"})
        names_at_publish = []

        def check(command, cwd, error_cls, capture=False):
            if command[:2] == ["npm", "publish"]:
                names_at_publish.append(json.loads(manifest_path.read_text())['name'])
            return CommandResult(command, 0)

        runner.check.side_effect = check

        with ManifestEditor(manifest_path) as manifest:
            PackagePublisher(config, runner).publish(
                manifest_path.parent, manifest, "1.0.0", "latest", "acme"
            )
            assert manifest.name == "core"

        assert names_at_publish == ["@acme/core"]

    def test_failed_build_raises(self, workspace, runner):
        manifest_path = workspace.package("core", "core", scripts={"build": "tsc"})

        def check(command, cwd, error_cls, capture=False):
            if command[1:] == ["run", "build"]:
                raise error_cls("npm run build failed (2)")
            return CommandResult(command, 0)

        runner.check.side_effect = check
        publisher = PackagePublisher(make_config(build={"package_manager": "npm"}), runner)

        with ManifestEditor(manifest_path) as manifest:
            with pytest.raises(PublishError, match="build"):
                publisher.publish(manifest_path.parent, manifest, "1.0.0", "latest")


class TestAuditRunner:
    """Test audit parsing and threshold handling"""

    @staticmethod
    def audit_output(**counts):
        return json.dumps({"metadata": {"vulnerabilities": counts}})

    def test_summary_file_written(self, tmp_path, runner):
        runner.run.side_effect = None
        runner.run.return_value = CommandResult([], 1, self.audit_output(low=2, info=1))
        config = make_config(audit={"enabled": True, "level": "high"})

        summary = AuditRunner(config, runner).run(tmp_path)

        written = json.loads((tmp_path / "audit-summary.json").read_text())
        assert written["totalVulnerabilities"] == 3
        assert written["completed"] is True
        assert summary.low == 2

    def test_threshold_exceeded(self, tmp_path, runner):
        runner.run.side_effect = None
        runner.run.return_value = CommandResult([], 1, self.audit_output(critical=1))
        config = make_config(audit={"enabled": True, "level": "high"})

        with pytest.raises(AuditError):
            AuditRunner(config, runner).run(tmp_path)

    def test_unparseable_output_does_not_fail(self, tmp_path, runner):
        runner.run.side_effect = None
        runner.run.return_value = CommandResult([], 1, "not json")

        summary = AuditRunner(make_config(), runner).run(tmp_path)

        assert summary.completed is False

    def test_low_level_counts_info(self):
        summary = AuditSummary(info=1)
        assert summary.count_at_or_above(AuditLevel.LOW) == 1
        assert summary.count_at_or_above(AuditLevel.MODERATE) == 0
