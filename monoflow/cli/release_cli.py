#!/usr/bin/env python3
"""
CLI tool for orchestrating monorepo package releases
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import click

from ..build.change_detector import ChangeDetector
from ..build.dependency_graph import DependencyGraphResolver
from ..build.flow import VersionFlowResolver
from ..build.manager import BuildOrchestrator
from ..build.scanner import WorkspaceDiscoverer, read_manifest
from ..config.context_loader import load_context
from ..config.global_config_loader import GlobalConfig, load_global_config
from ..core.exceptions import MonoflowError
from ..core.models import PackageDescriptor
from ..output import summary
from ..output.result_sink import GithubOutputSink, MemoryResultSink, ResultSink
from ..vcs.git import GitOracle


class ReleaseCLI:
    """Command-line interface for release orchestration"""

    def __init__(self, global_config: GlobalConfig, root_manifest: Optional[str] = None,
                 github_output: Optional[str] = None):
        self.global_config = global_config
        self.root_manifest = Path(root_manifest or global_config.root_manifest)
        self.root_dir = self.root_manifest.parent
        self.sink: ResultSink = GithubOutputSink(github_output) if github_output else MemoryResultSink()
        self.logger = logging.getLogger(__name__)

    def _discover(self) -> List[PackageDescriptor]:
        return WorkspaceDiscoverer(self.root_manifest).discover()

    def _load_packages_json(self, packages_json: Optional[str]) -> List[PackageDescriptor]:
        """Packages handed over as JSON; malformed input falls back to discovery"""
        if not packages_json:
            return self._discover()
        try:
            data = json.loads(packages_json)
            packages = [PackageDescriptor.from_dict(item) for item in data]
        except (ValueError, TypeError, KeyError) as e:
            self.logger.warning(f"⚠️  Invalid packages JSON ({e}), using discovery order")
            return self._discover()
        if not packages:
            self.logger.warning("⚠️  Empty packages JSON, using discovery order")
            return self._discover()
        return packages

    def discover(self) -> int:
        packages = self._discover()
        summary.write_discovery(self.sink, packages)
        click.echo(json.dumps([pkg.to_dict() for pkg in packages], indent=2))
        return 0

    def changed(self, context_path: Optional[str]) -> int:
        context = load_context(context_path, self.global_config.branches)
        packages = self._discover()
        detector = ChangeDetector(GitOracle(self.root_dir), self.global_config.changes.fetch_depth)
        change_set = detector.detect_changes(context, packages)
        changed = change_set.apply(packages)

        summary.write_changes(self.sink, change_set, packages)

        click.echo(f"Change set: {change_set.kind.value}" +
                   (f" ({change_set.reason})" if change_set.reason else ""))
        click.echo(json.dumps([pkg.to_changed_dict() for pkg in changed], indent=2))
        return 0

    def order(self, packages_json: Optional[str]) -> int:
        packages = self._load_packages_json(packages_json)
        ordered = DependencyGraphResolver(self.root_dir).resolve_order(packages)
        summary.write_order(self.sink, ordered)
        click.echo(json.dumps([pkg.to_dict() for pkg in ordered], indent=2))
        return 0

    def flow(self, context_path: Optional[str], package_path: str) -> int:
        context = load_context(context_path, self.global_config.branches)
        manifest = read_manifest(Path(package_path))
        resolver = VersionFlowResolver(context, self.global_config.build.version_prefix)
        resolution = resolver.resolve(manifest.get('version') or "0.0.0")
        for key, value in resolution.to_dict().items():
            self.sink.set(key, value)
        click.echo(json.dumps(resolution.to_dict(), indent=2))
        return 0

    def run(self, context_path: Optional[str]) -> int:
        context = load_context(context_path, self.global_config.branches)
        orchestrator = BuildOrchestrator(
            self.global_config,
            context,
            self.root_dir,
            sink=self.sink
        )
        report = orchestrator.run()
        click.echo(json.dumps(report.to_list(), indent=2))
        return 1 if report.has_failures() else 0


def _execute(ctx, method: str, *args) -> None:
    cli_instance: ReleaseCLI = ctx.obj['cli']
    try:
        return_code = getattr(cli_instance, method)(*args)
    except (MonoflowError, OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    sys.exit(return_code or 0)


@click.group()
@click.option('--config', 'config_path', default=None, help='Path to monoflow YAML config')
@click.option('--root', 'root_manifest', default=None, help='Path to the root package.json')
@click.option('--github-output', default=lambda: os.environ.get('GITHUB_OUTPUT'),
              help='Output file read by the CI host (defaults to $GITHUB_OUTPUT)')
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              help='Set the logging level')
@click.pass_context
def cli(ctx, config_path, root_manifest, github_output, log_level):
    """Monorepo release orchestrator - discover, filter, order and publish packages"""
    # Setup logging
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    try:
        global_cfg = load_global_config(config_path)
    except (MonoflowError, OSError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    ctx.ensure_object(dict)
    ctx.obj['global_config'] = global_cfg
    ctx.obj['cli'] = ReleaseCLI(global_cfg, root_manifest, github_output)


@cli.command()
@click.pass_context
def discover(ctx):
    """Discover publishable workspace packages"""
    _execute(ctx, 'discover')


@cli.command()
@click.option('--context', 'context_path', help='GitHub context JSON file (defaults to $GITHUB_CONTEXT)')
@click.pass_context
def changed(ctx, context_path):
    """Detect packages changed by the triggering event"""
    _execute(ctx, 'changed', context_path)


@cli.command()
@click.option('--packages-json', help='Packages JSON array (defaults to discovery)')
@click.pass_context
def order(ctx, packages_json):
    """Print packages in dependency order"""
    _execute(ctx, 'order', packages_json)


@cli.command()
@click.option('--context', 'context_path', help='GitHub context JSON file (defaults to $GITHUB_CONTEXT)')
@click.option('--package', 'package_path', default='package.json', help='Package manifest path')
@click.pass_context
def flow(ctx, context_path, package_path):
    """Resolve build flow, version and dist tag for one package"""
    _execute(ctx, 'flow', context_path, package_path)


@cli.command()
@click.option('--context', 'context_path', help='GitHub context JSON file (defaults to $GITHUB_CONTEXT)')
@click.pass_context
def run(ctx, context_path):
    """Run the full discover → detect → order → build/publish pipeline"""
    _execute(ctx, 'run', context_path)


if __name__ == "__main__":
    cli()
