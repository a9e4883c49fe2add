#!/usr/bin/env python3
"""
Example: compute the release plan for a workspace without publishing anything.

Run from the monorepo root:
    python examples/plan_release.py --event push --ref dev
"""

import argparse
import logging
from pathlib import Path

from monoflow.build.manager import BuildOrchestrator
from monoflow.config.global_config_loader import load_global_config
from monoflow.core.enums import EventType
from monoflow.core.models import BuildFlowContext
from monoflow.vcs.git import GitOracle


def main():
    parser = argparse.ArgumentParser(description="Print the release plan for a workspace")
    parser.add_argument('--root', default='.', help='Workspace root directory')
    parser.add_argument('--event', default='push', choices=[e.value for e in EventType])
    parser.add_argument('--ref', default='dev', help='Branch being pushed')
    parser.add_argument('--config', default=None, help='monoflow YAML config')
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)

    root = Path(args.root)
    config = load_global_config(args.config)
    vcs = GitOracle(root)
    context = BuildFlowContext(
        event_type=EventType(args.event),
        commit_sha=vcs.rev_parse("HEAD"),
        ref_name=args.ref,
        main_branch=config.branches.main,
        dev_branch=config.branches.dev,
    )

    orchestrator = BuildOrchestrator(config, context, root, vcs=vcs)
    discovered, change_set, ordered = orchestrator.plan()

    print(f"\n=== Discovered {len(discovered)} package(s) ===")
    for pkg in discovered:
        print(f"  {pkg.name}@{pkg.version} ({pkg.manifest_path})")

    print(f"\n=== Change set: {change_set.kind.value} ===")
    if change_set.reason:
        print(f"  reason: {change_set.reason}")

    print("\n=== Build plan ===")
    for index, pkg in enumerate(ordered, start=1):
        resolution = orchestrator.flow_resolver.resolve(pkg.version)
        print(f"  {index}. {pkg.name} -> {resolution.version} (tag: {resolution.dist_tag})")


if __name__ == "__main__":
    main()
