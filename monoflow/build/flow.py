"""
Classifies the CI event context into a build flow, version and dist tag.
"""
import re
import time
from typing import Callable, Optional
import logging

from ..core.enums import EventType, FlowType
from ..core.exceptions import FlowDetectionError
from ..core.models import BuildFlowContext, FlowResolution

SHORT_SHA_LENGTH = 7

_SEMVER_TAG = re.compile(r'^v[0-9]')
_PRERELEASE_ID = re.compile(r'^[0-9]+\.[0-9]+\.[0-9]+-([0-9A-Za-z-]+)')


def short_sha(commit_sha: str) -> str:
    return commit_sha[:SHORT_SHA_LENGTH]


def release_version(tag: str) -> str:
    """Strip the leading 'v' only for semver-style tags such as v1.2.3"""
    if _SEMVER_TAG.match(tag):
        return tag[1:]
    return tag


def prerelease_tag(version: str) -> Optional[str]:
    """First prerelease identifier, e.g. 'beta' for 1.0.0-beta.1"""
    match = _PRERELEASE_ID.match(version)
    return match.group(1) if match else None


def staging_number(context: BuildFlowContext, clock: Callable[[], float] = time.time) -> str:
    """
    Number that keeps staging versions apart within one CI run window.

    Uses the CI run number (and attempt, when retried) so that re-running the
    same workflow run reproduces the same version. Falls back to the last six
    digits of the epoch seconds when no run number is available.
    """
    if context.run_number is not None:
        if context.run_attempt and context.run_attempt > 1:
            return f"{context.run_number}.{context.run_attempt}"
        return str(context.run_number)
    return str(int(clock()))[-6:]


def resolve_flow(
    context: BuildFlowContext,
    base_version: str,
    sha: str,
    unique_number: str
) -> FlowResolution:
    """
    Pure flow classification. Rules are evaluated in priority order.

    Args:
        context: CI event context
        base_version: Version currently in the package manifest
        sha: Short commit id
        unique_number: Staging discriminator

    Returns:
        FlowResolution

    Raises:
        FlowDetectionError: If a release event carries no tag
    """
    event = context.event_type

    def prerelease(flow: FlowType, label: str, suffix: str) -> FlowResolution:
        return FlowResolution(flow, f"{base_version}-{label}.{suffix}", label, sha)

    if event == EventType.RELEASE:
        if not context.release_tag:
            raise FlowDetectionError("Release event without a release tag")
        version = release_version(context.release_tag)
        if not context.release_prerelease:
            return FlowResolution(FlowType.RELEASE, version, "latest", sha)
        return FlowResolution(
            FlowType.RELEASE, version, prerelease_tag(version) or "prerelease", sha
        )

    if event == EventType.PULL_REQUEST:
        if context.base_ref == context.dev_branch:
            return prerelease(FlowType.PR, "pr", sha)
        if context.base_ref == context.main_branch:
            if context.head_ref == context.dev_branch:
                return prerelease(FlowType.DEV, "dev", sha)
            return prerelease(FlowType.PATCH, "patch", sha)
        return prerelease(FlowType.WIP, "wip", sha)

    if event == EventType.PUSH:
        if context.ref_name == context.main_branch:
            return prerelease(FlowType.STAGING, "staging", unique_number)
        if context.ref_name == context.dev_branch:
            return prerelease(FlowType.DEV, "dev", sha)
        return prerelease(FlowType.WIP, "wip", sha)

    return prerelease(FlowType.WIP, "wip", sha)


class VersionFlowResolver:
    """Resolves the flow for each package of a run"""

    _FLOW_LABELS = {
        FlowType.RELEASE: "🎉 Flow: Release",
        FlowType.PR: "🔀 Flow: PR to dev branch",
        FlowType.DEV: "🚀 Flow: Dev build",
        FlowType.PATCH: "🔧 Flow: Patch PR to main",
        FlowType.STAGING: "🎯 Flow: Staging release (push to main)",
        FlowType.WIP: "🚧 Flow: WIP build",
    }

    def __init__(
        self,
        context: BuildFlowContext,
        version_prefix: Optional[str] = None,
        clock: Callable[[], float] = time.time
    ):
        self.context = context
        self.short_sha = short_sha(context.commit_sha or "")
        # computed once so every package in the run shares it
        self.unique_number = staging_number(context, clock)
        self.logger = logging.getLogger(__name__)

        if version_prefix:
            self.logger.warning(
                f"⚠️  version-prefix ('{version_prefix}') is ignored - "
                "registries require valid semver versions"
            )

    def resolve(self, base_version: str) -> FlowResolution:
        """Resolve flow, version and dist tag for a package at base_version"""
        if not self.short_sha:
            raise FlowDetectionError("Event context has no commit sha")
        resolution = resolve_flow(self.context, base_version, self.short_sha, self.unique_number)
        self.logger.info(self._FLOW_LABELS[resolution.flow_type])
        self.logger.info(
            f"  Package Version: {resolution.version}  NPM Tag: {resolution.dist_tag}"
        )
        return resolution
