"""
Detects which workspace packages are affected by the triggering commit range.
"""
from typing import List, Optional
import logging

from ..core.enums import EventType
from ..core.exceptions import VcsError
from ..core.models import BuildFlowContext, ChangeSet, PackageDescriptor, ROOT_CONFIG_FILES
from ..vcs.base import VcsOracle


class ChangeDetector:
    """Maps a VCS diff onto discovered packages"""

    def __init__(self, vcs: VcsOracle, fetch_depth: int = 100):
        """
        Initialize change detector.

        Args:
            vcs: Version-control oracle
            fetch_depth: History depth requested when deepening a shallow clone
        """
        self.vcs = vcs
        self.fetch_depth = fetch_depth
        self.logger = logging.getLogger(__name__)

    def detect_changes(
        self,
        context: BuildFlowContext,
        packages: List[PackageDescriptor]
    ) -> ChangeSet:
        """
        Detect changed packages.

        Args:
            context: CI event context
            packages: Discovered packages

        Returns:
            ChangeSet; ALL_CHANGED whenever the diff cannot be trusted
        """
        self.logger.info(
            f"🔍 Detecting changed packages (event={context.event_type.value}, "
            f"ref={context.ref_name}, sha={context.commit_sha})"
        )

        base = self.resolve_base(context)
        if base is None:
            base = self._recover_base(context)

        if base is None:
            self.logger.warning(
                "⚠️  Could not establish comparison base, falling back to ALL packages"
            )
            return ChangeSet.all_changed("no comparison base")

        self.logger.info(f"📊 Running git diff: {base}..HEAD")
        try:
            changed_files = self.vcs.diff(base, "HEAD")
        except VcsError as e:
            self.logger.error(f"❌ git diff failed: {e}")
            self.logger.warning("🔄 Falling back to processing ALL packages")
            return ChangeSet.all_changed("diff failed")

        return self.map_files(changed_files, packages)

    def map_files(
        self,
        changed_files: List[str],
        packages: List[PackageDescriptor]
    ) -> ChangeSet:
        """
        Map changed file paths to packages.

        Args:
            changed_files: Paths relative to the repository root
            packages: Discovered packages

        Returns:
            ChangeSet for the given files
        """
        if not changed_files:
            self.logger.info("ℹ️  No changed files detected")
            return ChangeSet.none_changed("no changed files")

        for path in changed_files:
            self.logger.debug(f"  changed: {path}")

        root_changes = [path for path in changed_files if path in ROOT_CONFIG_FILES]
        if root_changes:
            for path in root_changes:
                self.logger.warning(f"⚠️  Root config file changed: {path}")
            self.logger.info("🔄 Root configuration changed - marking ALL packages as changed")
            return ChangeSet.all_changed(f"root config changed: {', '.join(root_changes)}")

        changed: List[PackageDescriptor] = []
        for pkg in packages:
            if any(self._belongs_to(path, pkg) for path in changed_files):
                self.logger.info(f"  ✅ {pkg.name} (changes detected in {pkg.dir})")
                changed.append(pkg)
            else:
                self.logger.info(f"  ⏭️  {pkg.name} (no changes)")

        if not changed:
            self.logger.info(
                "ℹ️  No packages changed - changes may be outside package directories"
            )
            return ChangeSet.none_changed("changes outside package directories")

        self.logger.info(f"📦 Changed packages: {len(changed)}")
        return ChangeSet.subset(changed)

    @staticmethod
    def _belongs_to(path: str, pkg: PackageDescriptor) -> bool:
        directory = pkg.dir.rstrip('/')
        if directory in ('', '.'):
            return True
        return path.startswith(directory + '/') or path == pkg.manifest_path

    def resolve_base(self, context: BuildFlowContext) -> Optional[str]:
        """
        Choose the diff base for the event without touching the network.

        Returns:
            A ref usable by diff, or None if unavailable
        """
        event = context.event_type

        if event == EventType.PULL_REQUEST:
            if not context.pr_base_sha:
                self.logger.warning("⚠️  No pull request base commit in event context")
                return None
            if not self._ref_exists(context.pr_base_sha):
                self.logger.warning(f"⚠️  Base commit {context.pr_base_sha} not available locally")
                return None
            self.logger.info(
                f"🔀 Pull request detected - comparing against base: {context.pr_base_sha}"
            )
            return context.pr_base_sha

        if event == EventType.PUSH:
            if self._ref_exists("HEAD~1"):
                self.logger.info("📤 Push detected - comparing against previous commit: HEAD~1")
                return "HEAD~1"
            self.logger.warning("⚠️  First commit detected (no HEAD~1)")
            return None

        if event == EventType.RELEASE:
            if not context.release_tag:
                self.logger.warning("⚠️  No release tag found in event context")
                return None
            previous = self._previous_tag(context.release_tag)
            if previous:
                self.logger.info(f"🚀 Release {context.release_tag} - comparing against: {previous}")
            else:
                self.logger.warning("⚠️  No previous tag found")
            return previous

        self.logger.warning(f"⚠️  Unsupported event type: {event.value}")
        return None

    def _recover_base(self, context: BuildFlowContext) -> Optional[str]:
        """Fetch more history once, only for shallow clones"""
        if not self.vcs.is_shallow():
            return None

        self.logger.info("🔄 Shallow clone detected, attempting to fetch history...")
        event = context.event_type

        if event == EventType.PULL_REQUEST:
            if context.pr_base_sha:
                try:
                    self.vcs.fetch(ref=context.pr_base_sha, depth=self.fetch_depth)
                    self.logger.info(f"✅ Fetched base commit: {context.pr_base_sha}")
                    return context.pr_base_sha
                except VcsError as e:
                    self.logger.warning(f"Failed to fetch base commit: {e}")
            if context.base_ref:
                try:
                    self.vcs.fetch(ref=context.base_ref, depth=self.fetch_depth)
                    self.logger.info(f"✅ Fetched base branch: origin/{context.base_ref}")
                    return f"origin/{context.base_ref}"
                except VcsError as e:
                    self.logger.warning(f"Failed to fetch base branch: {e}")
            return None

        if event == EventType.PUSH:
            try:
                self.vcs.fetch(unshallow=True)
            except VcsError as e:
                self.logger.debug(f"Unshallow failed ({e}), deepening instead")
                try:
                    self.vcs.fetch(depth=self.fetch_depth)
                except VcsError as e2:
                    self.logger.warning(f"Failed to fetch history: {e2}")
                    return None
            if self._ref_exists("HEAD~1"):
                self.logger.info("✅ Fetched history, using: HEAD~1")
                return "HEAD~1"
            return None

        if event == EventType.RELEASE and context.release_tag:
            try:
                self.vcs.fetch(tags=True, depth=self.fetch_depth)
            except VcsError as e:
                self.logger.warning(f"Failed to fetch tags: {e}")
                return None
            previous = self._previous_tag(context.release_tag)
            if previous:
                self.logger.info(f"✅ Fetched tags, using: {previous}")
            return previous

        return None

    def _ref_exists(self, ref: str) -> bool:
        try:
            self.vcs.rev_parse(ref)
            return True
        except VcsError:
            return False

    def _previous_tag(self, current_tag: str) -> Optional[str]:
        try:
            tags = self.vcs.tags_by_version()
        except VcsError as e:
            self.logger.warning(f"Failed to list tags: {e}")
            return None
        # tags are highest-version first; the nearest earlier tag follows the current one
        if current_tag in tags:
            index = tags.index(current_tag)
            return tags[index + 1] if index + 1 < len(tags) else None
        return tags[0] if tags else None
