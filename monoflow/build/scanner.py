"""
Discovers publishable packages from the root manifest's workspace patterns.
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from ..core.exceptions import WorkspaceDiscoveryError
from ..core.models import PackageDescriptor

MANIFEST_NAME = "package.json"
GLOB_CHARS = ("*", "?", "[")
EXCLUDED_DIRS = ("node_modules",)


def read_manifest(manifest_path: Path) -> Dict[str, Any]:
    """
    Read a package.json file.

    Raises:
        OSError, ValueError: If the file is missing or not a JSON object
    """
    with open(manifest_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{manifest_path} does not contain a JSON object")
    return data


def is_private(manifest: Dict[str, Any]) -> bool:
    return manifest.get('private') in (True, "true")


class WorkspaceDiscoverer:
    """Resolves workspace patterns into package descriptors"""

    def __init__(self, root_manifest_path: Union[str, Path]):
        """
        Initialize discoverer.

        Args:
            root_manifest_path: Path to the workspace root package.json
        """
        self.root_manifest_path = Path(root_manifest_path)
        self.root_dir = self.root_manifest_path.parent
        self.logger = logging.getLogger(__name__)

    def load_patterns(self) -> List[str]:
        """
        Read workspace patterns from the root manifest.

        Returns:
            Patterns in declaration order

        Raises:
            WorkspaceDiscoveryError: If the manifest or its workspaces field is unusable
        """
        if not self.root_manifest_path.is_file():
            raise WorkspaceDiscoveryError(
                f"Root package.json not found at '{self.root_manifest_path}'"
            )

        try:
            manifest = read_manifest(self.root_manifest_path)
        except (OSError, ValueError) as e:
            raise WorkspaceDiscoveryError(
                f"Failed to parse {self.root_manifest_path} (invalid JSON): {e}"
            ) from e

        workspaces = manifest.get('workspaces')
        if not workspaces:
            raise WorkspaceDiscoveryError(
                "No 'workspaces' field found in root package.json. Expected "
                '"workspaces": ["core", "apps/*"] or "workspaces": {"packages": [...]}'
            )

        if isinstance(workspaces, dict):
            patterns = workspaces.get('packages')
            if not isinstance(patterns, list) or not patterns:
                raise WorkspaceDiscoveryError(
                    "workspaces is an object but has no 'packages' array"
                )
        elif isinstance(workspaces, list):
            patterns = workspaces
        else:
            raise WorkspaceDiscoveryError(
                "workspaces field must be an array or object with packages array"
            )

        patterns = [str(p).strip() for p in patterns if str(p).strip()]
        if not patterns:
            raise WorkspaceDiscoveryError("No workspace patterns found")
        return patterns

    def expand_pattern(self, pattern: str) -> List[Path]:
        """
        Expand one pattern into candidate package directories.

        Args:
            pattern: Workspace pattern relative to the root directory

        Returns:
            Matching directories, sorted for deterministic output
        """
        if pattern.startswith('!'):
            self.logger.warning(
                f"    ⚠️  Negated pattern '{pattern}' is not supported, skipping"
            )
            return []

        pattern = pattern.rstrip('/')
        if pattern.startswith('./'):
            pattern = pattern[2:]

        if not any(ch in pattern for ch in GLOB_CHARS):
            directory = self.root_dir / pattern
            if not directory.is_dir():
                self.logger.warning(f"    ⚠️  Directory not found: {pattern}")
                return []
            return [directory]

        # shell globbing without globstar: "**" matches a single level like "*"
        while "**" in pattern:
            pattern = pattern.replace("**", "*")

        matches = [
            p for p in self.root_dir.glob(pattern)
            if p.is_dir() and not self._is_excluded(p)
        ]
        return sorted(matches, key=lambda p: p.relative_to(self.root_dir).as_posix())

    def _is_excluded(self, path: Path) -> bool:
        return any(part in EXCLUDED_DIRS for part in path.relative_to(self.root_dir).parts)

    def _relative(self, path: Path) -> str:
        try:
            relative = path.relative_to(self.root_dir).as_posix()
        except ValueError:
            relative = path.as_posix()
        return relative or "."

    def _describe(self, directory: Path) -> Optional[PackageDescriptor]:
        manifest_path = directory / MANIFEST_NAME
        if not manifest_path.is_file():
            self.logger.warning(
                f"    ⚠️  No package.json found in {self._relative(directory)}"
            )
            return None

        try:
            manifest = read_manifest(manifest_path)
        except (OSError, ValueError) as e:
            self.logger.warning(f"    ⚠️  Skipping unreadable {manifest_path}: {e}")
            return None

        if is_private(manifest):
            self.logger.info(
                f"    ⏭️  Skipping {self._relative(manifest_path)} (private: true)"
            )
            return None

        return PackageDescriptor(
            name=manifest.get('name') or "unknown",
            version=manifest.get('version') or "0.0.0",
            manifest_path=self._relative(manifest_path),
            dir=self._relative(directory),
        )

    def discover(self) -> List[PackageDescriptor]:
        """
        Discover all publishable workspace packages.

        Returns:
            Package descriptors in pattern order, first match wins

        Raises:
            WorkspaceDiscoveryError: If no publishable package is found
        """
        self.logger.info(f"📄 Reading workspace patterns from: {self.root_manifest_path}")
        patterns = self.load_patterns()

        packages: List[PackageDescriptor] = []
        seen_manifests = set()
        seen_names: Dict[str, str] = {}

        for pattern in patterns:
            self.logger.info(f"  Pattern: {pattern}")
            for directory in self.expand_pattern(pattern):
                manifest_key = (directory / MANIFEST_NAME).resolve()
                if manifest_key in seen_manifests:
                    continue
                seen_manifests.add(manifest_key)

                descriptor = self._describe(directory)
                if descriptor is None:
                    continue

                if descriptor.name in seen_names:
                    raise WorkspaceDiscoveryError(
                        f"Duplicate package name '{descriptor.name}' in "
                        f"{seen_names[descriptor.name]} and {descriptor.manifest_path}"
                    )
                seen_names[descriptor.name] = descriptor.manifest_path

                self.logger.info(
                    f"    ✅ Found: {descriptor.name} ({descriptor.manifest_path})"
                )
                packages.append(descriptor)

        if not packages:
            raise WorkspaceDiscoveryError(
                "No publishable packages discovered. All packages may have "
                "'private: true' or no packages matched the workspace patterns"
            )

        self.logger.info(f"📊 Discovered {len(packages)} publishable package(s)")
        return packages
