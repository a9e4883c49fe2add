"""
Test cases for scoped manifest edits and workspace protocol resolution.
"""

import json

import pytest

from monoflow.build.manifest import ManifestEditor, ScopedFile
from monoflow.build.workspace_protocol import WorkspaceProtocolResolver, resolve_specifier
from monoflow.core.exceptions import ManifestError, PublishError


class TestScopedFile:
    """Test snapshot and restore"""

    def test_restores_original_bytes(self, tmp_path):
        path = tmp_path / ".npmrc"
        path.write_bytes(b"registry=https://example.test\n")

        with ScopedFile(path):
            path.write_text("//registry.npmjs.org/:_authToken=secret\n")

        assert path.read_bytes() == b"registry=https://example.test\n"

    def test_removes_file_that_did_not_exist(self, tmp_path):
        path = tmp_path / ".npmrc"

        with ScopedFile(path):
            path.write_text("token")

        assert not path.exists()

    def test_restores_on_exception(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("before")

        with pytest.raises(RuntimeError):
            with ScopedFile(path):
                path.write_text("after")
                raise RuntimeError("boom")

        assert path.read_text() == "before"


class TestManifestEditor:
    """Test package.json editing"""

    def test_version_change_is_reverted(self, workspace):
        manifest_path = workspace.package("core", "core", "1.0.0", scripts={"build": "tsc"})
        original = manifest_path.read_bytes()

        with ManifestEditor(manifest_path) as manifest:
            manifest.set_version("1.0.0-dev.abc1234")
            assert json.loads(manifest_path.read_text())['version'] == "1.0.0-dev.abc1234"
            assert manifest.name == "core"

        assert manifest_path.read_bytes() == original

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ManifestError, match="not found"):
            with ManifestEditor(tmp_path / "package.json"):
                pass

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "package.json"
        path.write_text("{broken")

        with pytest.raises(ManifestError, match="Failed to parse"):
            with ManifestEditor(path):
                pass

        assert path.read_text() == "{broken"


class TestWorkspaceProtocol:
    """Test workspace: specifier rewriting"""

    @pytest.mark.parametrize("specifier,expected", [
        ("*", "1.2.3"),
        ("", "1.2.3"),
        ("^", "^1.2.3"),
        ("~", "~1.2.3"),
        ("^1.0.0", "^1.0.0"),
    ])
    def test_resolve_specifier(self, specifier, expected):
        assert resolve_specifier(specifier, "1.2.3") == expected

    def test_rewrites_all_dependency_fields(self):
        manifest = {
            "dependencies": {"core": "workspace:*", "react": "^18.0.0"},
            "peerDependencies": {"ui": "workspace:^"},
            "devDependencies": {"tools": "workspace:~"},
        }
        resolver = WorkspaceProtocolResolver({"core": "2.0.0-dev.abc", "ui": "1.1.0", "tools": "0.3.0"})

        resolved = resolver.resolve(manifest)

        assert manifest["dependencies"] == {"core": "2.0.0-dev.abc", "react": "^18.0.0"}
        assert manifest["peerDependencies"] == {"ui": "^1.1.0"}
        assert manifest["devDependencies"] == {"tools": "~0.3.0"}
        assert len(resolved) == 3

    def test_unknown_runtime_dependency_fails(self):
        manifest = {"dependencies": {"ghost": "workspace:*"}}
        with pytest.raises(PublishError, match="ghost"):
            WorkspaceProtocolResolver({}).resolve(manifest)

    def test_unknown_dev_dependency_is_kept(self):
        manifest = {"devDependencies": {"ghost": "workspace:*"}}
        assert WorkspaceProtocolResolver({}).resolve(manifest) == []
        assert manifest["devDependencies"] == {"ghost": "workspace:*"}
