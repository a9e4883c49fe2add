"""
Test cases for configuration and event context loading.
"""

import json

import pytest
import yaml

from monoflow.config.context_loader import context_from_dict, load_context
from monoflow.config.global_config_loader import BranchConfig, GlobalConfig, load_global_config
from monoflow.core.enums import EventType, RegistryTarget
from monoflow.core.exceptions import ConfigurationError


class TestGlobalConfig:
    """Test YAML configuration"""

    def test_defaults(self):
        config = GlobalConfig.default()
        assert config.registry_target == RegistryTarget.NPM
        assert config.branches.dev == "dev"
        assert config.changes.detect_changes is True
        config.validate()

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "monoflow.yaml"
        path.write_text(yaml.safe_dump({
            'branches': {'main': 'trunk', 'dev': 'develop'},
            'registry': {'target': 'both', 'package_scope': 'acme'},
            'audit': {'enabled': True, 'level': 'moderate'},
        }))

        config = GlobalConfig.from_yaml(str(path))

        assert config.branches.main == "trunk"
        assert config.registry_target == RegistryTarget.BOTH
        assert config.registry.package_scope == "acme"
        assert config.audit.level == "moderate"

    def test_missing_file_gives_defaults(self, tmp_path):
        config = GlobalConfig.from_yaml(str(tmp_path / "absent.yaml"))
        assert config == GlobalConfig.default()

    def test_unknown_key_is_configuration_error(self, tmp_path):
        path = tmp_path / "monoflow.yaml"
        path.write_text("build:\n  compiler: tsc\n")

        with pytest.raises(ConfigurationError):
            GlobalConfig.from_yaml(str(path))

    def test_malformed_yaml_is_configuration_error(self, tmp_path):
        path = tmp_path / "monoflow.yaml"
        path.write_text("build: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Failed to parse"):
            GlobalConfig.from_yaml(str(path))

    def test_non_mapping_yaml_is_configuration_error(self, tmp_path):
        path = tmp_path / "monoflow.yaml"
        path.write_text("- npm\n- github\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            GlobalConfig.from_yaml(str(path))

    @pytest.mark.parametrize("section,key,value", [
        ('registry', 'target', 'artifactory'),
        ('build', 'package_manager', 'yarn'),
        ('audit', 'level', 'severe'),
    ])
    def test_invalid_choices(self, section, key, value):
        config = GlobalConfig.from_dict({section: {key: value}})
        with pytest.raises(ConfigurationError, match=value):
            config.validate()

    def test_load_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("changes:\n  fetch_depth: 5\n")
        assert load_global_config(str(path)).changes.fetch_depth == 5


class TestContextLoader:
    """Test GitHub context parsing"""

    def test_pull_request(self):
        context = context_from_dict({
            'event_name': 'pull_request',
            'sha': 'abc1234def',
            'ref': 'refs/pull/7/merge',
            'repository': 'acme/monorepo',
            'run_number': '12',
            'event': {'pull_request': {
                'base': {'ref': 'dev', 'sha': 'base999'},
                'head': {'ref': 'feature/x'},
            }},
        })

        assert context.event_type == EventType.PULL_REQUEST
        assert context.base_ref == "dev"
        assert context.head_ref == "feature/x"
        assert context.pr_base_sha == "base999"
        assert context.run_number == 12
        assert context.repository_owner == "acme"

    def test_release(self):
        context = context_from_dict({
            'event_name': 'release',
            'sha': 'abc',
            'event': {'release': {'tag_name': 'v1.0.0-rc.1', 'prerelease': True}},
        })

        assert context.release_tag == "v1.0.0-rc.1"
        assert context.release_prerelease is True

    def test_push_with_custom_branches(self):
        context = context_from_dict(
            {'event_name': 'push', 'sha': 'abc', 'ref': 'refs/heads/develop'},
            BranchConfig(main='trunk', dev='develop'),
        )

        assert context.ref_name == "develop"
        assert context.dev_branch == "develop"
        assert context.main_branch == "trunk"

    def test_unknown_event(self):
        assert context_from_dict({'event_name': 'schedule'}).event_type == EventType.OTHER

    def test_load_from_environment(self, monkeypatch):
        monkeypatch.setenv('GITHUB_CONTEXT', json.dumps({'event_name': 'push', 'sha': 'abc'}))
        monkeypatch.setenv('GITHUB_REPOSITORY_OWNER', 'acme')

        context = load_context()

        assert context.event_type == EventType.PUSH
        assert context.repository_owner == "acme"

    def test_missing_context(self, monkeypatch):
        monkeypatch.delenv('GITHUB_CONTEXT', raising=False)
        with pytest.raises(ConfigurationError):
            load_context()

    def test_invalid_context_file(self, tmp_path):
        path = tmp_path / "context.json"
        path.write_text("not json")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_context(str(path))
