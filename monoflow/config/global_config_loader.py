import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field

from ..core.enums import AuditLevel, PackageManager, RegistryTarget
from ..core.exceptions import ConfigurationError


@dataclass
class BranchConfig:
    """Branch names that drive flow classification"""
    main: str = "main"
    dev: str = "dev"


@dataclass
class RegistryConfig:
    """Registry configuration"""
    target: str = "npm"  # "npm" | "github" | "both"
    npm_registry_url: str = "https://registry.npmjs.org"
    github_registry_url: str = "https://npm.pkg.github.com"
    package_scope: Optional[str] = None
    npm_token_env: str = "NPM_TOKEN"
    github_token_env: str = "GITHUB_TOKEN"
    npmrc_path: str = ".npmrc"


@dataclass
class BuildConfig:
    """Build and publish configuration"""
    package_manager: str = "auto"  # "auto" | "npm" | "bun"
    build_script: Optional[str] = "build"
    run_tests: bool = True
    publish: bool = True
    dry_run: bool = False
    version_prefix: Optional[str] = None


@dataclass
class AuditConfig:
    """Security audit configuration"""
    enabled: bool = False
    level: str = "high"  # "critical" | "high" | "moderate" | "low"
    fail_on_audit: bool = False
    summary_file: str = "audit-summary.json"


@dataclass
class ChangesConfig:
    """Change detection configuration"""
    detect_changes: bool = True
    fetch_depth: int = 100


@dataclass
class GlobalConfig:
    """Global configuration for a release run"""
    branches: BranchConfig = field(default_factory=BranchConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    changes: ChangesConfig = field(default_factory=ChangesConfig)
    root_manifest: str = "package.json"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GlobalConfig':
        """Create GlobalConfig from dictionary"""
        return cls(
            branches=BranchConfig(**data.get('branches', {})),
            registry=RegistryConfig(**data.get('registry', {})),
            build=BuildConfig(**data.get('build', {})),
            audit=AuditConfig(**data.get('audit', {})),
            changes=ChangesConfig(**data.get('changes', {})),
            root_manifest=data.get('root_manifest', "package.json"),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'GlobalConfig':
        """Load GlobalConfig from YAML file"""
        path = Path(yaml_path)
        if not path.exists():
            # Return default config if file doesn't exist
            return cls.default()

        with open(path, 'r') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Failed to parse {yaml_path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(f"{yaml_path} must contain a mapping at the top level")

        try:
            return cls.from_dict(data or {})
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration in {yaml_path}: {e}") from e

    @classmethod
    def default(cls) -> 'GlobalConfig':
        """Return default configuration"""
        return cls()

    @property
    def registry_target(self) -> RegistryTarget:
        return RegistryTarget(self.registry.target)

    @property
    def package_manager(self) -> PackageManager:
        return PackageManager(self.build.package_manager)

    @property
    def audit_level(self) -> AuditLevel:
        return AuditLevel(self.audit.level)

    def validate(self):
        """
        Check enum-valued settings.

        Raises:
            ConfigurationError: On the first invalid value
        """
        choices = [
            ('registry.target', self.registry.target, RegistryTarget),
            ('build.package_manager', self.build.package_manager, PackageManager),
            ('audit.level', self.audit.level, AuditLevel),
        ]
        for name, value, enum_cls in choices:
            try:
                enum_cls(value)
            except ValueError:
                allowed = ", ".join(f"'{member.value}'" for member in enum_cls)
                raise ConfigurationError(
                    f"Invalid {name} value '{value}'. Must be one of {allowed}"
                ) from None

    def token(self, env_name: str) -> Optional[str]:
        return os.environ.get(env_name) or None


def load_global_config(config_path: Optional[str] = None) -> GlobalConfig:
    """
    Load global configuration from YAML file.
    If no path provided, looks for monoflow.yaml in standard locations.
    """
    if config_path:
        return GlobalConfig.from_yaml(config_path)

    # Try standard locations
    search_paths = [
        Path("./monoflow.yaml"),
        Path("./.github/monoflow.yaml"),
        Path("/etc/monoflow/monoflow.yaml"),
    ]

    for path in search_paths:
        if path.exists():
            return GlobalConfig.from_yaml(str(path))

    # Return default if no config found
    return GlobalConfig.default()
