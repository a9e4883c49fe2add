"""
Writes registry authentication (.npmrc) for the selected registries.
"""
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse
import logging

from ..config.global_config_loader import GlobalConfig
from ..core.enums import RegistryTarget
from ..core.exceptions import RegistryConfigurationError


def registry_host(url: str) -> str:
    """Host part of a registry URL, e.g. registry.npmjs.org"""
    parsed = urlparse(url if "://" in url else f"https://{url}")
    return parsed.netloc


def normalize_scope(scope: str) -> str:
    return scope if scope.startswith('@') else f"@{scope}"


def resolve_scope(
    package_name: str,
    package_scope: Optional[str],
    repository_owner: Optional[str]
) -> str:
    """
    Scope used for GitHub Packages, which only accepts scoped packages.

    Order: explicit scope, the package's own scope, then the repository owner.

    Raises:
        RegistryConfigurationError: If no scope can be determined
    """
    if package_scope:
        return normalize_scope(package_scope)
    if package_name.startswith('@') and '/' in package_name:
        return package_name.split('/', 1)[0]
    if not repository_owner:
        raise RegistryConfigurationError(
            "GITHUB_REPOSITORY_OWNER is not set; cannot auto-scope package for GitHub Packages"
        )
    return f"@{repository_owner}"


class RegistryConfigurator:
    """Builds the .npmrc auth artifact for one package"""

    def __init__(self, config: GlobalConfig, root_dir: Path):
        self.config = config
        self.npmrc_path = Path(root_dir) / config.registry.npmrc_path
        self.logger = logging.getLogger(__name__)

    def render(self, package_name: str, repository_owner: Optional[str]) -> List[str]:
        """
        Lines of the .npmrc file.

        Raises:
            RegistryConfigurationError: If a required token or scope is missing
        """
        registry = self.config.registry
        target = self.config.registry_target
        lines: List[str] = []

        if target.includes_npm:
            token = self.config.token(registry.npm_token_env)
            if not token:
                raise RegistryConfigurationError(
                    f"{registry.npm_token_env} is required when publishing to NPM"
                )
            lines.append(f"//{registry_host(registry.npm_registry_url)}/:_authToken={token}")
            # with "both", a global registry line would fight the --registry flag
            if target == RegistryTarget.NPM:
                lines.append(f"registry={registry.npm_registry_url}")

        if target.includes_github:
            token = self.config.token(registry.github_token_env)
            if not token:
                raise RegistryConfigurationError(
                    f"{registry.github_token_env} is required when publishing to GitHub Packages"
                )
            scope = resolve_scope(package_name, registry.package_scope, repository_owner)
            lines.append(f"//{registry_host(registry.github_registry_url)}/:_authToken={token}")
            if target == RegistryTarget.GITHUB:
                lines.append(f"{scope}:registry={registry.github_registry_url}")
            self.logger.info(f"🔧 GitHub Packages scope: {scope}")

        return lines

    def configure(self, package_name: str, repository_owner: Optional[str] = None) -> Path:
        """
        Write the .npmrc file.

        Returns:
            Path of the written file
        """
        self.logger.info(f"🔧 Configuring registries ({self.config.registry.target}) for {package_name}")
        lines = self.render(package_name, repository_owner)
        try:
            self.npmrc_path.write_text("\n".join(lines) + "\n", encoding='utf-8')
        except OSError as e:
            raise RegistryConfigurationError(f"Failed to write {self.npmrc_path}: {e}") from e

        for line in lines:
            masked = line.split('_authToken=')[0] + '_authToken=***' if '_authToken=' in line else line
            self.logger.info(f"  {masked}")
        return self.npmrc_path
